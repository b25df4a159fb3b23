"""
Seed script to populate a development database with sample accounts and issues.
Run this after creating the database tables (flask db upgrade).

Usage:
    python apps/civic_api/scripts/seed_data.py [--reset]
"""
import sys
import os
import argparse
# Ensure project root is importable so `apps.civic_api.*` works
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from apps.civic_api.app import create_app
from apps.civic_api import db
from apps.civic_api.models import User, Issue, IssueUpdate, Notification, TokenBlacklist
from apps.civic_api.utils.auth import hash_password
from apps.civic_api.utils.constants import (
    ROLE_CITIZEN,
    ROLE_ZONE_ADMIN,
    ROLE_SUPERVISOR,
    STATUS_IN_PROGRESS,
    STATUS_RESOLVED,
)

SAMPLE_PASSWORD = 'password123'

SAMPLE_USERS = [
    {'name': 'John Doe', 'email': 'john@example.com', 'role': ROLE_CITIZEN},
    {'name': 'Jane Smith', 'email': 'jane@example.com', 'role': ROLE_CITIZEN},
    {'name': 'Mike Johnson', 'email': 'mike@example.com', 'role': ROLE_CITIZEN},
    {'name': 'Sarah Wilson', 'email': 'sarah@example.com', 'role': ROLE_ZONE_ADMIN, 'zone': 'Downtown'},
    {'name': 'Emily Clark', 'email': 'emily@example.com', 'role': ROLE_ZONE_ADMIN, 'zone': 'North District'},
    {'name': 'Tom Garcia', 'email': 'tom@example.com', 'role': ROLE_ZONE_ADMIN, 'zone': 'South District'},
    {'name': 'David Brown', 'email': 'david@example.com', 'role': ROLE_SUPERVISOR},
]

SAMPLE_ISSUES = [
    {
        'category': 'Infrastructure',
        'zone': 'Downtown',
        'description': 'Large pothole on Main Street causing traffic issues and potential vehicle damage. '
                       'Located near the intersection with Oak Avenue.',
        'latitude': 40.7128, 'longitude': -74.0060,
        'address': '123 Main Street, Downtown',
        'status': 'pending', 'priority': 'high',
    },
    {
        'category': 'Environment',
        'zone': 'North District',
        'description': 'Garbage collection missed for the past 3 days. Bins are overflowing and creating '
                       'unpleasant odors in the neighborhood.',
        'latitude': 40.7589, 'longitude': -73.9851,
        'address': '456 Oak Avenue, Midtown',
        'status': 'acknowledged', 'priority': 'medium',
    },
    {
        'category': 'Safety',
        'zone': 'Downtown',
        'description': 'Broken streetlight on the corner of 5th and Pine. Area is very dark at night, '
                       'creating safety concerns for pedestrians.',
        'latitude': 40.7505, 'longitude': -73.9934,
        'address': '789 Pine Street, Uptown',
        'status': 'in_progress', 'priority': 'high',
    },
    {
        'category': 'Transportation',
        'zone': 'South District',
        'description': 'Bus stop bench is broken and needs repair. Elderly residents have difficulty '
                       'waiting for buses without seating.',
        'latitude': 40.7614, 'longitude': -73.9776,
        'address': '321 Elm Street, Eastside',
        'status': 'resolved', 'priority': 'medium',
    },
    {
        'category': 'Utilities',
        'zone': 'North District',
        'description': 'Water leak from fire hydrant on Maple Drive. Water is pooling on the street and sidewalk.',
        'latitude': 40.7831, 'longitude': -73.9712,
        'address': '654 Maple Drive, Westside',
        'status': 'pending', 'priority': 'urgent',
    },
    {
        'category': 'Infrastructure',
        'zone': 'South District',
        'description': 'Sidewalk is cracked and uneven, making it difficult for wheelchair users to navigate safely.',
        'latitude': 40.7282, 'longitude': -73.7949,
        'address': '987 Cedar Lane, Northside',
        'status': 'acknowledged', 'priority': 'medium',
    },
]

HANDLED_COMMENTS = {
    STATUS_IN_PROGRESS: 'Work has been assigned and is in progress',
    STATUS_RESOLVED: 'Issue has been resolved',
}


def clear_data():
    """Remove all rows, children first."""
    for model in (Notification, IssueUpdate, Issue, TokenBlacklist, User):
        model.query.delete()
    db.session.commit()
    print("Cleared existing data")


def seed_users():
    """Create sample accounts (skips emails that already exist)."""
    users = []
    for data in SAMPLE_USERS:
        user = User.query.filter_by(email=data['email']).first()
        if not user:
            user = User(
                name=data['name'],
                email=data['email'],
                password_hash=hash_password(SAMPLE_PASSWORD),
                role=data['role'],
                zone=data.get('zone'),
            )
            db.session.add(user)
        users.append(user)
    db.session.commit()
    print(f"Seeded {len(users)} users")
    return users


def seed_issues(users):
    """Create sample issues with their update history."""
    if Issue.query.count() > 0:
        print("Issues already exist, skipping...")
        return

    citizens = [u for u in users if u.role == ROLE_CITIZEN]
    zone_admins = {u.zone: u for u in users if u.role == ROLE_ZONE_ADMIN}

    for i, data in enumerate(SAMPLE_ISSUES):
        citizen = citizens[i % len(citizens)]
        issue = Issue(citizen_id=citizen.id, **data)
        db.session.add(issue)
        db.session.flush()

        db.session.add(IssueUpdate(
            issue_id=issue.id,
            updated_by_id=citizen.id,
            status=issue.status,
            comment='Issue submitted',
        ))

        if issue.status in HANDLED_COMMENTS:
            admin = zone_admins.get(issue.zone)
            if admin:
                issue.assigned_to_id = admin.id
                db.session.add(IssueUpdate(
                    issue_id=issue.id,
                    updated_by_id=admin.id,
                    status=issue.status,
                    comment=HANDLED_COMMENTS[issue.status],
                ))

    db.session.commit()
    print(f"Seeded {len(SAMPLE_ISSUES)} issues")


def main():
    """Run all seed functions."""
    parser = argparse.ArgumentParser(description='Seed CivicReport with sample data')
    parser.add_argument('--reset', action='store_true', help='Delete existing data before seeding')
    args = parser.parse_args()

    app = create_app()

    with app.app_context():
        print("\n" + "=" * 50)
        print("CIVICREPORT - DATABASE SEEDING")
        print("=" * 50 + "\n")

        try:
            if args.reset:
                clear_data()
            users = seed_users()
            seed_issues(users)
        except Exception as e:
            db.session.rollback()
            print(f"\nERROR: {str(e)}\n")
            raise

        print("\nSample login credentials (password: %s):" % SAMPLE_PASSWORD)
        for data in SAMPLE_USERS:
            zone = f" [{data['zone']}]" if data.get('zone') else ''
            print(f"  {data['role']:<8} {data['email']}{zone}")
        print()


if __name__ == '__main__':
    main()
