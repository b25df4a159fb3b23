"""
CivicReport - Database Models
Import all models here for Flask-Migrate to detect them
"""
from apps.civic_api import db

from .user import User
from .issue import Issue, IssueUpdate
from .notification import Notification
from .token_blacklist import TokenBlacklist

__all__ = [
    'User',
    'Issue',
    'IssueUpdate',
    'Notification',
    'TokenBlacklist',
]
