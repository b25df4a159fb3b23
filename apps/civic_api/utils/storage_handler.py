"""
Issue photo storage.

Photos are written under ``UPLOAD_FOLDER/issues/`` with a unique name and
referenced on the Issue by their public ``/uploads/...`` path. The bytes
are never interpreted beyond size and extension checks.
"""
from __future__ import annotations

import os
import logging
import uuid
from pathlib import Path
from typing import BinaryIO, Union

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from apps.civic_api.utils.constants import ALLOWED_PHOTO_EXTENSIONS
from apps.civic_api.utils.security import StoreError, ValidationError
from apps.civic_api.utils.validators import validate_file_extension, validate_file_size

logger = logging.getLogger(__name__)

ISSUE_PHOTO_CATEGORY = 'issues'


def validate_issue_photo(file: Union[FileStorage, BinaryIO]) -> str:
    """Check extension and size; return the secured original filename."""
    original_filename = getattr(file, 'filename', None) or ''
    safe_filename = secure_filename(original_filename)
    if not safe_filename:
        raise ValidationError('No filename provided', field='photo')

    validate_file_extension(safe_filename, ALLOWED_PHOTO_EXTENSIONS)

    file.seek(0, os.SEEK_END)
    file_size = file.tell()
    file.seek(0)
    validate_file_size(file_size, current_app.config.get('MAX_PHOTO_SIZE_MB', 5))
    return safe_filename


def save_issue_photo(file: Union[FileStorage, BinaryIO], safe_filename: str = None) -> str:
    """
    Save an issue photo to the local filesystem.

    Args:
        file: FileStorage or file-like object
        safe_filename: Result of validate_issue_photo (validated again if omitted)

    Returns:
        Path relative to UPLOAD_FOLDER, e.g. ``issues/3f2a..._pothole.jpg``

    Raises:
        ValidationError: If the file is not an acceptable photo
        StoreError: If the file cannot be written
    """
    if safe_filename is None:
        safe_filename = validate_issue_photo(file)

    upload_base = Path(current_app.config.get('UPLOAD_FOLDER', 'uploads'))
    directory = upload_base / ISSUE_PHOTO_CATEGORY
    unique_filename = f"{uuid.uuid4().hex}_{safe_filename}"
    file_path = directory / unique_filename

    try:
        directory.mkdir(parents=True, exist_ok=True)
        file.seek(0)
        if hasattr(file, 'save'):
            file.save(str(file_path))
        else:
            with open(file_path, 'wb') as f:
                f.write(file.read())
    except OSError as e:
        logger.error(f"Failed to save issue photo: {e}")
        raise StoreError('Failed to store uploaded photo', details=str(e))

    relative_path = f"{ISSUE_PHOTO_CATEGORY}/{unique_filename}"
    logger.info(f"Issue photo saved: {relative_path}")
    return relative_path


def delete_issue_photo(relative_path: str):
    """Best-effort removal of a photo whose issue was never persisted."""
    if not relative_path:
        return
    upload_base = Path(current_app.config.get('UPLOAD_FOLDER', 'uploads'))
    try:
        (upload_base / relative_path).unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove orphaned photo %s: %s", relative_path, e)


def get_file_url(relative_path: str) -> str | None:
    """Public URL path for a stored photo."""
    if not relative_path:
        return None
    return f"/uploads/{relative_path.lstrip('/')}"
