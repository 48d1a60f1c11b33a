# clinic_admin/services/file_service.py
"""
Media files the chat agent can send, stored on local disk and served by URL
"""
import logging
import os
from typing import Dict, List, Optional

from flask import current_app
from werkzeug.utils import secure_filename

from clinic_admin.extensions import db
from clinic_admin.models import MediaFile
from clinic_admin.utils.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    UnprocessableError,
    ValidationError,
)
from clinic_admin.utils.validators import InputValidator

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    '.pdf': 'document',
    '.docx': 'document',
    '.jpg': 'image',
    '.jpeg': 'image',
    '.png': 'image',
    '.mp4': 'video',
    '.mp3': 'audio',
}


def get_media_type(filename: str) -> Optional[str]:
    return MEDIA_TYPES.get(os.path.splitext(filename)[1].lower())


def public_url(category: str, filename: str) -> str:
    base_url = current_app.config.get('FILES_BASE_URL')
    if not base_url:
        raise ConfigurationError("FILES_BASE_URL is not configured")
    return f"{base_url.rstrip('/')}/{category}/{filename}"


class FileService:
    """Stores uploads under FILES_BASE_DIR/<category>/<filename>"""

    @staticmethod
    def _base_dir() -> str:
        return os.path.abspath(current_app.config['FILES_BASE_DIR'])

    def _directory_for(self, category: str) -> str:
        """Category folder, which must sit directly under FILES_BASE_DIR"""
        if '/' in category or '\\' in category or category.startswith('.'):
            raise ValidationError("Category must not contain path separators or start with '.'")

        base_dir = self._base_dir()
        directory = os.path.abspath(os.path.join(base_dir, category))
        if os.path.dirname(directory) != base_dir:
            raise ValidationError("Category must not contain path separators or start with '.'")
        return directory

    @staticmethod
    def _size(upload) -> int:
        stream = upload.stream
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
        return size

    def upload(self, upload, category: Optional[str]) -> MediaFile:
        if upload is None or not upload.filename:
            raise ValidationError("File is required")

        category = InputValidator.normalize_category(category, collapse_spaces=True)
        if not category:
            raise ValidationError("Category is required")
        directory = self._directory_for(category)

        max_size = current_app.config['MAX_FILE_SIZE']
        size = self._size(upload)
        if size > max_size:
            raise UnprocessableError(
                f"File too large. Limit: {max_size // (1024 * 1024)}MB. Received: {size / 1024 / 1024:.1f}MB"
            )

        filename = secure_filename(upload.filename)
        mediatype = get_media_type(filename)
        if mediatype is None:
            extension = os.path.splitext(filename)[1].lower() or filename
            raise UnprocessableError(
                f"Unsupported extension: {extension}. Use: pdf, docx, jpg, jpeg, png, mp4, mp3"
            )

        url = public_url(category, filename)

        os.makedirs(directory, exist_ok=True)
        file_path = os.path.join(directory, filename)
        if os.path.exists(file_path):
            raise ConflictError(
                f"File '{filename}' already exists in category '{category}'. Delete it before replacing."
            )

        upload.save(file_path)

        media = MediaFile(category=category, filename=filename, mediatype=mediatype, path=url)
        db.session.add(media)
        db.session.commit()

        logger.info(f"Stored {filename} ({mediatype}, {size} bytes) in '{category}'")
        return media

    @staticmethod
    def list_files(category: Optional[str] = None) -> List[Dict]:
        query = MediaFile.query
        if category:
            query = query.filter_by(category=category.lower())
        return [media.to_dict() for media in query.order_by(MediaFile.created_at.desc()).all()]

    def _remove_from_disk(self, category: str, filename: str):
        directory = self._directory_for(category)
        file_path = os.path.join(directory, secure_filename(filename))

        if os.path.exists(file_path):
            os.remove(file_path)
        if os.path.isdir(directory) and not os.listdir(directory):
            os.rmdir(directory)

    def delete(self, file_id: int) -> int:
        media = db.session.get(MediaFile, file_id)
        if media is None:
            raise NotFoundError("File not found")

        try:
            self._remove_from_disk(media.category, media.filename)
        except ValidationError as e:
            logger.warning(f"Skipping disk removal of {media.filename} outside the files root: {e}")
        except OSError as e:
            logger.warning(f"Could not remove {media.filename} from disk: {e}")

        db.session.delete(media)
        db.session.commit()
        logger.info(f"File {file_id} ({media.filename}) deleted")
        return 1
