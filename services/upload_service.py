"""
Avatar and photo uploads to blob storage.
Only images are accepted; URLs are persisted on the user record.
"""
import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.orm import Session

from config import Settings
from models.User import User
from services.storage import LazyStorage
from utils.errors import ErrorKind, StorageError, UserError
from utils.logger import get_logger

logger = get_logger("uploads")

IMAGE_EXTENSIONS = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
}


@dataclass
class UploadedFile:
    filename: str
    content_type: Optional[str]
    data: bytes


def sanitize_filename(filename: Optional[str]) -> str:
    name = os.path.basename(filename or "")
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name[-100:] or "image"


def generate_blob_name(filename: Optional[str], index: int = 0) -> str:
    """<millis>-<index>-<random hex>-<sanitized original name>"""
    millis = int(time.time() * 1000)
    return f"{millis}-{index}-{secrets.token_hex(4)}-{sanitize_filename(filename)}"


def resolve_content_type(file: UploadedFile) -> Optional[str]:
    # React Native clients sometimes omit the MIME type
    content_type = file.content_type
    if (not content_type or content_type == "application/octet-stream") and file.filename:
        ext = file.filename.lower().rsplit(".", 1)[-1] if "." in file.filename else ""
        content_type = IMAGE_EXTENSIONS.get(ext, content_type)
    return content_type


def validate_images(files: List[UploadedFile], settings: Settings, max_files: int) -> None:
    if not files:
        raise StorageError(ErrorKind.INVALID, "No files were uploaded")
    if len(files) > max_files:
        raise StorageError(ErrorKind.INVALID, f"At most {max_files} files can be uploaded at once")

    rejected_type = [f.filename for f in files if not (resolve_content_type(f) or "").startswith("image/")]
    if rejected_type:
        raise StorageError(ErrorKind.INVALID, "Only images are allowed", fields=rejected_type)

    too_large = [f.filename for f in files if len(f.data) > settings.max_upload_size_bytes]
    if too_large:
        raise StorageError(
            ErrorKind.INVALID,
            f"File too large. Maximum size: {settings.max_upload_size_mb} MB",
            fields=too_large,
        )


def _put(storage: LazyStorage, key: str, file: UploadedFile) -> str:
    client = storage.get()
    try:
        return client.upload_bytes(key, file.data, resolve_content_type(file) or "application/octet-stream")
    except (BotoCoreError, ClientError) as exc:
        logger.error("Upload of %s failed: %s", key, exc)
        raise StorageError(ErrorKind.INTERNAL, "Error uploading file") from exc


def _delete_by_url(storage: LazyStorage, url: str) -> None:
    """Best-effort delete; failures are logged."""
    client = storage.get()
    key = client.key_from_url(url)
    if not key:
        logger.info("Not deleting %s: not stored in our bucket", url)
        return
    try:
        client.delete(key)
    except (BotoCoreError, ClientError, FileNotFoundError) as exc:
        logger.warning("Could not delete blob %s: %s", key, exc)


def upload_avatar(db: Session, storage: LazyStorage, settings: Settings, user: User, file: UploadedFile) -> str:
    validate_images([file], settings, max_files=1)

    previous = user.avatar
    url = _put(storage, f"avatars/{user.id}/{generate_blob_name(file.filename)}", file)
    user.avatar = url
    db.commit()
    db.refresh(user)

    # the old blob goes only once the new URL is stored
    if previous:
        _delete_by_url(storage, previous)
    logger.info("User %s uploaded a new avatar", user.id)
    return url


def upload_photos(db: Session, storage: LazyStorage, settings: Settings, user: User, files: List[UploadedFile]) -> List[str]:
    validate_images(files, settings, max_files=settings.max_photos_per_upload)

    urls = [
        _put(storage, f"photos/{user.id}/{generate_blob_name(f.filename, i)}", f)
        for i, f in enumerate(files)
    ]
    # reassign so the JSON column is flagged as modified
    user.photos = list(user.photos or []) + urls
    db.commit()
    db.refresh(user)
    logger.info("User %s uploaded %d photos", user.id, len(urls))
    return urls


def upload_plan_photos(storage: LazyStorage, settings: Settings, user: User, files: List[UploadedFile]) -> List[str]:
    validate_images(files, settings, max_files=settings.max_photos_per_upload)
    return [
        _put(storage, f"plans/{user.id}/{generate_blob_name(f.filename, i)}", f)
        for i, f in enumerate(files)
    ]


def delete_photo(db: Session, storage: LazyStorage, user: User, url: str) -> List[str]:
    photos = list(user.photos or [])
    if url not in photos:
        raise UserError(ErrorKind.NOT_FOUND, "Photo not found")

    _delete_by_url(storage, url)
    user.photos = [p for p in photos if p != url]
    db.commit()
    db.refresh(user)
    return user.photos
