# EquipRent - Construction Equipment Rental Marketplace
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Local disk storage for uploaded verification documents.

Files live under ``storage.media_root``/verification/<user_id>/ with a random
name; only the path relative to the media root is stored in the database.
"""

import logging
import uuid
from pathlib import Path
from typing import Tuple

import aiofiles
from fastapi import UploadFile

from equiprent.config import get_settings
from equiprent.exceptions import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

_CONTENT_TYPE_TO_EXT = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}

# Extension -> (file_type, media type)
_EXT_INFO = {
    ".pdf": ("PDF", "application/pdf"),
    ".jpg": ("IMAGE", "image/jpeg"),
    ".jpeg": ("IMAGE", "image/jpeg"),
    ".png": ("IMAGE", "image/png"),
}


def get_media_root() -> Path:
    return Path(get_settings().storage.media_root)


def _resolve_extension(file: UploadFile) -> str:
    """Return the file extension, trusting the filename before the content type.

    Raises:
        BadRequestError: the type is not one of the allowed extensions.
    """
    allowed = {ext.lower() for ext in get_settings().storage.allowed_extensions}
    filename = file.filename or ""

    ext = Path(filename).suffix.lower()
    if ext in allowed:
        return ext

    content_type = (file.content_type or "").lower()
    ext = _CONTENT_TYPE_TO_EXT.get(content_type)
    if ext and ext in allowed:
        return ext

    raise BadRequestError(
        f"Unsupported file type for '{filename}'. "
        f"Allowed: {', '.join(sorted(allowed))}"
    )


def file_type_for(path: str) -> str:
    """Classify a stored file as PDF, IMAGE or OTHER."""
    return _EXT_INFO.get(Path(path).suffix.lower(), ("OTHER", None))[0]


def media_type_for(path: str) -> str:
    return _EXT_INFO.get(Path(path).suffix.lower(), (None, "application/octet-stream"))[1]


async def save_verification_file(file: UploadFile, user_id: int) -> Tuple[str, str]:
    """Validate and write an uploaded document to disk.

    Returns:
        Tuple of (storage path relative to the media root, file type).
    """
    settings = get_settings()
    ext = _resolve_extension(file)

    contents = await file.read()
    if not contents:
        raise BadRequestError("Uploaded file is empty")

    max_bytes = settings.storage.max_document_size_mb * 1024 * 1024
    if len(contents) > max_bytes:
        raise BadRequestError(
            f"File '{file.filename}' exceeds {settings.storage.max_document_size_mb}MB limit"
        )

    relative_path = Path("verification") / str(user_id) / f"{uuid.uuid4().hex}{ext}"
    target = get_media_root() / relative_path
    target.parent.mkdir(parents=True, exist_ok=True)

    async with aiofiles.open(target, "wb") as out:
        await out.write(contents)

    logger.info("Stored verification file %s (%d bytes)", relative_path, len(contents))
    return relative_path.as_posix(), file_type_for(relative_path.name)


def resolve_stored_file(storage_path: str) -> Path:
    """Return the absolute path of a stored file.

    Raises:
        NotFoundError: the path escapes the media root or the file is gone.
    """
    root = get_media_root().resolve()
    path = (root / storage_path).resolve()
    if root not in path.parents or not path.is_file():
        raise NotFoundError("Document file not found")
    return path


def delete_stored_file(storage_path: str) -> bool:
    """Remove a stored file. Missing files are ignored."""
    root = get_media_root().resolve()
    path = (root / storage_path).resolve()
    if root not in path.parents:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError:
        logger.exception("Could not delete stored file %s", storage_path)
        return False
    return True
