import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import UploadFile

from gallery_service.config import Settings
from gallery_service.errors import UploadValidationError
from gallery_service.logging_config import get_logger

logger = get_logger(__name__)

IMAGE_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tif", ".tiff", ".heic", ".heif",
}

CHUNK_SIZE = 1024 * 1024


@dataclass
class IngestedFile:
    path: Path
    original_name: str
    content_type: Optional[str]
    size: int


def is_accepted_image(filename: str, content_type: Optional[str]) -> bool:
    # HEIC often arrives as application/octet-stream or with no type at all
    if content_type and content_type.lower().startswith("image/"):
        return True
    return Path(filename).suffix.lower() in IMAGE_EXTENSIONS


async def ingest_upload(file: Optional[UploadFile], current_settings: Settings) -> IngestedFile:
    """Stage one uploaded file in the upload directory under a fresh uuid name.

    Raises UploadValidationError before anything is written when the file is
    missing or not an image, and removes the partial file when the size limit
    is crossed while streaming.
    """
    if file is None or not file.filename:
        raise UploadValidationError("No image file provided")

    max_bytes = current_settings.max_upload_size_bytes
    too_large = f"File size must not exceed {current_settings.MAX_UPLOAD_SIZE_MB} MB"

    logger.info(f"Upload received: '{file.filename}' ({file.content_type})")
    if not is_accepted_image(file.filename, file.content_type):
        logger.warning(f"Rejected '{file.filename}': unsupported type {file.content_type}")
        raise UploadValidationError("Only image files may be uploaded")
    if file.size is not None and file.size > max_bytes:
        logger.warning(f"Rejected '{file.filename}': declared size {file.size} exceeds {max_bytes}")
        raise UploadValidationError(too_large)

    extension = Path(file.filename).suffix.lower()
    staged_path = current_settings.UPLOAD_DIR / f"{uuid.uuid4().hex}{extension}"

    written = 0
    try:
        async with aiofiles.open(staged_path, "wb") as out_file:
            while chunk := await file.read(CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise UploadValidationError(too_large)
                await out_file.write(chunk)
    except Exception:
        staged_path.unlink(missing_ok=True)
        logger.warning(f"Discarded partial upload {staged_path.name} for '{file.filename}'")
        raise

    logger.info(f"Staged '{file.filename}' as {staged_path.name} ({written} bytes)")
    return IngestedFile(
        path=staged_path,
        original_name=file.filename,
        content_type=file.content_type,
        size=written,
    )
