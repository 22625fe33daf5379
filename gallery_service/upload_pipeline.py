from pathlib import Path
from typing import List, Optional

from fastapi import UploadFile

from gallery_service import crud
from gallery_service.config import Settings
from gallery_service.ingest import ingest_upload
from gallery_service.normalizer import ImageNormalizer
from gallery_service.schemas import PaintingRecord
from gallery_service.store import PaintingStore
from gallery_service.logging_config import get_logger

logger = get_logger(__name__)


def _discard(paths: List[Path]) -> None:
    for path in paths:
        try:
            path.unlink(missing_ok=True)
            logger.info(f"Cleaned up {path.name}")
        except OSError as e:
            logger.error(f"Could not remove {path}: {e}")


async def process_upload(
    file: Optional[UploadFile],
    store: PaintingStore,
    normalizer: ImageNormalizer,
    current_settings: Settings,
) -> PaintingRecord:
    """Ingest, normalize and register one upload.

    On success exactly one image file remains in the upload directory and it
    is referenced by the returned record. On any failure every file staged
    for this upload is removed before the error propagates.
    """
    ingested = await ingest_upload(file, current_settings)
    staged = [ingested.path]

    try:
        normalized = await normalizer.normalize(ingested, current_settings)

        if normalized.path != ingested.path:
            staged.append(normalized.path)
            ingested.path.unlink(missing_ok=True)
            staged.remove(ingested.path)

        painting = PaintingRecord.new(
            filename=normalized.path.name,
            original_name=ingested.original_name,
            size=normalized.path.stat().st_size,
            url_prefix=current_settings.UPLOAD_URL_PREFIX,
        )

        await crud.create_painting(store, painting)
    except Exception:
        _discard(staged)
        raise

    logger.info(f"Registered painting {painting.id} ({painting.filename}, {painting.size} bytes)")
    return painting
