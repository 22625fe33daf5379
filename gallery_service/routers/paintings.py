from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from gallery_service import crud, schemas
from gallery_service.config import Settings, get_settings
from gallery_service.normalizer import ImageNormalizer, get_normalizer
from gallery_service.store import PaintingStore, get_store
from gallery_service.upload_pipeline import process_upload
from gallery_service.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["paintings"],
)

@router.get("/paintings", response_model=List[schemas.PaintingRecord])
async def list_paintings(store: PaintingStore = Depends(get_store)):
    paintings = await crud.list_paintings(store)
    logger.debug(f"Listing {len(paintings)} paintings")
    return paintings

@router.post("/upload", response_model=schemas.UploadResponse)
async def upload_painting(
    painting: Optional[UploadFile] = File(None),
    store: PaintingStore = Depends(get_store),
    normalizer: ImageNormalizer = Depends(get_normalizer),
    current_settings: Settings = Depends(get_settings),
):
    try:
        record = await process_upload(painting, store, normalizer, current_settings)
    finally:
        if painting is not None:
            await painting.close()
    return schemas.UploadResponse(success=True, message="Painting uploaded successfully", painting=record)

@router.get("/paintings/{painting_id}", response_model=schemas.PaintingRecord)
async def get_painting(painting_id: str, store: PaintingStore = Depends(get_store)):
    painting = await crud.get_painting_by_id(store, painting_id)
    if not painting:
        logger.warning(f"Painting not found: ID {painting_id}")
        raise HTTPException(status_code=404, detail="Painting not found")
    return painting

@router.put("/paintings/{painting_id}", response_model=schemas.PaintingRecord)
async def update_painting(
    painting_id: str,
    update: schemas.PaintingUpdate,
    store: PaintingStore = Depends(get_store),
):
    painting = await crud.update_painting_date(store, painting_id, update.date)
    if not painting:
        logger.warning(f"Cannot update, painting not found: ID {painting_id}")
        raise HTTPException(status_code=404, detail="Painting not found")
    logger.info(f"Updated painting {painting_id}, date is now {painting.date.isoformat()}")
    return painting

@router.delete("/paintings/{painting_id}", response_model=schemas.DeleteResponse)
async def delete_painting(
    painting_id: str,
    store: PaintingStore = Depends(get_store),
    current_settings: Settings = Depends(get_settings),
):
    deleted = await crud.delete_painting(store, current_settings.UPLOAD_DIR, painting_id)
    if not deleted:
        logger.warning(f"Cannot delete, painting not found: ID {painting_id}")
        raise HTTPException(status_code=404, detail="Painting not found")
    logger.info(f"Deleted painting {painting_id}")
    return schemas.DeleteResponse(success=True, message="Painting deleted successfully")

@router.get("/stats", response_model=schemas.GalleryStats)
async def get_stats(store: PaintingStore = Depends(get_store)):
    return await crud.compute_stats(store)
