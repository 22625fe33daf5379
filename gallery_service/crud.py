from datetime import datetime
from pathlib import Path
from typing import List, Optional

from gallery_service.schemas import GalleryStats, PaintingRecord
from gallery_service.store import PaintingStore
from gallery_service.logging_config import get_logger

logger = get_logger(__name__)

async def list_paintings(store: PaintingStore) -> List[PaintingRecord]:
    paintings = await store.load()
    return sorted(paintings, key=lambda p: p.date, reverse=True)

async def get_painting_by_id(store: PaintingStore, painting_id: str) -> Optional[PaintingRecord]:
    for painting in await store.load():
        if painting.id == painting_id:
            return painting
    return None

async def create_painting(store: PaintingStore, painting: PaintingRecord) -> PaintingRecord:
    paintings = await store.load()
    paintings.append(painting)
    await store.save(paintings)
    return painting

async def update_painting_date(store: PaintingStore, painting_id: str, date: Optional[datetime]) -> Optional[PaintingRecord]:
    paintings = await store.load()
    painting = next((p for p in paintings if p.id == painting_id), None)
    if painting is None:
        return None
    if date is not None:
        painting.date = date
    await store.save(paintings)
    return painting

async def delete_painting(store: PaintingStore, upload_dir: Path, painting_id: str) -> bool:
    paintings = await store.load()
    painting = next((p for p in paintings if p.id == painting_id), None)
    if painting is None:
        return False

    image_path = upload_dir / painting.filename
    try:
        image_path.unlink()
        logger.info(f"Removed image file {image_path}")
    except FileNotFoundError:
        logger.warning(f"Image file {image_path} for painting {painting_id} was already missing")

    paintings.remove(painting)
    await store.save(paintings)
    return True

async def compute_stats(store: PaintingStore) -> GalleryStats:
    paintings = await store.load()
    dates = [p.date for p in paintings]
    return GalleryStats(
        total_paintings=len(paintings),
        total_size=sum(p.size for p in paintings),
        first_painting=min(dates) if dates else None,
        latest_painting=max(dates) if dates else None,
    )
