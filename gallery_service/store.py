import json
from pathlib import Path
from typing import List

import aiofiles
from fastapi import Depends
from pydantic import TypeAdapter, ValidationError

from gallery_service.config import Settings, get_settings
from gallery_service.errors import PersistenceError
from gallery_service.logging_config import get_logger
from gallery_service.schemas import PaintingRecord

logger = get_logger(__name__)

_records_adapter = TypeAdapter(List[PaintingRecord])


class PaintingStore:
    """The whole catalog lives in one JSON array, rewritten on every save.

    There is no locking: concurrent read-modify-write cycles are last-writer-wins.
    """

    def __init__(self, data_file: Path):
        self.data_file = Path(data_file)

    async def load(self) -> List[PaintingRecord]:
        try:
            async with aiofiles.open(self.data_file, "rb") as f:
                raw = await f.read()
        except FileNotFoundError:
            logger.debug(f"No metadata file at {self.data_file}, starting with an empty catalog")
            return []
        except OSError as e:
            logger.error(f"Could not read metadata file {self.data_file}: {e}")
            raise PersistenceError("Failed to read painting metadata") from e

        try:
            return _records_adapter.validate_python(json.loads(raw.decode("utf-8")))
        except (ValueError, ValidationError):
            logger.exception(f"Metadata file {self.data_file} is corrupt, treating catalog as empty")
            return []

    async def save(self, paintings: List[PaintingRecord]) -> None:
        payload = json.dumps(
            [p.model_dump(mode="json", by_alias=True) for p in paintings],
            indent=2,
            ensure_ascii=False,
        )
        try:
            async with aiofiles.open(self.data_file, "w", encoding="utf-8") as f:
                await f.write(payload)
        except OSError as e:
            logger.error(f"Could not write metadata file {self.data_file}: {e}")
            raise PersistenceError("Failed to save painting metadata") from e
        logger.debug(f"Saved {len(paintings)} paintings to {self.data_file}")


def get_store(current_settings: Settings = Depends(get_settings)) -> PaintingStore:
    return PaintingStore(current_settings.DATA_FILE)
