import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaintingRecord(BaseModel):
    id: str
    filename: str
    original_name: str = Field(alias="originalName")
    image_url: str = Field(alias="imageUrl")
    date: datetime
    size: int

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def new(cls, filename: str, original_name: str, size: int, url_prefix: str) -> "PaintingRecord":
        return cls(
            id=str(uuid.uuid4()),
            filename=filename,
            original_name=original_name,
            image_url=f"{url_prefix.rstrip('/')}/{filename}",
            date=datetime.now(timezone.utc),
            size=size,
        )


class PaintingUpdate(BaseModel):
    date: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class UploadResponse(BaseModel):
    success: bool
    message: str
    painting: PaintingRecord


class DeleteResponse(BaseModel):
    success: bool
    message: str


class GalleryStats(BaseModel):
    total_paintings: int = Field(alias="totalPaintings")
    total_size: int = Field(alias="totalSize")
    first_painting: Optional[datetime] = Field(default=None, alias="firstPainting")
    latest_painting: Optional[datetime] = Field(default=None, alias="latestPainting")

    model_config = ConfigDict(populate_by_name=True)
