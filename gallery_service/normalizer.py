import asyncio
import shutil
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

import pillow_heif
from fastapi.concurrency import run_in_threadpool
from PIL import Image, ImageOps

from gallery_service.config import Settings
from gallery_service.errors import TranscodeError
from gallery_service.ingest import IngestedFile
from gallery_service.logging_config import get_logger

logger = get_logger(__name__)

HEIF_EXTENSIONS = {".heic", ".heif"}
HEIF_MEDIA_TYPES = {"image/heic", "image/heif", "image/x-heic", "image/x-heif"}
REENCODE_EXTENSIONS = {".png", ".gif", ".bmp", ".webp"}


class NormalizeKind(str, Enum):
    HEIF = "heif"
    RASTER = "raster"
    PASSTHROUGH = "passthrough"


@dataclass
class NormalizedFile:
    path: Path
    extension: str


def classify(filename: str, content_type: Optional[str]) -> NormalizeKind:
    extension = Path(filename).suffix.lower()
    if extension in HEIF_EXTENSIONS or (content_type or "").lower() in HEIF_MEDIA_TYPES:
        return NormalizeKind.HEIF
    if extension in REENCODE_EXTENSIONS:
        return NormalizeKind.RASTER
    return NormalizeKind.PASSTHROUGH


def reencode_image(image: Image.Image, dst: Path, max_dimension: int, quality: int) -> None:
    """Write `image` as a progressive JPEG no larger than max_dimension on either side."""
    image = ImageOps.exif_transpose(image)
    if image.mode != "RGB":
        image = image.convert("RGB")
    # thumbnail() keeps the aspect ratio and never enlarges
    image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    image.save(dst, "JPEG", quality=quality, optimize=True, progressive=True)


def reencode_file(src: Path, dst: Path, max_dimension: int, quality: int) -> None:
    with Image.open(src) as image:
        reencode_image(image, dst, max_dimension, quality)


class HeifTranscoder:
    """One way of turning a HEIF file into a bounded JPEG at `dst`.

    transcode() raises on failure; ImageNormalizer moves on to the next one.
    """

    name = "heif"

    def available(self) -> bool:
        return True

    async def transcode(self, src: Path, dst: Path, current_settings: Settings) -> None:
        raise NotImplementedError


class PillowHeifTranscoder(HeifTranscoder):
    name = "pillow-heif"

    @staticmethod
    def _convert(src: Path, dst: Path, max_dimension: int, quality: int) -> None:
        heif_file = pillow_heif.open_heif(src, convert_hdr_to_8bit=True)
        image = Image.frombytes(
            heif_file.mode,
            heif_file.size,
            heif_file.data,
            "raw",
            heif_file.mode,
            heif_file.stride,
        )
        reencode_image(image, dst, max_dimension, quality)

    async def transcode(self, src: Path, dst: Path, current_settings: Settings) -> None:
        await run_in_threadpool(
            self._convert, src, dst, current_settings.MAX_IMAGE_DIMENSION, current_settings.JPEG_QUALITY
        )


class SystemToolTranscoder(HeifTranscoder):
    """Runs a command-line converter to an intermediate JPEG, then re-encodes it.

    `args` may reference {src} and {dst}; {dst} is the intermediate file, which
    is removed whatever the outcome.
    """

    def __init__(self, executable: str, args: Sequence[str]):
        self.executable = executable
        self.args = list(args)
        self.name = Path(executable).name

    def available(self) -> bool:
        return shutil.which(self.executable) is not None

    async def _run_tool(self, tool: str, src: Path, intermediate: Path, timeout: float) -> None:
        argv = [arg.format(src=src, dst=intermediate) for arg in self.args]
        logger.info(f"Running {self.name} on {src.name}")
        proc = await asyncio.create_subprocess_exec(
            tool, *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise TranscodeError(f"{self.name} timed out after {timeout}s")

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise TranscodeError(f"{self.name} exited with {proc.returncode}: {message}")
        if not intermediate.exists():
            raise TranscodeError(f"{self.name} produced no output")

    async def transcode(self, src: Path, dst: Path, current_settings: Settings) -> None:
        tool = shutil.which(self.executable)
        if tool is None:
            raise TranscodeError(f"{self.name} is not installed")

        intermediate = dst.with_name(f"{dst.stem}.{self.name}.tmp.jpg")
        try:
            await self._run_tool(tool, src, intermediate, current_settings.HEIF_TOOL_TIMEOUT_SECONDS)
            await run_in_threadpool(
                reencode_file,
                intermediate,
                dst,
                current_settings.MAX_IMAGE_DIMENSION,
                current_settings.JPEG_QUALITY,
            )
        finally:
            intermediate.unlink(missing_ok=True)


def default_heif_transcoders() -> List[HeifTranscoder]:
    return [
        PillowHeifTranscoder(),
        SystemToolTranscoder("sips", ["-s", "format", "jpeg", "{src}", "--out", "{dst}"]),
        SystemToolTranscoder("heif-convert", ["{src}", "{dst}"]),
    ]


class ImageNormalizer:
    def __init__(self, heif_transcoders: Optional[List[HeifTranscoder]] = None):
        if heif_transcoders is None:
            heif_transcoders = default_heif_transcoders()
        self.heif_transcoders = heif_transcoders

    async def normalize(self, ingested: IngestedFile, current_settings: Settings) -> NormalizedFile:
        kind = classify(ingested.original_name, ingested.content_type)
        if kind is NormalizeKind.PASSTHROUGH:
            logger.info(f"{ingested.path.name} is kept as uploaded")
            return NormalizedFile(path=ingested.path, extension=ingested.path.suffix)

        dst = ingested.path.with_suffix(".jpg")
        if dst == ingested.path:
            dst = ingested.path.with_name(f"{uuid.uuid4().hex}.jpg")

        if kind is NormalizeKind.HEIF:
            await self._transcode_heif(ingested.path, dst, current_settings)
        else:
            await self._reencode(ingested.path, dst, current_settings)

        logger.info(f"Normalized {ingested.path.name} -> {dst.name}")
        return NormalizedFile(path=dst, extension=dst.suffix)

    async def _reencode(self, src: Path, dst: Path, current_settings: Settings) -> None:
        try:
            await run_in_threadpool(
                reencode_file, src, dst, current_settings.MAX_IMAGE_DIMENSION, current_settings.JPEG_QUALITY
            )
        except Exception as e:
            logger.error(f"Re-encoding {src.name} failed: {e}")
            dst.unlink(missing_ok=True)
            raise TranscodeError("Image conversion failed") from e

    async def _transcode_heif(self, src: Path, dst: Path, current_settings: Settings) -> None:
        for transcoder in self.heif_transcoders:
            if not transcoder.available():
                logger.info(f"HEIF transcoder {transcoder.name} is not available, skipping")
                continue
            try:
                await transcoder.transcode(src, dst, current_settings)
                logger.info(f"HEIF transcoded with {transcoder.name}: {src.name}")
                return
            except Exception as e:
                logger.warning(f"HEIF transcoder {transcoder.name} failed for {src.name}: {e}")
                dst.unlink(missing_ok=True)

        logger.error(f"No HEIF transcoder could convert {src.name}")
        raise TranscodeError("HEIF conversion failed")


def get_normalizer() -> ImageNormalizer:
    return ImageNormalizer()
