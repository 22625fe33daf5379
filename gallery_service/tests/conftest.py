import io
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from typing import AsyncGenerator

import pytest
import pytest_asyncio
import httpx
from httpx import AsyncClient
from PIL import Image

from gallery_service.main import app
from gallery_service.config import Settings, get_settings


def _image_bytes(fmt: str = "PNG", size=(64, 48), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def _write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(0o755)
    return path


@pytest.fixture
def make_image():
    return _image_bytes


@pytest.fixture
def write_script():
    return _write_script


@pytest.fixture
def work_dir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture(scope="function")
def gallery_settings(tmp_path) -> Settings:
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return Settings(
        UPLOAD_DIR=upload_dir,
        DATA_FILE=data_dir / "paintings.json",
        MAX_UPLOAD_SIZE_MB=10,
        HEIF_TOOL_TIMEOUT_SECONDS=5,
    )


@pytest_asyncio.fixture(scope="function")
async def async_client(gallery_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_settings] = lambda: gallery_settings

    transport = httpx.ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testgallery") as client:
        yield client

    app.dependency_overrides.clear()
