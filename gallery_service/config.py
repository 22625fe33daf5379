from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

env_path = Path(__file__).parent / ".env"

class Settings(BaseSettings):
    GALLERY_HOST: str = "0.0.0.0"
    GALLERY_PORT: int = 3000
    UPLOAD_DIR: Path = Path("uploads")
    DATA_FILE: Path = Path("data/paintings.json")
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_SIZE_MB: int = 10
    MAX_IMAGE_DIMENSION: int = 2048
    JPEG_QUALITY: int = 85
    HEIF_TOOL_TIMEOUT_SECONDS: float = 60.0
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=env_path, extra='ignore')

    @property
    def max_upload_size_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

settings = Settings()

def get_settings() -> Settings:
    return settings
