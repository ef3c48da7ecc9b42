from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Service settings, read from VCARD_QR_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="VCARD_QR_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    box_size: int = Field(default=20, gt=0, description="Pixels per QR module.")
    border: int = Field(default=4, ge=0, description="Quiet zone width in modules.")
    export_dir: Path = Field(default=Path("exports"), description="Where /qrcode/save writes images.")
    log_level: str = Field(default="INFO", min_length=1)


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
