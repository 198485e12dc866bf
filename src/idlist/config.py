from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IdlistSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="IDLIST_", extra="ignore")

    # Device channel
    adb_path: str = Field(default="adb")
    device_serial: str | None = Field(default=None)
    monkey_port: int = Field(default=11534)

    # Build under analysis. "release" | "beta" | "netease"
    build_version: str | None = Field(default=None)
    package_type: str = Field(default="release")

    # Cache and output locations
    cache_dir: Path = Field(default=Path("output/cache"))
    cache_namespace: str = Field(default="autocompleted")

    # Streaming capture (minicap). Falls back to screencap when unavailable.
    use_minicap: bool = Field(default=True)
    minicap_port: int = Field(default=1717)
    minicap_dir: str = Field(default="/data/local/tmp")

    # Tesseract
    tesseract_cmd: str | None = Field(default=None)
    tessdata_dir: Path | None = Field(default=None)
    ocr_lang: str = Field(default="eng")
    ocr_psm: int = Field(default=7)
    ocr_oem: int = Field(default=3)
    ocr_threshold: int = Field(default=60)
    mistakes_file: Path | None = Field(default=None)

    # Command box rectangle per SurfaceOrientation: [x, y, width, height]
    command_area_rects: dict[int, tuple[int, int, int, int]] = Field(
        default_factory=lambda: {
            1: (479, 950, 1650, 125),
            3: (410, 950, 1650, 125),
        }
    )

    # Verification retries around each capture+recognize step
    retry_attempts: int = Field(default=3)
    retry_interval_seconds: float = Field(default=0.0)

    notify_enabled: bool = Field(default=True)
    log_level: str = Field(default="INFO")


def get_settings() -> IdlistSettings:
    return IdlistSettings()
