"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Portofino application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Paths
    app_dir: Path = Path("./app")
    skins_dir: Path = Path("./skins")

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # Page and configuration caches
    page_cache_size: int = Field(default=1000, ge=1)
    page_cache_check_frequency: int = Field(default=5, ge=0)
    configuration_cache_size: int = Field(default=1000, ge=1)
    configuration_cache_check_frequency: int = Field(default=5, ge=0)
    cache_refresh_workers: int = Field(default=4, ge=1)

    # Templates
    skin: str = "default"
    default_template: str = "/templates/default"

    def validate_runtime_paths(self) -> None:
        """Validate that the configured application directory is usable."""
        if self.app_dir.exists() and not self.app_dir.is_dir():
            msg = f"APP_DIR exists but is not a directory: {self.app_dir}"
            raise ValueError(msg)
