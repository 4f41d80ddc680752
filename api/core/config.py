"""Application configuration using pydantic-settings."""

import tempfile
from functools import cached_property, lru_cache
from pathlib import Path
from typing import Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "certificates"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Destination bucket for rendered certificates - set via BUCKET env var
    bucket: str = ""

    # Empty means "whatever project the ambient credentials belong to"
    gcp_project: str = ""

    storage_public_base_url: str = "https://storage.googleapis.com"
    certificate_cache_max_age: int = 30000

    # Directory holding the certificate layouts (Jinja2 SVG templates)
    templates_dir: str = ""

    # Where rasterized images are written before upload.
    # Defaults to the system temp dir; files are removed after each request.
    output_dir: str = ""

    # 1.0 renders the template at its own viewBox size
    raster_scale: float = 1.0

    render_timeout_seconds: float = 30.0
    upload_timeout_seconds: float = 60.0

    # Legacy clients expect the literal "success" body.
    # Set RESPOND_WITH_URL=true to return the certificate URL instead.
    respond_with_url: bool = False

    # Feature flags, off in production
    debug: bool = False  # Enables docs, relaxes validation
    enable_docs: bool = False  # Swagger UI at /docs

    @model_validator(mode="after")
    def validate_config(self) -> Self:
        if not self.debug and not self.bucket:
            raise ValueError(
                "BUCKET must be set to the destination storage bucket. "
                "Set DEBUG=true to skip this check in development."
            )
        if self.raster_scale <= 0:
            raise ValueError("RASTER_SCALE must be greater than zero.")
        return self

    @cached_property
    def templates_dir_path(self) -> Path:
        """Defaults to api/templates/certificates if TEMPLATES_DIR not set."""
        if self.templates_dir:
            return Path(self.templates_dir)
        return _DEFAULT_TEMPLATES_DIR

    @cached_property
    def output_dir_path(self) -> Path:
        if self.output_dir:
            return Path(self.output_dir)
        return Path(tempfile.gettempdir())

    @property
    def certificate_cache_control(self) -> str:
        return f"public, max-age={self.certificate_cache_max_age}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this in tests to reset settings between test cases.
    After clearing, the next get_settings() call will create
    a fresh Settings instance with current environment variables.

    Example:
        def test_something(monkeypatch):
            monkeypatch.setenv("BUCKET", "test-bucket")
            clear_settings_cache()
            settings = get_settings()  # Fresh instance
    """
    get_settings.cache_clear()
