"""Runtime settings for FlameView.

Values come from ``FLAMEVIEW_*`` environment variables or a ``.env`` file
in the working directory.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLAMEVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generation collaborator (Gemini)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout: float = 60.0

    # Sampling for dashboard generation
    generation_temperature: float = 0.7
    generation_top_k: int = 40
    generation_top_p: float = 0.95
    generation_max_tokens: int = 8192

    # Sampling for data-requirement analysis
    analyze_requirements: bool = True
    requirements_temperature: float = 0.3
    requirements_top_k: int = 20
    requirements_top_p: float = 0.8
    requirements_max_tokens: int = 1024

    # Data-fetch collaborator
    data_api_url: str = "http://localhost:5000"
    data_api_token: Optional[str] = None
    project_id: Optional[str] = None
    default_fetch_limit: int = 1000
    prompt_sample_rows: int = 3

    # Render host
    max_render_passes: int = 25

    # Best-effort dashboard storage
    store_path: Path = Path(".flameview/dashboards.json")

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
