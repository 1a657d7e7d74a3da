"""Centralized settings — all env vars and magic numbers live here."""

from __future__ import annotations

import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from limits import parse as parse_rate_limit
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Load .env before anything reads os.getenv
load_dotenv(Path(__file__).resolve().parent / ".env")

PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_CORS_ORIGINS = [
    "https://easycv.vercel.app",
    "https://jobsprout.ai",
    "http://localhost:3000",
    "https://localhost:3000",
]


class Settings(BaseSettings):
    """Application settings. Values come from environment variables, then defaults."""

    # ── Server ──
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5001, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # ── Request gate ──
    # Empty key disables the x-api-key check entirely.
    api_key: str = Field(default="", alias="FLY_API_KEY")
    cors_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
        alias="CORS_ORIGINS",
    )
    max_body_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_BODY_BYTES")  # 10 MB
    rate_limit: str = Field(default="100/15 minutes", alias="RATE_LIMIT")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")

    # ── Compiler ──
    engine: Literal["xelatex", "tectonic"] = Field(default="xelatex", alias="LATEX_ENGINE")
    compiler_path: str = Field(default="", alias="LATEX_COMPILER_PATH")
    compile_timeout_seconds: float = Field(default=30.0, alias="COMPILE_TIMEOUT_SECONDS")

    # ── Sandbox ──
    tmp_root: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()), alias="TMP_ROOT")
    assets_dir: Path = Field(default=PACKAGE_DIR / "assets", alias="ASSETS_DIR")
    staged_assets: list[str] = Field(default_factory=list, alias="STAGED_ASSETS")

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def _check_limits(self) -> "Settings":
        """Fail fast at startup on limits that would break every request."""
        if self.compile_timeout_seconds <= 0:
            raise ValueError("COMPILE_TIMEOUT_SECONDS must be positive")
        if self.max_body_bytes <= 0:
            raise ValueError("MAX_BODY_BYTES must be positive")
        try:
            parse_rate_limit(self.rate_limit)
        except ValueError as exc:
            raise ValueError(f"Invalid RATE_LIMIT {self.rate_limit!r}: {exc}") from exc
        return self

    @property
    def compiler_executable(self) -> str:
        """Executable to spawn: explicit override, else the engine name on PATH."""
        return self.compiler_path or self.engine

    @property
    def engine_label(self) -> str:
        return {"xelatex": "XeLaTeX", "tectonic": "Tectonic"}[self.engine]

    @property
    def service_name(self) -> str:
        return f"{self.engine}-pdf-service"


@lru_cache
def get_settings() -> Settings:
    """Return cached singleton settings instance."""
    return Settings()
