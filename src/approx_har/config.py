"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _resolve_db_dir() -> Path:
    """Return the directory that holds the SQLite file."""
    return _PROJECT_ROOT / "data"


_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_resolve_db_dir() / 'approx_har.db'}"


class Settings(BaseSettings):
    """All runtime configuration for signal processing and trace campaigns.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.
    """

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────
    database_url: str = _DEFAULT_DB_URL

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["auto", "console", "json"] = "auto"

    # ── Signal processing ─────────────────────────────────────
    sensor_axis_order: Literal["default", "portrait_phone"] = "default"
    sampling_interval_us: int = 20_000  # 50 Hz
    gravity_ms2: float = 9.807
    filter_prime_steady_state: bool = True

    # ── Inference ─────────────────────────────────────────────
    num_classes: int = 6
    inference_backend: str = ""  # "package.module:attribute"
    inference_timeout_seconds: float = 30.0

    # ── Adaptation ────────────────────────────────────────────
    num_configurations: int = 8  # configuration 0 is exact inference
    adaptation_confidence_threshold: float = 0.9
    kalman_process_noise: float = 0.05
    kalman_measurement_noise: float = 1.0
    trace_engines: list[str] = Field(
        default_factory=lambda: ["state:1", "state:2", "kalman:1", "kalman:2"]
    )

    @property
    def sample_rate_hz(self) -> float:
        return 1_000_000.0 / self.sampling_interval_us


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
