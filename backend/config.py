"""HandCue — Centralised Settings (Pydantic v2).

Single source of truth for all configuration.
Loads from .env, environment variables, or defaults.
"""

from __future__ import annotations

import json

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from handcue.inference.session import SessionConfig
from handcue.types import ProviderOptions
from handcue.vision.provider import HAND_MODEL_PATH, HAND_MODEL_URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HANDCUE_",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "HandCue"
    app_version: str = "0.1.0"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # ── Server ───────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    cors_origins: list[str] = ["*"]

    # ── Landmark provider ────────────────────────────────────
    hand_model_path: str = HAND_MODEL_PATH
    hand_model_url: str = HAND_MODEL_URL
    prefetch_model: bool = True
    max_hands: int = 1
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    # ── Gesture session ──────────────────────────────────────
    min_confidence: float = 0.70
    debounce_ms: int = 100
    swipe_cooldown_ms: int = 1000
    history_size: int = 10
    pinch_threshold: float = 0.05
    swipe_window_ms: int = 600
    swipe_min_distance: float = 0.2
    enable_swipes: bool = True
    result_timeout_ms: float | None = None

    # ── Camera ───────────────────────────────────────────────
    camera_index: int = 0
    camera_width: int = 640
    camera_height: int = 480

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return json.loads(v)
        return v

    @field_validator("model_complexity")
    @classmethod
    def _check_complexity(cls, v: int) -> int:
        if v not in (0, 1):
            raise ValueError("model_complexity must be 0 or 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            min_confidence=self.min_confidence,
            debounce_ms=self.debounce_ms,
            swipe_cooldown_ms=self.swipe_cooldown_ms,
            history_size=self.history_size,
            pinch_threshold=self.pinch_threshold,
            swipe_window_ms=self.swipe_window_ms,
            swipe_min_distance=self.swipe_min_distance,
            enable_swipes=self.enable_swipes,
            result_timeout_ms=self.result_timeout_ms,
        )

    def provider_options(self) -> ProviderOptions:
        return ProviderOptions(
            max_hands=self.max_hands,
            model_complexity=self.model_complexity,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )


settings = Settings()
