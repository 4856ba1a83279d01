# ============================================================
#  HandCue — Dependency Injection
# ============================================================
"""
FastAPI dependency providers for settings and landmark providers.
Each stream builds its own provider; tests override the factory.
"""
from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

from backend.config import Settings, settings
from handcue.types import LandmarkProvider
from handcue.vision.provider import MediaPipeLandmarkProvider

ProviderFactory = Callable[[], LandmarkProvider]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    return settings


def get_provider_factory() -> ProviderFactory:
    """Return a factory producing one MediaPipe provider per stream."""
    cfg = get_settings()

    def factory() -> LandmarkProvider:
        return MediaPipeLandmarkProvider(
            model_path=cfg.hand_model_path,
            model_url=cfg.hand_model_url,
        )

    return factory
