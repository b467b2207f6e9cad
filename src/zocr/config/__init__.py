"""
Configuration module for recognition requests and deployment settings.
"""

from .ocr_config import (
    DEFAULT_LANGUAGE,
    DEFAULT_PARAMETERS,
    DEFAULT_POOL_SIZE,
    DEFAULT_TIMEOUT_MS,
    MAX_POOL_SIZE,
    MIN_POOL_SIZE,
    OCRSettings,
    RecognitionConfig,
    Rectangle,
    clamp_pool_size,
)

__all__ = [
    "DEFAULT_LANGUAGE",
    "DEFAULT_PARAMETERS",
    "DEFAULT_POOL_SIZE",
    "DEFAULT_TIMEOUT_MS",
    "MAX_POOL_SIZE",
    "MIN_POOL_SIZE",
    "OCRSettings",
    "RecognitionConfig",
    "Rectangle",
    "clamp_pool_size",
]
