"""
OCR engine wrappers and backend selection.
"""

from .ocr_protocol import EngineBackend, OCREngine
from .ocr_factory import create_engine_backend, get_all_available_backends

__all__ = [
    "EngineBackend",
    "OCREngine",
    "create_engine_backend",
    "get_all_available_backends",
]
