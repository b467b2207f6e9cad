"""
OCR factory for selecting an engine backend by name or availability.
"""

import logging
from typing import List

from .ocr_protocol import EngineBackend

logger = logging.getLogger(__name__)

BACKEND_NAMES = ("tesseract", "easyocr")


def _build_backend(name: str) -> EngineBackend:
    if name == "tesseract":
        from .tesseract_engine import TesseractBackend

        return TesseractBackend()
    if name == "easyocr":
        from .easyocr_engine import EasyOCRBackend

        return EasyOCRBackend()
    raise ValueError(
        f"Unknown OCR engine '{name}'. Choose from: {', '.join(BACKEND_NAMES)}, auto"
    )


def get_all_available_backends() -> List[EngineBackend]:
    """
    Get all available OCR backends in priority order.

    Returns:
        List of available backends (Tesseract -> EasyOCR)
    """
    backends = []
    for name in BACKEND_NAMES:
        try:
            backend = _build_backend(name)
            if backend.is_available():
                backends.append(backend)
        except ImportError as e:
            logger.debug(f"OCR backend {name} unavailable: {e}")
    return backends


def create_engine_backend(name: str = "tesseract") -> EngineBackend:
    """
    Create an OCR backend.

    Args:
        name: Backend name, or "auto" for the first available one

    Returns:
        Backend instance that builds engines for the worker pool

    Raises:
        ValueError: If the name is unknown or no backend is available for "auto"
    """
    name = name.strip().lower()
    if name != "auto":
        return _build_backend(name)

    backends = get_all_available_backends()
    if not backends:
        raise ValueError("No OCR engine available. Install tesseract or easyocr.")
    logger.info(f"Using OCR engine {backends[0].name}")
    return backends[0]
