"""
zocr - image-to-text node backed by a bounded pool of OCR engines.
"""

from .config import OCRSettings, RecognitionConfig, Rectangle
from .errors import (
    CapabilityMissingError,
    ConfigurationError,
    EngineFailureError,
    OCRError,
    RecognitionTimeoutError,
    SourceUnavailableError,
    UnsupportedPayloadError,
)
from .schemas import OCRWord, RecognitionResult, StatusNotice
from .services import (
    EngineCapabilities,
    EngineHandle,
    OCRNode,
    RecognitionSession,
    WorkerPool,
    create_ocr_node,
    resolve_image_source,
)

__version__ = "0.1.0"

__all__ = [
    "OCRSettings",
    "RecognitionConfig",
    "Rectangle",
    "CapabilityMissingError",
    "ConfigurationError",
    "EngineFailureError",
    "OCRError",
    "RecognitionTimeoutError",
    "SourceUnavailableError",
    "UnsupportedPayloadError",
    "OCRWord",
    "RecognitionResult",
    "StatusNotice",
    "EngineCapabilities",
    "EngineHandle",
    "OCRNode",
    "RecognitionSession",
    "WorkerPool",
    "create_ocr_node",
    "resolve_image_source",
]
