"""
Services module - organized by domain.

Submodules:
- pool: Engine handles and the bounded worker pool
- recognition: Per-request recognition sessions
- sources: Image payload normalization
- node: Host node factory
"""

from .node import OCRNode, create_ocr_node
from .pool import EngineCapabilities, EngineHandle, WorkerPool
from .recognition import RecognitionSession
from .sources import resolve_image_source

__all__ = [
    "OCRNode",
    "create_ocr_node",
    "EngineCapabilities",
    "EngineHandle",
    "WorkerPool",
    "RecognitionSession",
    "resolve_image_source",
]
