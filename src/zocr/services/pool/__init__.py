"""
Worker pool of OCR engine handles.
"""

from .engine_handle import EngineCapabilities, EngineHandle
from .worker_pool import WorkerPool

__all__ = ["EngineCapabilities", "EngineHandle", "WorkerPool"]
