"""
Pydantic schemas for recognition results and status notices.
"""

from .ocr_result import OCRWord, RecognitionResult, mean_confidence
from .status import StatusNotice, StatusSink

__all__ = [
    "OCRWord",
    "RecognitionResult",
    "mean_confidence",
    "StatusNotice",
    "StatusSink",
]
