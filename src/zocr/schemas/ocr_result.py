"""
Type-safe schemas for OCR results.
"""

from typing import List, Optional, Tuple
from pydantic import BaseModel, Field


class OCRWord(BaseModel):
    """
    Single recognized word with bounding box and confidence.
    """

    text: str = Field(description="Recognized text content")
    bounds: Tuple[int, int, int, int] = Field(
        description="Bounding box as (x, y, width, height) in source image pixels"
    )
    confidence: float = Field(
        description="Recognition confidence score between 0 and 1"
    )
    line: Optional[int] = Field(
        default=None, description="Zero-based line index assigned by the engine"
    )


class RecognitionResult(BaseModel):
    """
    Recognized text plus engine metadata, returned verbatim to the caller.
    """

    text: str = Field(default="", description="Full recognized text")
    confidence: float = Field(
        default=0.0, description="Mean word confidence between 0 and 1"
    )
    words: List[OCRWord] = Field(
        default_factory=list, description="Per-word text, bounds and confidence"
    )
    engine: Optional[str] = Field(
        default=None, description="Name of the engine that produced the result"
    )
    language: Optional[str] = Field(
        default=None, description="Language the engine recognized with"
    )


def mean_confidence(words: List[OCRWord]) -> float:
    """Average confidence over words, 0.0 when there are none."""
    if not words:
        return 0.0
    return sum(w.confidence for w in words) / len(words)
