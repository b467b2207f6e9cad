"""
Protocol definitions for OCR engines and the libraries that build them.

Only ``create_engine`` is required of a backend. Every engine operation is
optional: engine handles probe for them at construction and degrade
gracefully when a build lacks one.
"""

from typing import Any, Dict, Optional, Protocol

from ...config.ocr_config import Rectangle
from ...schemas.ocr_result import RecognitionResult


class OCREngine(Protocol):
    """
    One stateful OCR engine instance, owned by a single pool slot.
    All methods are blocking and are called from worker threads.
    """

    def load(self) -> None:
        """Load engine models ahead of first use."""
        ...

    def load_language(self, language: str) -> None:
        """Make the data for a language available to the engine."""
        ...

    def initialize(self, language: str) -> None:
        """Switch the engine to recognize the given language."""
        ...

    def set_parameters(self, parameters: Dict[str, str]) -> None:
        """Apply engine parameters for subsequent recognitions."""
        ...

    def set_timeout(self, seconds: Optional[float]) -> None:
        """Bound how long a single recognize call may run. None disables."""
        ...

    def recognize(
        self, image: bytes, rectangle: Optional[Rectangle] = None
    ) -> RecognitionResult:
        """
        Recognize text in an encoded image.

        Args:
            image: Encoded image bytes (PNG, JPEG, ...)
            rectangle: Optional region to restrict recognition to

        Returns:
            RecognitionResult with text, confidence and words
        """
        ...

    def terminate(self) -> None:
        """Release engine resources."""
        ...


class EngineBackend(Protocol):
    """
    An OCR library that can build engine instances.

    A backend may additionally expose a standalone
    ``recognize(image, language=..., parameters=..., rectangle=...)`` used
    when an engine instance has no recognize operation of its own.
    """

    name: str

    def is_available(self) -> bool:
        """Check whether the library and its runtime are installed."""
        ...

    def create_engine(self) -> Any:
        """Construct a new, uninitialized engine instance."""
        ...
