"""
Error taxonomy for the recognition pipeline.

Every failure that reaches a caller is an OCRError subclass carrying a stable
``kind`` string and a ``retryable`` hint. The pipeline never retries on its own.
"""

from typing import Any, Dict, Optional


class OCRError(Exception):
    """
    Base class for all recognition pipeline failures.
    """

    kind: str = "ocr_error"
    retryable: bool = False

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the error for a host message or JSON output.

        Returns:
            Dictionary with kind, message, retryable flag and detail
        """
        return {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            "detail": self.detail,
        }


class SourceUnavailableError(OCRError):
    """Image could not be downloaded, found or read."""

    kind = "source_unavailable"
    retryable = True


class UnsupportedPayloadError(OCRError):
    """Input payload has a shape the normalizer does not understand."""

    kind = "unsupported_payload"


class CapabilityMissingError(OCRError):
    """Neither the engine nor its library exposes a recognize entry point."""

    kind = "capability_missing"


class RecognitionTimeoutError(OCRError):
    """Recognition did not complete within the configured timeout."""

    kind = "timeout"
    retryable = True


class EngineFailureError(OCRError):
    """The underlying engine raised while initializing or recognizing."""

    kind = "engine_failure"


class ConfigurationError(OCRError):
    """Request configuration could not be interpreted."""

    kind = "invalid_config"
