"""
Per-request recognition orchestration.
"""

from .session import RecognitionSession

__all__ = ["RecognitionSession"]
