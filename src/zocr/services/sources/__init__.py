"""
Image source normalization.
"""

from .image_source import classify_payload, resolve_image_source

__all__ = ["classify_payload", "resolve_image_source"]
