"""
Host node integration.
"""

from .ocr_node import NODE_TYPE, OCRNode, create_ocr_node

__all__ = ["NODE_TYPE", "OCRNode", "create_ocr_node"]
