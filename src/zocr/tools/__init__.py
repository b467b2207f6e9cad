"""
OCR engines and supporting tools.
"""
