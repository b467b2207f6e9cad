"""
Pytest configuration and fixtures.
"""

import io
import sys
from pathlib import Path

import pytest
from PIL import Image, ImageDraw


def pytest_configure(config):
    """Configure pytest."""
    # Add src to path
    src_path = Path(__file__).parent.parent / "src"
    sys.path.insert(0, str(src_path))

    config.addinivalue_line("markers", "ocr: tests that run a real OCR engine")
    config.addinivalue_line("markers", "pool: worker pool behaviour")
    config.addinivalue_line("markers", "integration: end-to-end node tests")


def pytest_collection_modifyitems(config, items):
    """
    Modify test items to add helpful markers.
    """
    for item in items:
        # Add markers based on test name
        nodeid = item.nodeid.lower()
        if "tesseract" in nodeid or "easyocr" in nodeid:
            item.add_marker("ocr")
        if "pool" in nodeid:
            item.add_marker("pool")
        if "node" in nodeid or "end_to_end" in nodeid:
            item.add_marker("integration")


def _render_png(text: str = "12345", size=(200, 60)) -> bytes:
    img = Image.new("RGB", size, color="white")
    draw = ImageDraw.Draw(img)
    draw.text((20, 20), text, fill="black")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """PNG image with a short line of digits."""
    return _render_png()


@pytest.fixture
def image_file(tmp_path, png_bytes) -> Path:
    """PNG image written to a temporary file."""
    path = tmp_path / "digits.png"
    path.write_bytes(png_bytes)
    return path
