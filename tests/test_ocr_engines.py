"""
Tests for the Tesseract and EasyOCR engine wrappers and backend selection.
"""

import pytest
import pytesseract

from zocr.config.ocr_config import Rectangle
from zocr.services.pool import EngineCapabilities
from zocr.tools.vision import ocr_factory
from zocr.tools.vision.easyocr_engine import (
    EasyOCRBackend,
    EasyOCREngine,
    to_easyocr_languages,
)
from zocr.tools.vision.image_utils import decode_image
from zocr.tools.vision.tesseract_engine import (
    TesseractBackend,
    TesseractEngine,
    build_result,
    build_tesseract_config,
)


def _tesseract_data():
    """Minimal image_to_data output: two words on line 1, one on line 2."""
    return {
        "text": ["", "12", "34", "", "56"],
        "conf": [-1, 91.0, 85.0, -1, "70"],
        "block_num": [1, 1, 1, 1, 1],
        "par_num": [1, 1, 1, 1, 1],
        "line_num": [0, 1, 1, 2, 2],
        "left": [0, 5, 30, 0, 5],
        "top": [0, 2, 2, 20, 22],
        "width": [100, 20, 20, 100, 20],
        "height": [50, 10, 10, 10, 10],
    }


class TestTesseractEngine:
    """Tesseract parameter mapping and result building."""

    def test_config_maps_cli_options_and_variables(self):
        config = build_tesseract_config(
            {"tessedit_pageseg_mode": "6", "tessedit_char_whitelist": "0123456789"}
        )
        assert "--psm 6" in config
        assert "-c tessedit_char_whitelist=0123456789" in config

    def test_config_quotes_values_with_spaces(self):
        config = build_tesseract_config({"tessedit_char_whitelist": "0 1"})
        assert config == "-c 'tessedit_char_whitelist=0 1'"

    def test_build_result_groups_lines(self):
        result = build_result(_tesseract_data(), 0, 0, "eng")

        assert result.text == "12 34\n56"
        assert [w.text for w in result.words] == ["12", "34", "56"]
        assert [w.line for w in result.words] == [0, 0, 1]
        assert result.words[0].confidence == pytest.approx(0.91)
        assert result.confidence == pytest.approx((0.91 + 0.85 + 0.70) / 3)
        assert result.engine == "tesseract"

    def test_build_result_applies_rectangle_offset(self):
        result = build_result(_tesseract_data(), 100, 200, "eng")
        assert result.words[0].bounds == (105, 202, 20, 10)

    def test_build_result_empty(self):
        data = {k: [] for k in _tesseract_data()}
        result = build_result(data, 0, 0, "eng")
        assert result.text == ""
        assert result.confidence == 0.0

    def test_capabilities(self):
        caps = EngineCapabilities.probe(TesseractEngine())
        assert caps.load_language and caps.initialize and caps.set_parameters
        assert caps.set_timeout
        assert caps.recognize and caps.terminate
        assert not caps.load

    def test_recognize_crops_and_passes_state(self, monkeypatch, png_bytes):
        calls = {}

        def fake_image_to_data(image, lang=None, config="", output_type=None, timeout=0):
            calls["size"] = image.size
            calls["timeout"] = timeout
            calls["lang"] = lang
            calls["config"] = config
            return _tesseract_data()

        monkeypatch.setattr(pytesseract, "image_to_data", fake_image_to_data)

        engine = TesseractEngine()
        engine.initialize("deu")
        engine.set_parameters({"tessedit_pageseg_mode": "7"})
        engine.set_timeout(2.5)
        result = engine.recognize(
            png_bytes, Rectangle(left=10, top=5, width=50, height=30)
        )

        assert calls == {
            "size": (50, 30),
            "timeout": 2.5,
            "lang": "deu",
            "config": "--psm 7",
        }
        assert result.language == "deu"
        assert result.words[0].bounds[:2] == (15, 7)

    def test_load_language_rejects_missing_data(self, monkeypatch):
        monkeypatch.setattr(pytesseract, "get_languages", lambda config="": ["eng", "osd"])

        engine = TesseractEngine()
        engine.load_language("eng")
        with pytest.raises(ValueError, match="deu"):
            engine.load_language("eng+deu")

    def test_backend_recognize_is_one_shot(self, monkeypatch, png_bytes):
        monkeypatch.setattr(
            pytesseract, "image_to_data", lambda image, **kwargs: _tesseract_data()
        )

        result = TesseractBackend().recognize(png_bytes, language="eng", parameters={})
        assert result.text == "12 34\n56"

    def test_tesseract_real_recognition(self, png_bytes):
        backend = TesseractBackend()
        if not backend.is_available():
            pytest.skip("tesseract binary not installed")

        engine = backend.create_engine()
        engine.initialize("eng")
        engine.set_parameters({"tessedit_char_whitelist": "0123456789"})
        result = engine.recognize(png_bytes)

        assert isinstance(result.text, str)
        assert all(ch.isdigit() or ch.isspace() for ch in result.text)


class TestEasyOCREngine:
    """EasyOCR parameter and language mapping."""

    def test_language_mapping(self):
        assert to_easyocr_languages("eng") == ["en"]
        assert to_easyocr_languages("eng+chi_sim") == ["en", "ch_sim"]
        assert to_easyocr_languages("th") == ["th"]

    def test_parameter_mapping(self):
        engine = EasyOCREngine()
        engine.set_parameters(
            {"tessedit_char_whitelist": "0123456789", "tessedit_pageseg_mode": "6"}
        )
        assert engine.readtext_kwargs == {"allowlist": "0123456789"}

    def test_recognize_requires_reader(self, png_bytes):
        with pytest.raises(RuntimeError):
            EasyOCREngine().recognize(png_bytes)

    def test_recognize_maps_boxes(self, png_bytes):
        class StubReader:
            def readtext(self, image, **kwargs):
                assert image.shape[:2] == (30, 50)
                return [([[1, 2], [11, 2], [11, 8], [1, 8]], "42", 0.75)]

        engine = EasyOCREngine()
        engine.reader = StubReader()
        engine.language = "eng"
        result = engine.recognize(png_bytes, Rectangle(left=10, top=5, width=50, height=30))

        assert result.text == "42"
        assert result.words[0].bounds == (11, 7, 10, 6)
        assert result.confidence == pytest.approx(0.75)
        assert result.engine == "easyocr"

    def test_capabilities(self):
        caps = EngineCapabilities.probe(EasyOCREngine())
        assert caps.initialize and caps.set_parameters and caps.recognize
        assert not caps.load_language

    def test_backend_has_no_library_recognize(self):
        assert not callable(getattr(EasyOCRBackend(), "recognize", None))

    def test_easyocr_real_recognition(self, png_bytes):
        backend = EasyOCRBackend()
        if not backend.is_available():
            pytest.skip("easyocr not installed")

        engine = backend.create_engine()
        engine.initialize("eng")
        result = engine.recognize(png_bytes)
        assert isinstance(result.text, str)


class TestImageUtils:
    """Image decoding helpers."""

    def test_decode_full_image(self, png_bytes):
        image, x, y = decode_image(png_bytes)
        assert image.size == (200, 60)
        assert (x, y) == (0, 0)

    def test_decode_invalid_bytes(self):
        with pytest.raises(ValueError):
            decode_image(b"not an image")


class TestOCRFactory:
    """Backend selection."""

    def test_named_backends(self):
        assert isinstance(ocr_factory.create_engine_backend("tesseract"), TesseractBackend)
        assert isinstance(ocr_factory.create_engine_backend(" EasyOCR "), EasyOCRBackend)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            ocr_factory.create_engine_backend("abbyy")

    def test_auto_without_engines(self, monkeypatch):
        monkeypatch.setattr(ocr_factory, "get_all_available_backends", lambda: [])
        with pytest.raises(ValueError):
            ocr_factory.create_engine_backend("auto")

    def test_auto_picks_first_available(self, monkeypatch):
        backend = EasyOCRBackend()
        monkeypatch.setattr(ocr_factory, "get_all_available_backends", lambda: [backend])
        assert ocr_factory.create_engine_backend("auto") is backend
