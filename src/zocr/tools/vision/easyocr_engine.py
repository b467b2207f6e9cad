"""
EasyOCR engine wrapper.
Each language switch builds a new reader, which loads the detection and
recognition models for that language.
"""

import importlib.util
import logging
from typing import Any, Dict, List, Optional

import numpy as np

from ...config.ocr_config import Rectangle
from ...schemas.ocr_result import OCRWord, RecognitionResult, mean_confidence
from .image_utils import decode_image

logger = logging.getLogger(__name__)

LANGUAGE_CODES = {
    "eng": "en",
    "deu": "de",
    "fra": "fr",
    "spa": "es",
    "ita": "it",
    "por": "pt",
    "nld": "nl",
    "pol": "pl",
    "rus": "ru",
    "ukr": "uk",
    "tur": "tr",
    "vie": "vi",
    "ara": "ar",
    "hin": "hi",
    "jpn": "ja",
    "kor": "ko",
    "chi_sim": "ch_sim",
    "chi_tra": "ch_tra",
}

PARAMETER_MAP = {
    "tessedit_char_whitelist": "allowlist",
    "tessedit_char_blacklist": "blocklist",
}


def to_easyocr_languages(language: str) -> List[str]:
    """
    Convert a Tesseract-style language code to EasyOCR language list.

    Args:
        language: Code such as "eng" or "eng+deu"

    Returns:
        EasyOCR language codes, e.g. ["en", "de"]
    """
    return [LANGUAGE_CODES.get(part, part) for part in language.split("+") if part]


class EasyOCREngine:
    """
    EasyOCR engine instance bound to one reader at a time.
    """

    def __init__(self, gpu: bool = False):
        """
        Initialize EasyOCR engine.

        Args:
            gpu: Whether the reader may use a GPU
        """
        self.gpu = gpu
        self.reader = None
        self.language: Optional[str] = None
        self.readtext_kwargs: Dict[str, Any] = {}

    def initialize(self, language: str) -> None:
        """
        Build a reader for the language, replacing any existing one.

        Args:
            language: Tesseract-style language code
        """
        import warnings
        from contextlib import redirect_stdout, redirect_stderr
        from io import StringIO

        warnings.filterwarnings("ignore", module="easyocr")
        logging.getLogger("easyocr").setLevel(logging.ERROR)

        f = StringIO()
        with redirect_stdout(f), redirect_stderr(f):
            import easyocr

            self.reader = easyocr.Reader(
                to_easyocr_languages(language), gpu=self.gpu, verbose=False
            )
        self.language = language

    def set_parameters(self, parameters: Dict[str, str]) -> None:
        """
        Map the Tesseract parameters EasyOCR understands onto readtext options.
        Unmapped parameters are ignored.
        """
        kwargs: Dict[str, Any] = {}
        for key, value in parameters.items():
            if key in PARAMETER_MAP:
                kwargs[PARAMETER_MAP[key]] = value
            else:
                logger.debug(f"EasyOCR ignores parameter {key}")
        self.readtext_kwargs = kwargs

    def recognize(
        self, image: bytes, rectangle: Optional[Rectangle] = None
    ) -> RecognitionResult:
        """
        Recognize text in image using EasyOCR.

        Args:
            image: Encoded image bytes
            rectangle: Optional region to restrict recognition to

        Returns:
            RecognitionResult with words in source image coordinates

        Raises:
            RuntimeError: If no reader has been initialized
        """
        if self.reader is None:
            raise RuntimeError("EasyOCR reader is not initialized")

        pil_image, offset_x, offset_y = decode_image(image, rectangle)
        img_array = np.array(pil_image.convert("RGB"))

        results_raw = self.reader.readtext(img_array, **self.readtext_kwargs)

        words: List[OCRWord] = []
        for line_idx, (bbox, text, confidence) in enumerate(results_raw):
            top_left = bbox[0]
            bottom_right = bbox[2]

            x = int(top_left[0]) + offset_x
            y = int(top_left[1]) + offset_y
            width = int(bottom_right[0] - top_left[0])
            height = int(bottom_right[1] - top_left[1])

            words.append(
                OCRWord(
                    text=text,
                    bounds=(x, y, width, height),
                    confidence=float(confidence),
                    line=line_idx,
                )
            )

        return RecognitionResult(
            text="\n".join(w.text for w in words),
            confidence=mean_confidence(words),
            words=words,
            engine="easyocr",
            language=self.language,
        )

    def terminate(self) -> None:
        self.reader = None
        self.language = None


class EasyOCRBackend:
    """
    Builds EasyOCR engines. EasyOCR has no reader-less recognize call.
    """

    name = "easyocr"

    def __init__(self, gpu: bool = False):
        self.gpu = gpu

    def is_available(self) -> bool:
        """
        Check if EasyOCR is installed.

        Returns:
            True if the easyocr package can be imported
        """
        return importlib.util.find_spec("easyocr") is not None

    def create_engine(self) -> EasyOCREngine:
        return EasyOCREngine(gpu=self.gpu)
