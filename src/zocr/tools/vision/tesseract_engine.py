"""
Tesseract OCR engine backed by pytesseract.

Tesseract itself runs as a subprocess per call, so each engine instance keeps
the language and parameter state between calls. Parameters use Tesseract's
own variable names; page segmentation and engine modes become CLI options.
"""

import logging
import shlex
from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

import pytesseract
from pytesseract import Output

from ...config.ocr_config import DEFAULT_LANGUAGE, Rectangle
from ...schemas.ocr_result import OCRWord, RecognitionResult, mean_confidence
from .image_utils import decode_image

logger = logging.getLogger(__name__)

CLI_OPTIONS = {
    "tessedit_pageseg_mode": "--psm",
    "tessedit_ocr_engine_mode": "--oem",
}


def build_tesseract_config(parameters: Dict[str, str]) -> str:
    """
    Translate engine parameters into a Tesseract command line fragment.

    Args:
        parameters: Tesseract variable names mapped to values

    Returns:
        Config string accepted by pytesseract
    """
    parts: List[str] = []
    for key in sorted(parameters):
        value = parameters[key]
        if key in CLI_OPTIONS:
            parts.append(f"{CLI_OPTIONS[key]} {shlex.quote(str(value))}")
        else:
            parts.append(f"-c {shlex.quote(f'{key}={value}')}")
    return " ".join(parts)


def _normalize_confidence(raw_conf) -> Optional[float]:
    try:
        conf = float(raw_conf)
    except (TypeError, ValueError):
        return None
    if conf < 0:
        return None
    # Tesseract reports 0..100
    return max(0.0, min(1.0, conf / 100.0))


def build_result(
    data: Dict[str, list],
    offset_x: int,
    offset_y: int,
    language: str,
) -> RecognitionResult:
    """
    Build a RecognitionResult from pytesseract ``image_to_data`` output.

    Words are grouped into lines by (block, paragraph, line) so the text
    keeps Tesseract's reading order.
    """
    lines: Dict[Tuple[int, int, int], List[int]] = defaultdict(list)

    for i in range(len(data["text"])):
        txt = str(data["text"][i]).strip()
        if not txt:
            continue
        if _normalize_confidence(data["conf"][i]) is None:
            continue
        key = (
            int(data["block_num"][i]),
            int(data["par_num"][i]),
            int(data["line_num"][i]),
        )
        lines[key].append(i)

    words: List[OCRWord] = []
    line_texts: List[str] = []
    for line_idx, key in enumerate(sorted(lines.keys())):
        tokens = []
        for i in lines[key]:
            txt = str(data["text"][i]).strip()
            tokens.append(txt)
            words.append(
                OCRWord(
                    text=txt,
                    bounds=(
                        int(data["left"][i]) + offset_x,
                        int(data["top"][i]) + offset_y,
                        int(data["width"][i]),
                        int(data["height"][i]),
                    ),
                    confidence=_normalize_confidence(data["conf"][i]),
                    line=line_idx,
                )
            )
        line_texts.append(" ".join(tokens))

    return RecognitionResult(
        text="\n".join(line_texts).strip(),
        confidence=mean_confidence(words),
        words=words,
        engine="tesseract",
        language=language,
    )


class TesseractEngine:
    """
    Tesseract engine instance holding language and parameter state.
    """

    def __init__(self):
        self.language: Optional[str] = None
        self.parameters: Dict[str, str] = {}
        self.config: str = ""
        self.timeout: float = 0
        self._installed_languages: Optional[Set[str]] = None

    def load_language(self, language: str) -> None:
        """
        Verify that traineddata for every part of ``language`` is installed.

        Args:
            language: Tesseract language code, possibly combined ("eng+deu")

        Raises:
            ValueError: If a language is not installed
        """
        if self._installed_languages is None:
            self._installed_languages = set(pytesseract.get_languages(config=""))

        missing = [
            part
            for part in language.split("+")
            if part and part not in self._installed_languages
        ]
        if missing:
            raise ValueError(
                f"Tesseract language data not installed: {', '.join(missing)}"
            )

    def initialize(self, language: str) -> None:
        self.language = language
        logger.debug(f"Tesseract engine initialized with lang={language}")

    def set_parameters(self, parameters: Dict[str, str]) -> None:
        self.parameters = dict(parameters)
        self.config = build_tesseract_config(self.parameters)

    def set_timeout(self, seconds: Optional[float]) -> None:
        """Kill the tesseract process after ``seconds``; None or 0 disables."""
        self.timeout = seconds or 0

    def recognize(
        self, image: bytes, rectangle: Optional[Rectangle] = None
    ) -> RecognitionResult:
        """
        Run Tesseract on an encoded image.

        Args:
            image: Encoded image bytes
            rectangle: Optional region to restrict recognition to

        Returns:
            RecognitionResult with words in source image coordinates
        """
        pil_image, offset_x, offset_y = decode_image(image, rectangle)
        language = self.language or DEFAULT_LANGUAGE

        data = pytesseract.image_to_data(
            pil_image,
            lang=language,
            config=self.config,
            output_type=Output.DICT,
            timeout=self.timeout,
        )
        return build_result(data, offset_x, offset_y, language)

    def terminate(self) -> None:
        self.language = None
        self.parameters = {}
        self.config = ""
        self.timeout = 0


class TesseractBackend:
    """
    Builds Tesseract engines and offers a standalone recognize call.
    """

    name = "tesseract"

    def is_available(self) -> bool:
        """
        Check if the tesseract binary is installed.

        Returns:
            True if tesseract can be invoked
        """
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            return False

    def create_engine(self) -> TesseractEngine:
        return TesseractEngine()

    def recognize(
        self,
        image: bytes,
        language: str = DEFAULT_LANGUAGE,
        parameters: Optional[Dict[str, str]] = None,
        rectangle: Optional[Rectangle] = None,
    ) -> RecognitionResult:
        """
        One-shot recognition without a pooled engine.

        Args:
            image: Encoded image bytes
            language: Tesseract language code
            parameters: Tesseract parameters
            rectangle: Optional region to restrict recognition to

        Returns:
            RecognitionResult
        """
        engine = TesseractEngine()
        engine.initialize(language)
        engine.set_parameters(parameters or {})
        return engine.recognize(image, rectangle)
