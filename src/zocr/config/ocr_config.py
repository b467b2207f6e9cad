"""
Recognition configuration: request-level defaults, per-key merging of caller
overrides, rectangle resolution, and deployment settings from the environment.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "eng"
DEFAULT_PARAMETERS: Dict[str, str] = {
    "tessedit_char_whitelist": "0123456789",
    "tessedit_pageseg_mode": "6",
}
DEFAULT_POOL_SIZE = 1
MIN_POOL_SIZE = 1
MAX_POOL_SIZE = 4
DEFAULT_TIMEOUT_MS = 30000

RECTANGLE_FIELDS = ("left", "top", "width", "height")

_LANGUAGE_KEYS = ("language", "lang")
_PARAMETER_KEYS = ("parameters", "params")
_RECTANGLE_KEYS = ("rectangle", "rect")
_POOL_SIZE_KEYS = ("pool_size", "poolSize", "workers")
_TIMEOUT_KEYS = ("timeout_ms", "timeoutMs", "timeout")
_STRICT_KEYS = ("strict_rectangle", "strictRectangle")
_RESERVED_KEYS = set(
    _LANGUAGE_KEYS
    + _PARAMETER_KEYS
    + _RECTANGLE_KEYS
    + _POOL_SIZE_KEYS
    + _TIMEOUT_KEYS
    + _STRICT_KEYS
    + RECTANGLE_FIELDS
)


def clamp_pool_size(size: int) -> int:
    """Clamp a requested pool size into [MIN_POOL_SIZE, MAX_POOL_SIZE]."""
    return max(MIN_POOL_SIZE, min(MAX_POOL_SIZE, int(size)))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_int(value: Any, name: str) -> int:
    if _is_int(value):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigurationError(
        f"{name} must be an integer, got {value!r}", detail={"field": name}
    )


_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off", "")


def parse_flag(value: Any, name: str) -> bool:
    """
    Interpret a boolean flag given as a bool, an integer or a string.

    Args:
        value: Raw flag value from a request or the environment
        name: Field name for error reporting

    Returns:
        Parsed flag

    Raises:
        ConfigurationError: If the value is not a recognizable boolean
    """
    if isinstance(value, bool):
        return value
    if _is_int(value):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigurationError(
        f"{name} must be a boolean, got {value!r}", detail={"field": name}
    )


def _coerce_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"{name} must be a number, got {value!r}", detail={"field": name}
        )


def _coerce_parameter(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _first_present(overrides: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in overrides:
            return overrides[key]
    return None


class Rectangle(BaseModel):
    """
    Sub-region of the input image to restrict recognition to.
    """

    left: int = Field(ge=0, description="Left offset in pixels")
    top: int = Field(ge=0, description="Top offset in pixels")
    width: int = Field(gt=0, description="Region width in pixels")
    height: int = Field(gt=0, description="Region height in pixels")

    def as_box(self) -> Tuple[int, int, int, int]:
        """
        Convert to a PIL crop box.

        Returns:
            Tuple of (left, upper, right, lower)
        """
        return (self.left, self.top, self.left + self.width, self.top + self.height)


class RecognitionConfig(BaseModel):
    """
    Per-request recognition configuration.
    Built fresh for every request by merging caller overrides onto defaults.
    """

    language: str = Field(default=DEFAULT_LANGUAGE, description="Engine language code")
    parameters: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PARAMETERS),
        description="Engine parameter names mapped to values",
    )
    rectangle: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Raw rectangle fields, validated by resolve_rectangle()",
    )
    pool_size: int = Field(default=DEFAULT_POOL_SIZE, description="Pool size hint")
    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS, description="Recognition timeout, <=0 disables"
    )
    strict_rectangle: bool = Field(
        default=False,
        description="Raise on a malformed rectangle instead of using the full image",
    )

    @property
    def timeout_seconds(self) -> Optional[float]:
        """Timeout in seconds, or None when disabled."""
        if self.timeout_ms <= 0:
            return None
        return self.timeout_ms / 1000.0

    def merge(
        self, overrides: Optional[Union[Mapping[str, Any], "RecognitionConfig"]]
    ) -> "RecognitionConfig":
        """
        Merge caller overrides onto this configuration.

        Parameters are merged per key. Keys that are not recognized configuration
        fields are treated as engine parameters, so a flat mapping such as
        ``{"lang": "deu", "tessedit_pageseg_mode": "7"}`` works as expected.

        Args:
            overrides: Mapping of overrides, another config, or None

        Returns:
            New RecognitionConfig; this instance is not modified

        Raises:
            ConfigurationError: If an override has an unusable value
        """
        if overrides is None:
            return self.model_copy(deep=True)
        if isinstance(overrides, RecognitionConfig):
            overrides = overrides.model_dump()
        if not isinstance(overrides, Mapping):
            raise ConfigurationError(
                f"Configuration must be a mapping, got {type(overrides).__name__}"
            )

        merged = self.model_copy(deep=True)

        language = _first_present(overrides, _LANGUAGE_KEYS)
        if language is not None:
            if not isinstance(language, str) or not language.strip():
                raise ConfigurationError(
                    f"language must be a non-empty string, got {language!r}",
                    detail={"field": "language"},
                )
            merged.language = language.strip()

        parameters = _first_present(overrides, _PARAMETER_KEYS)
        if parameters is not None:
            if not isinstance(parameters, Mapping):
                raise ConfigurationError(
                    "parameters must be a mapping", detail={"field": "parameters"}
                )
            for key, value in parameters.items():
                merged.parameters[str(key)] = _coerce_parameter(value)

        for key, value in overrides.items():
            if key not in _RESERVED_KEYS and value is not None:
                merged.parameters[str(key)] = _coerce_parameter(value)

        rectangle = _first_present(overrides, _RECTANGLE_KEYS)
        if rectangle is not None:
            if not isinstance(rectangle, Mapping):
                # Kept raw so resolve_rectangle() applies the fallback policy
                merged.rectangle = {"raw": rectangle}
            else:
                merged.rectangle = dict(rectangle)
        elif any(field in overrides for field in RECTANGLE_FIELDS):
            merged.rectangle = {
                field: overrides[field]
                for field in RECTANGLE_FIELDS
                if field in overrides
            }

        pool_size = _first_present(overrides, _POOL_SIZE_KEYS)
        if pool_size is not None:
            merged.pool_size = clamp_pool_size(_coerce_int(pool_size, "pool_size"))

        timeout = _first_present(overrides, _TIMEOUT_KEYS)
        if timeout is not None:
            merged.timeout_ms = _coerce_int(timeout, "timeout_ms")

        strict = _first_present(overrides, _STRICT_KEYS)
        if strict is not None:
            merged.strict_rectangle = parse_flag(strict, "strict_rectangle")

        return merged

    def resolve_rectangle(self) -> Optional[Rectangle]:
        """
        Resolve the raw rectangle into a usable region.

        A rectangle is used only when all four fields are present and are
        integers with non-negative offsets and positive extent. Anything else
        falls back to the full image, unless strict_rectangle is set.

        Returns:
            Rectangle, or None for the full image

        Raises:
            ConfigurationError: If the rectangle is malformed and strict_rectangle is set
        """
        raw = self.rectangle
        if not raw:
            return None

        values = [raw.get(field) for field in RECTANGLE_FIELDS]
        if all(_is_int(v) for v in values):
            left, top, width, height = values
            if left >= 0 and top >= 0 and width > 0 and height > 0:
                return Rectangle(left=left, top=top, width=width, height=height)

        if self.strict_rectangle:
            raise ConfigurationError(
                "rectangle needs integer left, top, width and height",
                detail={"rectangle": raw},
            )
        logger.warning(f"Ignoring malformed rectangle {raw!r}, using full image")
        return None


class OCRSettings(BaseModel):
    """
    Deployment settings for one node instance.

    Environment Variables:
    - ZOCR_ENGINE: Engine backend name (tesseract, easyocr, auto)
    - ZOCR_LANG: Default language code
    - ZOCR_POOL_SIZE: Default pool size (clamped 1-4)
    - ZOCR_TIMEOUT_MS: Default recognition timeout, <=0 disables
    - ZOCR_STRICT_RECTANGLE: Reject malformed rectangles instead of ignoring them
    - ZOCR_DOWNLOAD_TIMEOUT: HTTP download timeout in seconds
    """

    engine: str = Field(default="tesseract", description="Engine backend name")
    language: str = Field(default=DEFAULT_LANGUAGE, description="Default language")
    parameters: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PARAMETERS),
        description="Default engine parameters",
    )
    pool_size: int = Field(default=DEFAULT_POOL_SIZE, description="Default pool size")
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, description="Default timeout")
    strict_rectangle: bool = Field(default=False)
    download_timeout: float = Field(
        default=30.0, description="HTTP download timeout in seconds"
    )

    @classmethod
    def from_env(cls) -> "OCRSettings":
        """
        Build settings from environment variables and an optional .env file.

        Returns:
            OCRSettings instance

        Raises:
            ConfigurationError: If a numeric or boolean variable cannot be parsed
        """
        load_dotenv()
        return cls(
            engine=os.getenv("ZOCR_ENGINE", "tesseract"),
            language=os.getenv("ZOCR_LANG", DEFAULT_LANGUAGE),
            pool_size=clamp_pool_size(
                _coerce_int(
                    os.getenv("ZOCR_POOL_SIZE", str(DEFAULT_POOL_SIZE)),
                    "ZOCR_POOL_SIZE",
                )
            ),
            timeout_ms=_coerce_int(
                os.getenv("ZOCR_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS)), "ZOCR_TIMEOUT_MS"
            ),
            strict_rectangle=parse_flag(
                os.getenv("ZOCR_STRICT_RECTANGLE", "false"), "ZOCR_STRICT_RECTANGLE"
            ),
            download_timeout=_coerce_float(
                os.getenv("ZOCR_DOWNLOAD_TIMEOUT", "30"), "ZOCR_DOWNLOAD_TIMEOUT"
            ),
        )

    def recognition_defaults(self) -> RecognitionConfig:
        """Default request configuration derived from these settings."""
        return RecognitionConfig(
            language=self.language,
            parameters=dict(self.parameters),
            pool_size=clamp_pool_size(self.pool_size),
            timeout_ms=self.timeout_ms,
            strict_rectangle=self.strict_rectangle,
        )
