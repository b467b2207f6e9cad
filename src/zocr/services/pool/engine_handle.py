"""
Engine handle: one pooled OCR engine plus its language and busy state.

Optional engine operations are probed once at construction and recorded in
an immutable EngineCapabilities record; everything afterwards branches on
those flags. Blocking engine calls run in worker threads.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...config.ocr_config import Rectangle
from ...schemas.ocr_result import RecognitionResult
from ...tools.vision.ocr_protocol import EngineBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineCapabilities:
    """Which optional lifecycle operations an engine build exposes."""

    load: bool = False
    load_language: bool = False
    initialize: bool = False
    set_parameters: bool = False
    set_timeout: bool = False
    recognize: bool = False
    terminate: bool = False

    @property
    def can_switch_language(self) -> bool:
        """Engines without initialize keep the first language they get."""
        return self.initialize

    @classmethod
    def probe(cls, engine: Any) -> "EngineCapabilities":
        """
        Detect the operations an engine instance supports.

        Args:
            engine: Engine instance returned by a backend

        Returns:
            EngineCapabilities for the instance
        """
        return cls(
            load=callable(getattr(engine, "load", None)),
            load_language=callable(getattr(engine, "load_language", None)),
            initialize=callable(getattr(engine, "initialize", None)),
            set_parameters=callable(getattr(engine, "set_parameters", None)),
            set_timeout=callable(getattr(engine, "set_timeout", None)),
            recognize=callable(getattr(engine, "recognize", None)),
            terminate=callable(getattr(engine, "terminate", None)),
        )


class EngineHandle:
    """
    Pool slot wrapping one engine instance.

    ``language`` and ``busy`` belong to the owning WorkerPool and are only
    changed by it.
    """

    def __init__(self, engine: Any, capabilities: EngineCapabilities, handle_id: int):
        self.engine = engine
        self.capabilities = capabilities
        self.handle_id = handle_id
        self.language: Optional[str] = None
        self.busy = False
        self.retired = False
        self.terminated = False

    def __repr__(self) -> str:
        return (
            f"EngineHandle(id={self.handle_id}, language={self.language!r}, "
            f"busy={self.busy})"
        )

    @classmethod
    async def create(cls, backend: EngineBackend, handle_id: int) -> "EngineHandle":
        """
        Construct an engine through the backend and probe its capabilities.

        Args:
            backend: Library that builds engine instances
            handle_id: Identifier for logging

        Returns:
            New idle EngineHandle with no language
        """
        engine = await asyncio.to_thread(backend.create_engine)
        capabilities = EngineCapabilities.probe(engine)
        if capabilities.load:
            await asyncio.to_thread(engine.load)
        logger.debug(f"Created engine handle {handle_id}: {capabilities}")
        return cls(engine, capabilities, handle_id)

    async def initialize(self, language: str) -> None:
        """Load language data if supported, then initialize for the language."""
        if self.capabilities.load_language:
            await asyncio.to_thread(self.engine.load_language, language)
        if self.capabilities.initialize:
            await asyncio.to_thread(self.engine.initialize, language)

    async def set_parameters(self, parameters: Dict[str, str]) -> None:
        await asyncio.to_thread(self.engine.set_parameters, dict(parameters))

    def set_timeout(self, seconds: Optional[float]) -> None:
        self.engine.set_timeout(seconds)

    async def recognize(
        self, image: bytes, rectangle: Optional[Rectangle] = None
    ) -> RecognitionResult:
        return await asyncio.to_thread(self.engine.recognize, image, rectangle)

    async def terminate(self) -> None:
        """Terminate the engine once; later calls are no-ops."""
        if self.terminated:
            return
        self.terminated = True
        if self.capabilities.terminate:
            await asyncio.to_thread(self.engine.terminate)
