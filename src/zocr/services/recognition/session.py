"""
Recognition session: per-request orchestration over a worker pool.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from ...config.ocr_config import RecognitionConfig, Rectangle
from ...errors import (
    CapabilityMissingError,
    EngineFailureError,
    OCRError,
    RecognitionTimeoutError,
)
from ...schemas.ocr_result import RecognitionResult
from ...schemas.status import StatusNotice, StatusSink
from ...tools.vision.ocr_protocol import EngineBackend
from ..pool.engine_handle import EngineHandle
from ..pool.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class RecognitionSession:
    """
    Runs recognition requests against a pool of engines.

    For each request the session merges configuration, sizes the pool,
    acquires a handle for the language, applies parameters, recognizes with a
    timeout and always releases the handle. Engines exposing set_timeout get
    the same limit and stop on their own. For other engines a timed-out call
    is abandoned, not cancelled: the engine thread may keep running after the
    handle is back in the pool.
    """

    def __init__(
        self,
        backend: EngineBackend,
        defaults: Optional[RecognitionConfig] = None,
        status: Optional[StatusSink] = None,
    ):
        """
        Initialize session.

        Args:
            backend: Library that builds engines for the pool
            defaults: Configuration that caller overrides are merged onto
            status: Optional sink for coarse lifecycle notices
        """
        self.backend = backend
        self.defaults = defaults or RecognitionConfig()
        self.pool = WorkerPool(backend)
        self._status = status
        self._library_recognize = callable(getattr(backend, "recognize", None))

    def emit_status(self, notice: StatusNotice) -> None:
        """Send a notice to the status sink; sink failures never reach the request."""
        if self._status is None:
            return
        try:
            self._status(notice)
        except Exception as e:
            logger.warning(f"Status sink failed: {e}")

    async def recognize(
        self,
        image: bytes,
        overrides: Optional[Union[Mapping[str, Any], RecognitionConfig]] = None,
    ) -> RecognitionResult:
        """
        Recognize text in an image buffer.

        Args:
            image: Encoded image bytes
            overrides: Caller configuration merged per key onto the defaults

        Returns:
            RecognitionResult from the engine, unmodified

        Raises:
            OCRError: ConfigurationError, EngineFailureError,
                CapabilityMissingError or RecognitionTimeoutError
        """
        try:
            config = self.defaults.merge(overrides)
            rectangle = config.resolve_rectangle()
            await self.pool.ensure_size(config.pool_size)

            self.emit_status(StatusNotice.busy(f"recognizing ({config.language})"))
            handle = await self.pool.acquire(config.language)
            try:
                result = await self._recognize_on(handle, image, config, rectangle)
            finally:
                self.pool.release(handle)
        except OCRError as e:
            self.emit_status(StatusNotice.failed())
            logger.error(f"Recognition failed [{e.kind}]: {e.message}")
            raise

        self.emit_status(StatusNotice.clear())
        return result

    async def _recognize_on(
        self,
        handle: EngineHandle,
        image: bytes,
        config: RecognitionConfig,
        rectangle: Optional[Rectangle],
    ) -> RecognitionResult:
        if handle.capabilities.set_parameters:
            try:
                await handle.set_parameters(config.parameters)
            except Exception as e:
                raise EngineFailureError(
                    f"Failed to apply engine parameters: {e}",
                    detail={"parameters": config.parameters},
                ) from e

        if handle.capabilities.set_timeout:
            handle.set_timeout(config.timeout_seconds)

        if handle.capabilities.recognize:
            call = handle.recognize(image, rectangle)
        elif self._library_recognize:
            call = asyncio.to_thread(
                self.backend.recognize,
                image,
                language=config.language,
                parameters=dict(config.parameters),
                rectangle=rectangle,
            )
        else:
            raise CapabilityMissingError(
                f"{self.backend.name} engine has no recognize operation",
                detail={"engine": self.backend.name},
            )

        try:
            return await asyncio.wait_for(call, timeout=config.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RecognitionTimeoutError(
                f"Recognition did not complete within {config.timeout_ms} ms",
                detail={"timeout_ms": config.timeout_ms, "language": config.language},
            ) from e
        except OCRError:
            raise
        except Exception as e:
            raise EngineFailureError(
                f"Recognition failed: {e}", detail={"language": config.language}
            ) from e

    async def close(self) -> None:
        """Terminate all pooled engines."""
        await self.pool.destroy()
