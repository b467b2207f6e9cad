"""
Flow-automation node wrapping the recognition pipeline.

The host creates one node per deployed instance through create_ocr_node(),
feeds it messages, and closes it when the instance is removed.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ...config.ocr_config import OCRSettings
from ...errors import OCRError
from ...schemas.status import StatusNotice, StatusSink
from ...tools.vision.ocr_factory import create_engine_backend
from ...tools.vision.ocr_protocol import EngineBackend
from ..recognition.session import RecognitionSession
from ..sources.image_source import classify_payload, resolve_image_source

logger = logging.getLogger(__name__)

NODE_TYPE = "zocr"


class OCRNode:
    """
    Handles host messages of the form ``{"payload": <image>, "zocrConfig": {...}}``.
    On success ``payload`` is replaced by the recognition result.
    """

    def __init__(
        self,
        session: RecognitionSession,
        settings: OCRSettings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.session = session
        self.settings = settings
        self._client = client

    async def __aenter__(self) -> "OCRNode":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Recognize the image referenced by ``message["payload"]``.

        Args:
            message: Host message; ``zocrConfig`` holds optional overrides

        Returns:
            The same message with ``payload`` set to the result dictionary

        Raises:
            OCRError: Normalization or recognition failure
        """
        payload = message.get("payload")

        try:
            if classify_payload(payload) == "url":
                self.session.emit_status(StatusNotice.busy("downloading image"))
            image = await resolve_image_source(
                payload, client=self._client, timeout=self.settings.download_timeout
            )
        except OCRError as e:
            self.session.emit_status(StatusNotice.failed())
            logger.error(f"Could not load image [{e.kind}]: {e.message}")
            raise

        result = await self.session.recognize(image, message.get("zocrConfig"))
        message["payload"] = result.model_dump()
        return message

    async def close(self) -> None:
        """Shut down the engine pool."""
        await self.session.close()


def create_ocr_node(
    settings: Optional[OCRSettings] = None,
    backend: Optional[EngineBackend] = None,
    status: Optional[StatusSink] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> OCRNode:
    """
    Create a node for one deployed instance.

    Args:
        settings: Deployment settings; read from the environment when omitted
        backend: Engine backend; built from settings.engine when omitted
        status: Optional sink for status notices
        client: Optional shared httpx client for downloads

    Returns:
        OCRNode with its own worker pool
    """
    settings = settings or OCRSettings.from_env()
    backend = backend or create_engine_backend(settings.engine)
    session = RecognitionSession(
        backend, defaults=settings.recognition_defaults(), status=status
    )
    logger.debug(f"Created {NODE_TYPE} node with {backend.name} engine")
    return OCRNode(session, settings, client=client)
