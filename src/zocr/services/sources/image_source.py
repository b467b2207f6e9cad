"""
Request normalizer: turns the payload shapes a host can send into image bytes.

Supported payloads:
- http(s) URL string, downloaded with httpx
- data URL string (base64 or percent-encoded)
- local file path (str or os.PathLike)
- bytes, bytearray or memoryview
- wire-encoded buffer object: {"type": "Buffer", "data": [0-255, ...]}
"""

import asyncio
import base64
import binascii
import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import unquote_to_bytes

import httpx

from ...errors import SourceUnavailableError, UnsupportedPayloadError

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
DATA_URL_PATTERN = re.compile(r"^data:(?P<meta>[^,]*),(?P<body>.*)$", re.DOTALL)

DEFAULT_DOWNLOAD_TIMEOUT = 30.0


def classify_payload(payload: Any) -> str:
    """
    Name the shape of a payload without reading it.

    Returns:
        One of "url", "data_url", "path", "bytes", "buffer" or "unsupported"
    """
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return "bytes"
    if isinstance(payload, Mapping):
        return "buffer" if payload.get("type") == "Buffer" else "unsupported"
    if isinstance(payload, os.PathLike):
        return "path"
    if isinstance(payload, str) and payload:
        if URL_PATTERN.match(payload):
            return "url"
        if payload.startswith("data:"):
            return "data_url"
        return "path"
    return "unsupported"


def decode_data_url(data_url: str) -> bytes:
    """
    Decode the body of a data URL.

    Raises:
        UnsupportedPayloadError: If the data URL is malformed
    """
    match = DATA_URL_PATTERN.match(data_url)
    if not match:
        raise UnsupportedPayloadError("Malformed data URL: missing ',' separator")

    meta = match.group("meta")
    body = match.group("body")

    if meta.lower().endswith(";base64"):
        try:
            return base64.b64decode("".join(body.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise UnsupportedPayloadError(
                f"Malformed base64 in data URL: {e}", detail={"media_type": meta}
            ) from e
    return unquote_to_bytes(body)


def decode_wire_buffer(payload: Mapping[str, Any]) -> bytes:
    """
    Decode a JSON-serialized byte buffer such as ``{"type": "Buffer", "data": [...]}``.

    Raises:
        UnsupportedPayloadError: If ``data`` is not a list of byte values
    """
    data = payload.get("data")
    if not isinstance(data, list):
        raise UnsupportedPayloadError("Buffer payload needs a 'data' list of bytes")
    try:
        return bytes(data)
    except (TypeError, ValueError) as e:
        raise UnsupportedPayloadError(f"Buffer payload has invalid bytes: {e}") from e


async def download_image(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
) -> bytes:
    """
    Download an image over http(s).

    Args:
        url: Image URL
        client: Optional shared client; a temporary one is used otherwise
        timeout: Request timeout in seconds for the temporary client

    Returns:
        Response body

    Raises:
        SourceUnavailableError: On connection errors or non-2xx responses
    """
    try:
        if client is not None:
            response = await client.get(url)
        else:
            async with httpx.AsyncClient(
                timeout=timeout, follow_redirects=True
            ) as temp_client:
                response = await temp_client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise SourceUnavailableError(
            f"Encountered error while downloading image file: HTTP {e.response.status_code}",
            detail={"url": url, "status_code": e.response.status_code},
        ) from e
    except httpx.HTTPError as e:
        raise SourceUnavailableError(
            f"Encountered error while downloading image file: {e}",
            detail={"url": url},
        ) from e

    logger.debug(f"Downloaded {len(response.content)} bytes from {url}")
    return response.content


async def read_image_file(path: Any) -> bytes:
    """
    Read an image from the local file system.

    Raises:
        SourceUnavailableError: If the file does not exist or cannot be read
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise SourceUnavailableError(
            "Referenced image file does not exist.", detail={"path": str(file_path)}
        )
    try:
        return await asyncio.to_thread(file_path.read_bytes)
    except OSError as e:
        raise SourceUnavailableError(
            f"Failed to read image file: {e}", detail={"path": str(file_path)}
        ) from e


async def resolve_image_source(
    payload: Any,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
) -> bytes:
    """
    Normalize any supported payload into image bytes.

    Args:
        payload: URL, data URL, path, raw bytes or wire-encoded buffer
        client: Optional httpx client for downloads
        timeout: Download timeout in seconds

    Returns:
        Image bytes

    Raises:
        SourceUnavailableError: If the source cannot be downloaded or read
        UnsupportedPayloadError: If the payload shape is not supported or empty
    """
    kind = classify_payload(payload)

    if kind == "bytes":
        image = bytes(payload)
    elif kind == "buffer":
        image = decode_wire_buffer(payload)
    elif kind == "url":
        image = await download_image(payload, client=client, timeout=timeout)
    elif kind == "data_url":
        image = decode_data_url(payload)
    elif kind == "path":
        image = await read_image_file(payload)
    else:
        raise UnsupportedPayloadError(
            f"Unsupported image payload of type {type(payload).__name__}",
            detail={"payload_type": type(payload).__name__},
        )

    if not image:
        raise UnsupportedPayloadError("Image payload is empty", detail={"source": kind})
    return image
