from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

import requests

from imgvault.domain.errors import ImageFetchError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 64 * 1024 * 1024


@dataclass(frozen=True)
class FetchedImage:
    data: bytes
    content_type: str | None


def decode_data_url(url: str) -> FetchedImage:
    try:
        header, payload = url[len("data:"):].split(",", 1)
    except ValueError as exc:
        raise ImageFetchError("Malformed data URL") from exc
    meta = header.split(";")
    content_type = meta[0] or None
    try:
        if "base64" in meta[1:]:
            data = base64.b64decode(payload, validate=False)
        else:
            data = unquote_to_bytes(payload)
    except ValueError as exc:
        raise ImageFetchError(f"Malformed data URL payload: {exc}") from exc
    return FetchedImage(data=data, content_type=content_type)


def fetch_image(url: str, timeout: float = 30.0, session: requests.Session | None = None) -> FetchedImage:
    """Fetch image bytes from an http(s) or data: URL."""
    if url.startswith("data:"):
        return decode_data_url(url)
    if not url.startswith(("http://", "https://")):
        raise ImageFetchError(f"Unsupported image URL scheme: {url[:32]}")
    http = session or requests
    try:
        with http.get(url, timeout=timeout, stream=True) as res:
            res.raise_for_status()
            chunks = []
            total = 0
            for chunk in res.iter_content(chunk_size=64 * 1024):
                total += len(chunk)
                if total > MAX_IMAGE_BYTES:
                    raise ImageFetchError(f"Image larger than {MAX_IMAGE_BYTES} bytes")
                chunks.append(chunk)
    except requests.RequestException as exc:
        raise ImageFetchError(f"Failed to fetch image: {exc}") from exc
    content_type = (res.headers.get("Content-Type") or "").split(";", 1)[0].strip() or None
    logger.debug("Fetched %d bytes (%s) from %s", total, content_type, url)
    return FetchedImage(data=b"".join(chunks), content_type=content_type)
