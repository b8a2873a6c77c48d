from __future__ import annotations

import logging
from urllib.parse import urlsplit

from imgvault.infrastructure.hosts.base import HostError, ImageHost, UploadResult

logger = logging.getLogger(__name__)

PIXVID_UPLOAD_URL = "https://pixvid.org/api/1/upload"


def upload_filename(name_or_url: str | None, default: str = "image.jpg") -> str:
    """Last path segment of a file name or URL, without query string."""
    if not name_or_url or name_or_url.startswith("data:"):
        return default
    path = urlsplit(name_or_url).path if "://" in name_or_url else name_or_url
    return path.rsplit("/", 1)[-1].split("?", 1)[0] or default


class PixvidHost(ImageHost):
    """Required host. Chevereto API: multipart ``source`` plus ``key``."""

    name = "pixvid"

    @property
    def api_key(self) -> str:
        return self.settings.pixvid_api_key

    def _upload_remote(self, data: bytes, filename: str) -> UploadResult:
        logger.debug("Uploading %d bytes to Pixvid", len(data))
        res = self.session.post(
            PIXVID_UPLOAD_URL,
            files={"source": (upload_filename(filename), data)},
            data={"key": self.api_key},
            timeout=self.timeout,
        )
        if not res.ok:
            raise HostError(f"Pixvid upload failed: {self._error_message(res)}")
        body = res.json()
        if body.get("status_code") != 200:
            message = (body.get("error") or {}).get("message", "Upload failed")
            raise HostError(f"Pixvid upload failed: {message}")
        image = body.get("image") or {}
        if not image.get("url"):
            raise HostError("Pixvid upload failed: no URL in response")
        return UploadResult(
            url=image["url"],
            delete_token=image.get("delete_url", ""),
            display_url=image.get("display_url"),
        )

    def _delete_remote(self, delete_token: str) -> None:
        # The delete URL is a confirm-by-visit link
        res = self.session.get(delete_token, allow_redirects=True, timeout=self.timeout)
        if not res.ok:
            raise HostError(f"Pixvid delete failed: {res.status_code}")
