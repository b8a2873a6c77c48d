from __future__ import annotations

import base64
import logging
from urllib.parse import urlsplit

from imgvault.infrastructure.hosts.base import HostError, ImageHost, UploadResult

logger = logging.getLogger(__name__)

IMGBB_UPLOAD_URL = "https://api.imgbb.com/1/upload"
IMGBB_DELETE_URL = "https://ibb.co/json"


def parse_delete_url(delete_url: str) -> tuple[str, str]:
    """``https://ibb.co/<id>/<hash>`` -> (id, hash)."""
    parts = [p for p in urlsplit(delete_url).path.split("/") if p]
    if len(parts) < 2:
        raise HostError(f"Invalid ImgBB delete URL format: {delete_url}")
    return parts[0], parts[1]


class ImgbbHost(ImageHost):
    """Optional host. Base64 ``image`` form field, key in the query string."""

    name = "imgbb"

    @property
    def api_key(self) -> str:
        return self.settings.imgbb_api_key

    def _upload_remote(self, data: bytes, filename: str) -> UploadResult:
        logger.debug("Uploading %d bytes to ImgBB", len(data))
        res = self.session.post(
            IMGBB_UPLOAD_URL,
            params={"key": self.api_key},
            data={"image": base64.b64encode(data).decode("ascii")},
            timeout=self.timeout,
        )
        if not res.ok:
            raise HostError(f"ImgBB upload failed: {self._error_message(res)}")
        body = res.json()
        if not body.get("success"):
            message = (body.get("error") or {}).get("message", "Upload failed")
            raise HostError(f"ImgBB upload failed: {message}")
        payload = body.get("data") or {}
        return UploadResult(
            url=payload["url"],
            delete_token=payload.get("delete_url", ""),
            display_url=payload.get("display_url"),
            thumb_url=(payload.get("thumb") or {}).get("url"),
        )

    def _delete_remote(self, delete_token: str) -> None:
        image_id, image_hash = parse_delete_url(delete_token)
        res = self.session.post(
            IMGBB_DELETE_URL,
            data={
                "pathname": f"/{image_id}/{image_hash}",
                "action": "delete",
                "delete": "image",
                "from": "resource",
                "deleting[id]": image_id,
                "deleting[hash]": image_hash,
            },
            timeout=self.timeout,
        )
        if not res.ok:
            raise HostError(f"ImgBB returned {res.status_code}")
