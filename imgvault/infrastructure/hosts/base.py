from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

import requests

from imgvault.infrastructure.config import VaultSettings

logger = logging.getLogger(__name__)

LOCAL_TOKEN_PREFIX = "local:"


@dataclass
class UploadResult:
    url: str
    delete_token: str
    display_url: str | None = None
    thumb_url: str | None = None


class HostError(RuntimeError):
    pass


class ImageHost:
    """Adapter for one image host, with a local-directory fake fallback.

    With ``hosts_disabled`` the bytes are written under
    ``<hosts_local_dir>/<host>/`` and the delete token is the local path, so
    the full upload/delete cycle works offline.
    """

    name = ""

    def __init__(self, settings: VaultSettings, session: requests.Session | None = None) -> None:
        self.settings = settings
        self.disabled = settings.hosts_disabled
        self.timeout = settings.http_timeout
        self.session = session or requests.Session()
        self.local_dir = Path(settings.hosts_local_dir) / self.name

    def close(self) -> None:
        self.session.close()

    @property
    def configured(self) -> bool:
        return self.disabled or bool(self.api_key)

    @property
    def api_key(self) -> str:
        raise NotImplementedError

    def upload(self, data: bytes, filename: str = "image.jpg") -> UploadResult:
        if self.disabled:
            return self._upload_local(data, filename)
        if not self.api_key:
            raise HostError(f"{self.name} API key not configured")
        try:
            return self._upload_remote(data, filename)
        except requests.RequestException as exc:
            raise HostError(f"{self.name} request failed: {exc}") from exc

    def delete(self, delete_token: str) -> None:
        if delete_token.startswith(LOCAL_TOKEN_PREFIX):
            self._delete_local(delete_token)
            return
        try:
            self._delete_remote(delete_token)
        except requests.RequestException as exc:
            raise HostError(f"{self.name} delete request failed: {exc}") from exc

    def _upload_remote(self, data: bytes, filename: str) -> UploadResult:
        raise NotImplementedError

    def _delete_remote(self, delete_token: str) -> None:
        raise NotImplementedError

    def _upload_local(self, data: bytes, filename: str) -> UploadResult:
        ext = Path(filename).suffix.lower() or ".bin"
        stored = f"{uuid.uuid4().hex}{ext}"
        full_path = self.local_dir / stored
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(data)
        url = f"/local-hosts/{self.name}/{stored}"
        return UploadResult(
            url=url,
            delete_token=f"{LOCAL_TOKEN_PREFIX}{full_path}",
            display_url=url,
            thumb_url=url,
        )

    def _delete_local(self, delete_token: str) -> None:
        full_path = Path(delete_token[len(LOCAL_TOKEN_PREFIX):])
        if not full_path.exists():
            raise HostError(f"{self.name} asset not found: {full_path.name}")
        full_path.unlink()

    @staticmethod
    def _error_message(res: requests.Response) -> str:
        try:
            body = res.json()
        except ValueError:
            return f"{res.status_code} - {res.text[:200]}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return f"{res.status_code} - {error.get('message', body)}"
        return f"{res.status_code} - {body}"
