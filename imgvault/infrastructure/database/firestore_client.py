"""Firestore REST client for the record index.

Only the handful of document operations the vault needs: create with an
auto id, upsert by id, get, delete and a paged full-collection list. Values
are encoded to Firestore's typed JSON (``stringValue``, ``integerValue`` ...)
and decoded back to plain Python.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import requests

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1/projects/{project}/databases/(default)/documents"
PAGE_SIZE = 300


def encode_value(value: Any) -> dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat()}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    # Absent optional fields are omitted rather than stored as null
    return {str(k): encode_value(v) for k, v in data.items() if v is not None}


def decode_value(value: dict[str, Any]) -> Any:
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "timestampValue" in value:
        return datetime.fromisoformat(value["timestampValue"].replace("Z", "+00:00"))
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    return None


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: decode_value(v) for k, v in fields.items()}


def doc_id(name: str) -> str:
    return name.rsplit("/", 1)[-1]


class FirestoreClient:
    def __init__(self, project_id: str, api_key: str = "", timeout: float = 30.0,
                 session: requests.Session | None = None) -> None:
        self.base_url = FIRESTORE_URL.format(project=project_id)
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def _params(self, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"key": self.api_key} if self.api_key else {}
        params.update(extra or {})
        return params

    def _check(self, res: requests.Response, action: str) -> None:
        if res.ok:
            return
        try:
            message = res.json().get("error", {}).get("message", res.text)
        except ValueError:
            message = res.text
        raise RuntimeError(f"Firestore {action} failed ({res.status_code}): {message}")

    def create(self, collection: str, data: dict[str, Any]) -> str:
        res = self.session.post(
            f"{self.base_url}/{collection}",
            params=self._params(),
            json={"fields": encode_fields(data)},
            timeout=self.timeout,
        )
        self._check(res, f"create in {collection}")
        return doc_id(res.json()["name"])

    def put(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        # PATCH without an update mask replaces the whole document, creating it if missing
        res = self.session.patch(
            f"{self.base_url}/{collection}/{document_id}",
            params=self._params(),
            json={"fields": encode_fields(data)},
            timeout=self.timeout,
        )
        self._check(res, f"write {collection}/{document_id}")

    def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        res = self.session.get(
            f"{self.base_url}/{collection}/{document_id}", params=self._params(), timeout=self.timeout
        )
        if res.status_code == 404:
            return None
        self._check(res, f"read {collection}/{document_id}")
        return decode_fields(res.json().get("fields", {}))

    def delete(self, collection: str, document_id: str) -> None:
        res = self.session.delete(
            f"{self.base_url}/{collection}/{document_id}", params=self._params(), timeout=self.timeout
        )
        self._check(res, f"delete {collection}/{document_id}")

    def list(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        out: list[tuple[str, dict[str, Any]]] = []
        page_token: str | None = None
        while True:
            extra: dict[str, Any] = {"pageSize": PAGE_SIZE}
            if page_token:
                extra["pageToken"] = page_token
            res = self.session.get(
                f"{self.base_url}/{collection}", params=self._params(extra), timeout=self.timeout
            )
            self._check(res, f"list {collection}")
            body = res.json()
            for doc in body.get("documents", []):
                out.append((doc_id(doc["name"]), decode_fields(doc.get("fields", {}))))
            page_token = body.get("nextPageToken")
            if not page_token:
                break
        logger.debug("Listed %d documents from %s", len(out), collection)
        return out


_FIRESTORE_CLIENTS: dict[tuple[str, str, float], FirestoreClient] = {}


def get_firestore_client(project_id: str, api_key: str = "", timeout: float = 30.0) -> FirestoreClient:
    """One client (and HTTP session) per project and key for the life of the process."""
    key = (project_id, api_key, timeout)
    if key not in _FIRESTORE_CLIENTS:
        _FIRESTORE_CLIENTS[key] = FirestoreClient(project_id, api_key, timeout=timeout)
    return _FIRESTORE_CLIENTS[key]
