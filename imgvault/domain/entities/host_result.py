"""Per-host outcome of an upload or delete.

Each host call resolves to exactly one of ``HostSucceeded``, ``HostSkipped`` or
``HostFailed`` so the coordinator can combine the two hosts without optional
chaining over half-filled dicts.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

PIXVID = "pixvid"
IMGBB = "imgbb"


@dataclass(frozen=True)
class HostSucceeded:
    host: str
    url: str = ""
    delete_token: str | None = None
    thumb_url: str | None = None


@dataclass(frozen=True)
class HostSkipped:
    host: str
    reason: str


@dataclass(frozen=True)
class HostFailed:
    host: str
    error: str


HostResult = Union[HostSucceeded, HostSkipped, HostFailed]
