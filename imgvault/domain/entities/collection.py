from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CollectionEntity:
    id: str
    name: str
    description: str
    created_at: datetime
