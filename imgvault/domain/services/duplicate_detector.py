from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Iterable, Mapping, Protocol

from imgvault.domain.entities.image_record import ImageRecord
from imgvault.domain.services.hash_service import hamming_distance
from imgvault.domain.services.url_normalizer import normalize_url

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


class RecordSource(Protocol):
    def list_all(self) -> list[ImageRecord]: ...


class TrashSource(Protocol):
    def list_all(self) -> list: ...


@dataclass(frozen=True)
class DedupPolicy:
    # Max differing bits (out of 64) for each perceptual hash to count as "same photo"
    thresholds: Mapping[str, int] = field(
        default_factory=lambda: {"phash": 10, "ahash": 12, "dhash": 12}
    )
    # How many of the compared hashes must fall within their threshold
    min_agreement: int = 1
    include_trash: bool = True
    context_match: bool = True


@dataclass(frozen=True)
class DuplicateMatch:
    record: ImageRecord
    kind: str  # exact | perceptual | context
    in_trash: bool = False
    score: float = 0.0  # mean normalised Hamming distance, 0 for exact/context
    distances: dict[str, int] = field(default_factory=dict)
    trash_id: str | None = None


def _added_at(record: ImageRecord) -> datetime:
    return record.internal_added_timestamp or _EPOCH


class DuplicateDetector:
    """Finds an existing record that the new image duplicates.

    Phases, first hit wins: exact sha256, closest perceptual match within
    policy, then same normalised source image + page URL. The detector only
    reports; whether to proceed is the caller's decision.
    """

    def __init__(
        self,
        images: RecordSource,
        trash: TrashSource | None = None,
        policy: DedupPolicy | None = None,
    ) -> None:
        self.images = images
        self.trash = trash
        self.policy = policy or DedupPolicy()

    def _candidates(self) -> list[tuple[ImageRecord, bool, str | None]]:
        # Unlocked snapshot read; a concurrent insert is at worst a missed duplicate
        rows: list[tuple[ImageRecord, bool, str | None]] = [
            (record, False, None) for record in self.images.list_all()
        ]
        if self.policy.include_trash and self.trash is not None:
            rows.extend((item.record, True, item.id) for item in self.trash.list_all())
        return rows

    def compare(self, new_hashes: Mapping[str, str], existing: ImageRecord) -> tuple[int, dict[str, int], float] | None:
        """Return (agreeing hash count, distances, score) or None when nothing is comparable."""
        distances: dict[str, int] = {}
        normalised: list[float] = []
        agreeing = 0
        theirs = existing.perceptual_hashes
        for name, ours in new_hashes.items():
            other = theirs.get(name)
            if not ours or not other or len(ours) != len(other):
                continue
            try:
                distance = hamming_distance(ours, other)
            except ValueError:
                continue
            distances[name] = distance
            normalised.append(distance / (len(ours) * 4))
            if distance <= self.policy.thresholds.get(name, -1):
                agreeing += 1
        if not distances:
            return None
        return agreeing, distances, sum(normalised) / len(normalised)

    def find_duplicate(
        self,
        sha256: str,
        perceptual: Mapping[str, str] | None = None,
        *,
        source_image_url: str | None = None,
        source_page_url: str | None = None,
        candidates: Iterable[tuple[ImageRecord, bool, str | None]] | None = None,
    ) -> DuplicateMatch | None:
        rows = list(candidates) if candidates is not None else self._candidates()
        logger.debug("Duplicate check against %d records", len(rows))

        for record, in_trash, trash_id in rows:
            if sha256 and record.sha256 == sha256:
                logger.info("Exact duplicate of %s (trash=%s)", record.id, in_trash)
                return DuplicateMatch(record=record, kind="exact", in_trash=in_trash, trash_id=trash_id)

        best: DuplicateMatch | None = None
        if perceptual:
            for record, in_trash, trash_id in rows:
                compared = self.compare(perceptual, record)
                if compared is None:
                    continue
                agreeing, distances, score = compared
                if agreeing < max(1, self.policy.min_agreement):
                    continue
                if (
                    best is None
                    or score < best.score
                    or (score == best.score and _added_at(record) > _added_at(best.record))
                ):
                    best = DuplicateMatch(
                        record=record,
                        kind="perceptual",
                        in_trash=in_trash,
                        score=score,
                        distances=distances,
                        trash_id=trash_id,
                    )
        if best is not None:
            logger.info("Visual duplicate of %s (score %.3f, %s)", best.record.id, best.score, best.distances)
            return best

        if self.policy.context_match and source_image_url and source_page_url:
            src = normalize_url(source_image_url)
            page = normalize_url(source_page_url)
            for record, in_trash, trash_id in rows:
                if normalize_url(record.source_image_url) == src and normalize_url(record.source_page_url) == page:
                    logger.info("Context duplicate of %s", record.id)
                    return DuplicateMatch(record=record, kind="context", in_trash=in_trash, trash_id=trash_id)
        return None
