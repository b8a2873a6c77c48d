from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from imgvault.domain.services.duplicate_detector import DedupPolicy


def _flag(env: Mapping[str, str], name: str, default: str = "0") -> bool:
    return env.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def _postgres_dsn(env: Mapping[str, str]) -> str:
    return (
        f"host={env.get('POSTGRES_HOST', 'localhost')} "
        f"port={env.get('POSTGRES_PORT', '5432')} "
        f"dbname={env.get('POSTGRES_DB', 'imgvault')} "
        f"user={env.get('POSTGRES_USER', 'imgvault')} "
        f"password={env.get('POSTGRES_PASSWORD', 'imgvault_dev_password')}"
    )


@dataclass(frozen=True)
class VaultSettings:
    """Everything the core needs, resolved once and passed in at construction."""

    pixvid_api_key: str = ""
    imgbb_api_key: str = ""  # empty -> optional host is skipped
    default_gallery_source: str = "imgbb"
    firestore_project_id: str = ""
    firestore_api_key: str = ""
    index_disabled: bool = False
    use_local_db: bool = False
    postgres_dsn: str = ""
    hosts_disabled: bool = False
    hosts_local_dir: Path = Path(".local_hosts")
    http_timeout: float = 60.0
    api_token: str = ""
    log_level: str = "INFO"
    dedup: DedupPolicy = field(default_factory=DedupPolicy)

    @property
    def imgbb_enabled(self) -> bool:
        return bool(self.imgbb_api_key) or self.hosts_disabled

    @property
    def index_in_memory(self) -> bool:
        return not self.use_local_db and (self.index_disabled or not self.firestore_project_id)


def load_settings(env: Mapping[str, str] | None = None) -> VaultSettings:
    env = os.environ if env is None else env
    dedup = DedupPolicy(
        thresholds={
            "phash": int(env.get("DEDUP_PHASH_THRESHOLD", "10")),
            "ahash": int(env.get("DEDUP_AHASH_THRESHOLD", "12")),
            "dhash": int(env.get("DEDUP_DHASH_THRESHOLD", "12")),
        },
        min_agreement=int(env.get("DEDUP_MIN_AGREEMENT", "1")),
        include_trash=_flag(env, "DEDUP_INCLUDE_TRASH", "1"),
        context_match=_flag(env, "DEDUP_CONTEXT_MATCH", "1"),
    )
    return VaultSettings(
        pixvid_api_key=env.get("PIXVID_API_KEY", ""),
        imgbb_api_key=env.get("IMGBB_API_KEY", ""),
        default_gallery_source=env.get("DEFAULT_GALLERY_SOURCE", "imgbb"),
        firestore_project_id=env.get("FIRESTORE_PROJECT_ID", ""),
        firestore_api_key=env.get("FIRESTORE_API_KEY", ""),
        index_disabled=_flag(env, "INDEX_DISABLED"),
        use_local_db=_flag(env, "USE_LOCAL_DB"),
        postgres_dsn=env.get("POSTGRES_DSN") or _postgres_dsn(env),
        hosts_disabled=_flag(env, "HOSTS_DISABLED"),
        hosts_local_dir=Path(env.get("HOSTS_LOCAL_DIR", ".local_hosts")),
        http_timeout=float(env.get("HTTP_TIMEOUT", "60")),
        api_token=env.get("VAULT_API_TOKEN", ""),
        log_level=env.get("LOG_LEVEL", "INFO"),
        dedup=dedup,
    )
