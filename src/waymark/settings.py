from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_path(name: str, default: Path) -> Path:
    raw = os.environ.get(name)
    if not raw:
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    """Static settings for the bridge process.

    Nothing here is persisted; the ledger itself lives only in memory.
    """

    data_dir: Path = _env_path("WAYMARK_DATA_DIR", Path.home() / ".waymark")
    log_path: Path = _env_path("WAYMARK_LOG_PATH", data_dir / "waymark.log")
    log_level: str = os.environ.get("WAYMARK_LOG_LEVEL", "INFO")
    log_max_bytes: int = int(os.environ.get("WAYMARK_LOG_MAX_BYTES", str(1_000_000)))
    log_backup_count: int = int(os.environ.get("WAYMARK_LOG_BACKUP_COUNT", "3"))


settings = Settings()
