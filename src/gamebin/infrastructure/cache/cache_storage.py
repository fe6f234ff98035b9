"""Durable storage for request cache entries.

The whole cache is kept in one JSON file mapping each key to
``{"data": ..., "timestamp": ...}``. Storage problems never fail a request:
an unreadable file loads as empty and a failed write is logged.
"""

import json
from pathlib import Path
from typing import Any

from gamebin.core.logging import get_logger

logger = get_logger(__name__)


class JsonFileCacheStorage:
    """Cache entries persisted to a single JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, dict[str, Any]]:
        """Read stored entries, skipping any that are malformed."""
        if not self.path.exists():
            return {}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to read cache file", path=str(self.path), error=str(e))
            return {}

        if not isinstance(raw, dict):
            logger.warning("Ignoring cache file with unexpected shape", path=str(self.path))
            return {}

        entries = {
            key: entry
            for key, entry in raw.items()
            if isinstance(entry, dict)
            and "data" in entry
            and isinstance(entry.get("timestamp"), (int, float))
        }
        logger.debug("Cache file loaded", path=str(self.path), entries=len(entries))
        return entries

    def save(self, entries: dict[str, dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(entries), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to persist cache", path=str(self.path), error=str(e))
