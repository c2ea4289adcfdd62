"""Persistence of per-type snapshots inside the mirror working tree.

A snapshot is the list of `{id, lastUpdated, path}` entries observed on the
remote at the end of the previous pass. It lives at
`<root>/.updater/<logical key>.json` and is committed with the mirror, so the
repository always carries the state it was reconciled against.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Iterable

from metasync.core.errors import SnapshotWriteError
from metasync.core.models import CatalogItemRef
from metasync.core.writer import clean_name

logger = logging.getLogger(__name__)

SNAPSHOT_DIR = ".updater"


class SnapshotStore:
    """Reads and replaces snapshot files below a working tree root."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.directory = self.root / SNAPSHOT_DIR

    def path_for(self, key: str) -> Path:
        """Return the snapshot file path for a logical key."""
        return self.directory / f"{clean_name(key)}.json"

    def read(self, key: str) -> list[CatalogItemRef]:
        """
        Return the refs recorded for `key`.

        A missing, unreadable or malformed file yields an empty list: the
        first run of a type is a bootstrap, not an error.
        """
        path = self.path_for(key)
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("[IO] Ignoring unreadable snapshot %s: %s", path, exc)
            return []
        if not isinstance(payload, list):
            logger.warning("[IO] Ignoring malformed snapshot %s", path)
            return []

        refs: list[CatalogItemRef] = []
        for item in payload:
            try:
                refs.append(CatalogItemRef.from_json(item))
            except (KeyError, TypeError, AttributeError):
                continue
        return refs

    def write(self, key: str, refs: Iterable[CatalogItemRef]) -> Path:
        """
        Replace the snapshot for `key` with `refs`.

        The file is written next to its destination and renamed over it, so
        an interrupted write leaves the previous snapshot in place.
        """
        path = self.path_for(key)
        tmp = path.with_name(path.name + ".tmp")
        payload = [ref.to_json() for ref in refs]
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=4) + "\n", encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise SnapshotWriteError(f"Could not write snapshot {path}: {exc}") from exc
        logger.debug("[IO] Snapshot %s: %d entries", key, len(payload))
        return path
