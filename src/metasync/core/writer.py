"""Deterministic mapping of catalog objects to mirror files."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path, PurePosixPath

from metasync.core.errors import MirrorWriteError
from metasync.core.models import CatalogObject, LogicalType

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[/\\?%*:|"<>\r\n\t]')
_SKIPPED_DIRS = {".git", ".updater"}


def clean_name(value: str) -> str:
    """Strip characters that are unsafe in a path segment."""
    return _UNSAFE_CHARS.sub("", value)


def type_folder(logical_type: LogicalType) -> PurePosixPath:
    """
    Return the folder holding every file of `logical_type`.

    Layout: `[group/][alias-or-displayName/]`. The alias (the logical key) is
    used when it differs from the type name, which is the case for hierarchy
    levels; flat types fall back to the display name.
    """
    parts: list[str] = []
    config = logical_type.config
    if config.group:
        parts.append(clean_name(config.group))

    if logical_type.key != config.name:
        parts.append(clean_name(logical_type.key))
    elif logical_type.display_name:
        parts.append(clean_name(logical_type.display_name))
    return PurePosixPath(*parts)


def relative_path(obj: CatalogObject, logical_type: LogicalType) -> PurePosixPath:
    """Return the mirror path of `obj`, relative to the working tree root."""
    obj_id = obj.get("id")
    if not obj_id:
        raise MirrorWriteError(f"Object of {logical_type.key} has no id")

    name = obj.get("name")
    if name is not None:
        return type_folder(logical_type) / f"{clean_name(str(name))}-{obj_id}.json"
    return type_folder(logical_type) / f"{obj_id}.json"


class DiskWriter:
    """Writes and removes mirror files below a working tree root."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def write(self, obj: CatalogObject, logical_type: LogicalType) -> str:
        """Persist `obj` as pretty-printed JSON and return its relative path."""
        rel = relative_path(obj, logical_type)
        target = self.root / rel
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(
                json.dumps(obj, indent=4, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            raise MirrorWriteError(f"Could not write {target}: {exc}") from exc
        logger.debug("[IO] writeToDisk: %s", rel)
        return rel.as_posix()

    def remove(self, rel: str) -> bool:
        """Remove one mirror file by relative path; False if it is not there."""
        target = self.root / rel
        if not target.is_file():
            return False
        try:
            target.unlink()
        except OSError as exc:
            raise MirrorWriteError(f"Could not remove {target}: {exc}") from exc
        logger.debug("[IO] Removed %s", rel)
        return True

    def find_by_id(self, obj_id: str, within: str | None = None) -> list[Path]:
        """
        Search for files named `<id>.json` or `<name>-<id>.json`.

        The whole working tree is searched unless `within` names a relative
        directory. Snapshot and git metadata folders are never matched.
        """
        suffix = f"-{obj_id}.json"
        exact = f"{obj_id}.json"
        base = self.root / within if within else self.root
        if not base.is_dir():
            return []
        pattern = f"*{exact}"
        candidates = base.glob(pattern) if within else base.rglob(pattern)
        matches: list[Path] = []
        for path in candidates:
            rel = path.relative_to(self.root)
            if rel.parts and rel.parts[0] in _SKIPPED_DIRS:
                continue
            if path.is_file() and (path.name == exact or path.name.endswith(suffix)):
                matches.append(path)
        return sorted(matches)

    def index_folder(self, within: str) -> dict[str, str]:
        """Map object ids to the relative paths of the mirror files in one folder."""
        base = self.root / within
        rel_base = base.relative_to(self.root)
        if not base.is_dir() or (rel_base.parts and rel_base.parts[0] in _SKIPPED_DIRS):
            return {}
        index: dict[str, str] = {}
        for path in sorted(base.glob("*.json")):
            if not path.is_file():
                continue
            obj_id = path.stem.rsplit("-", 1)[-1]
            index.setdefault(obj_id, path.relative_to(self.root).as_posix())
        return index

    def remove_by_id(
        self,
        obj_id: str,
        known_path: str | None = None,
        *,
        within: str | None = None,
        keep: frozenset[str] | set[str] = frozenset(),
    ) -> bool:
        """
        Remove the mirror files of `obj_id`.

        The path recorded in the snapshot is tried first. Without one (or if
        it is stale) the id is searched for, limited to `within` when given.
        Paths in `keep` are never removed. Zero matches is a data-integrity
        warning, not an error.
        """
        if known_path and known_path not in keep and self.remove(known_path):
            return True

        files = [
            path
            for path in self.find_by_id(obj_id, within=within)
            if path.relative_to(self.root).as_posix() not in keep
        ]
        if not files:
            logger.warning("[IO] Element %s not found in disk.", obj_id)
            return False
        for path in files:
            self.remove(path.relative_to(self.root).as_posix())
        return True
