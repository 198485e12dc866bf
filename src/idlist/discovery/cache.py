"""Versioned on-disk cache of enumeration results.

One JSON5 document per (namespace, branch, family)::

    // vanilla.items
    {"buildVersion": "1.18.10.21", "completions": ["apple", ...], "length": 812}

Older runs stored a bare array of completions; those load as entries with
no build version so they are never treated as current.
"""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import json5

logger = logging.getLogger(__name__)


class CacheCorruptError(RuntimeError):
    pass


@dataclass(frozen=True)
class CacheKey:
    namespace: str
    branch: str
    family: str

    @property
    def label(self) -> str:
        return f"{self.branch}.{self.family}"

    def path(self, root: Path) -> Path:
        return root / self.namespace / self.branch / f"{self.family}.json"


@dataclass(frozen=True)
class CacheEntry:
    build_version: str | None
    completions: tuple[str, ...]
    length: int

    def __post_init__(self):
        if self.length != len(self.completions):
            raise CacheCorruptError(
                f"Cache length {self.length} does not match {len(self.completions)} completions"
            )

    @classmethod
    def create(cls, build_version: str | None, completions: Iterable[str]) -> CacheEntry:
        items = tuple(completions)
        return cls(build_version=build_version, completions=items, length=len(items))

    def is_current(self, build_version: str) -> bool:
        return self.build_version is not None and self.build_version == build_version

    def to_document(self) -> dict[str, Any]:
        return {
            "buildVersion": self.build_version,
            "completions": list(self.completions),
            "length": self.length,
        }

    @classmethod
    def from_document(cls, data: Any) -> CacheEntry:
        # Legacy: bare list of completions, version unknown.
        if isinstance(data, list):
            return cls.create(None, _string_items(data))

        if not isinstance(data, dict):
            raise CacheCorruptError(f"Unexpected cache document type: {type(data).__name__}")

        raw_items = data.get("completions", data.get("result"))
        if not isinstance(raw_items, list):
            raise CacheCorruptError("Cache document has no completions list")
        items = _string_items(raw_items)

        version = data.get("buildVersion", data.get("version"))
        if version is not None and not isinstance(version, str):
            version = str(version)

        length = data.get("length", len(items))
        if not isinstance(length, int) or isinstance(length, bool):
            raise CacheCorruptError(f"Invalid cache length: {length!r}")
        return cls(build_version=version, completions=items, length=length)


def _string_items(items: list[Any]) -> tuple[str, ...]:
    for item in items:
        if not isinstance(item, str):
            raise CacheCorruptError(f"Non-string completion in cache: {item!r}")
    return tuple(items)


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a versioned lookup.

    ``entry`` is set only when it matches the requested build version;
    ``length_hint`` is the length of whatever was stored, current or not.
    """
    entry: CacheEntry | None = None
    length_hint: int | None = None

    @property
    def hit(self) -> bool:
        return self.entry is not None


@dataclass
class BranchSummary:
    """Combined per-branch output: ``{"version": ..., "<familyId>": [...]}``."""
    version: str
    results: dict[str, list[str]] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return {"version": self.version, **self.results}

    @classmethod
    def from_document(cls, data: Any) -> BranchSummary:
        if not isinstance(data, dict) or not isinstance(data.get("version"), str):
            raise CacheCorruptError("Branch summary has no version")
        results = {k: list(v) for k, v in data.items() if k != "version" and isinstance(v, list)}
        return cls(version=data["version"], results=results)


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temp file and rename.

    Readers see either the previous file or the complete new one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=path.stem, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class ResultCache:
    def __init__(self, root: Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _read(self, path: Path, label: str) -> Any | None:
        if not path.exists():
            return None
        try:
            return json5.loads(path.read_text(encoding="utf-8"))
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning("Cannot use cache %s (%s), discarding %s", label, exc, path)
            path.unlink(missing_ok=True)
            return None

    def _write(self, path: Path, label: str, document: Any) -> None:
        body = json5.dumps(document, indent=4, quote_keys=True, trailing_commas=False, ensure_ascii=False)
        text = f"// {label}\n{body}\n"
        atomic_write_text(path, text)
        logger.debug("Cache written: %s", path)

    def get(self, key: CacheKey) -> CacheEntry | None:
        path = key.path(self._root)
        data = self._read(path, key.label)
        if data is None:
            return None
        try:
            return CacheEntry.from_document(data)
        except CacheCorruptError as exc:
            logger.warning("Cannot use cache %s (%s), discarding %s", key.label, exc, path)
            path.unlink(missing_ok=True)
            return None

    def put(self, key: CacheKey, entry: CacheEntry) -> None:
        self._write(key.path(self._root), key.label, entry.to_document())

    def lookup(self, key: CacheKey, build_version: str) -> CacheLookup:
        entry = self.get(key)
        if entry is None:
            return CacheLookup()
        if entry.is_current(build_version):
            return CacheLookup(entry=entry, length_hint=entry.length)
        logger.info(
            "Cache %s is for build %s, not %s; recomputing",
            key.label,
            entry.build_version or "<legacy>",
            build_version,
        )
        return CacheLookup(entry=None, length_hint=entry.length or None)

    def _summary_path(self, namespace: str, branch: str) -> Path:
        return self._root / namespace / f"{branch}.json"

    def get_summary(self, namespace: str, branch: str) -> BranchSummary | None:
        path = self._summary_path(namespace, branch)
        data = self._read(path, f"{namespace}.{branch}")
        if data is None:
            return None
        try:
            return BranchSummary.from_document(data)
        except CacheCorruptError as exc:
            logger.warning("Cannot use summary %s.%s (%s), discarding", namespace, branch, exc)
            path.unlink(missing_ok=True)
            return None

    def put_summary(self, namespace: str, branch: str, summary: BranchSummary) -> None:
        self._write(self._summary_path(namespace, branch), f"{namespace}.{branch}", summary.to_document())
