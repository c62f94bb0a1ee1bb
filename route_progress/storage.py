"""Durable key-value stores backing the persisted state records.

Each state record is serialized to a single value, so reading a key returns a
whole record and writing one replaces it whole.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, TypeVar

from .utils import json_dumps_sorted

LOGGER = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

T = TypeVar("T")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...


class MemoryStore:
    """Dict-backed store for tests and embedding."""

    def __init__(self, initial: Mapping[str, bytes] | None = None) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class FileStore:
    """One file per key under ``directory``.

    Writes land in a temporary sibling first and are swapped in with
    ``Path.replace`` so readers never see a half-written record.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".tmp")
            temp_path.write_bytes(value)
            temp_path.replace(path)


def encode_record(record: Mapping[str, Any]) -> bytes:
    return json_dumps_sorted(record).encode("utf-8")


def load_record(
    store: KeyValueStore,
    key: str,
    parse: Callable[[Mapping[str, Any]], T],
) -> Optional[T]:
    """Read and parse the record stored under ``key``.

    Returns ``None`` when the key is missing or the stored value cannot be
    parsed; the latter is logged so the caller can fall back to defaults.
    """

    raw = store.get(key)
    if raw is None:
        return None
    try:
        payload = json.loads(raw.decode("utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"expected object, got {type(payload).__name__}")
        return parse(payload)
    except (ValueError, TypeError, KeyError, UnicodeDecodeError) as exc:
        LOGGER.warning("Ignoring malformed record key=%s: %s", key, exc)
        return None


def save_record(store: KeyValueStore, key: str, record: Mapping[str, Any]) -> None:
    store.set(key, encode_record(record))


__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "encode_record",
    "load_record",
    "save_record",
]
