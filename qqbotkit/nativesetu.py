"""Local picture library: folders as classes, indexed by difference hash in SQLite."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Union

from PIL import Image

log = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif", ".webp")
SUMMARY_TITLE = "所有本地setu分类"

PathLike = Union[str, Path]


def difference_hash(image: Image.Image) -> int:
    """64-bit difference hash of ``image`` as a signed integer."""
    small = image.convert("RGB").resize((9, 8), Image.BILINEAR)
    pixels = small.load()
    value = 0
    index = 0
    for y in range(8):
        row = [
            0.299 * r + 0.587 * g + 0.114 * b
            for r, g, b in (pixels[x, y] for x in range(9))
        ]
        for left, right in zip(row, row[1:]):
            if left < right:
                value |= 1 << (63 - index)
            index += 1
    return value - (1 << 64) if value >= 1 << 63 else value


@dataclass(frozen=True)
class SetuEntry:
    """One indexed picture; ``path`` is relative to the library root."""

    img_id: int
    name: str
    path: str


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _subfolders(folder: Path) -> Iterator[Path]:
    """Every folder below ``folder`` in lexical pre-order; errors propagate."""
    for entry in sorted(folder.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            yield entry
            yield from _subfolders(entry)


class SetuLibrary:
    """Pictures grouped into classes, one SQLite table per class."""

    def __init__(self, db_path: PathLike) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None

    def _db(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def classes(self) -> List[str]:
        """Names of the known classes; empty when no index exists yet."""
        with self._lock:
            if not self.db_path.exists():
                return []
            rows = self._db().execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        return [row[0] for row in rows]

    def _create(self, name: str) -> None:
        conn = self._db()
        with conn:
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {_quote(name)} "
                "(imgid INTEGER PRIMARY KEY, name TEXT NOT NULL, path TEXT NOT NULL)"
            )

    def scan_all(self, root: PathLike) -> None:
        """Rebuild the whole index from the folders below ``root``."""
        root = Path(root)
        if not root.is_dir():
            raise NotADirectoryError(str(root))
        with self._lock:
            self.close()
            self.db_path.unlink(missing_ok=True)
        for folder in _subfolders(root):
            rel = folder.relative_to(root).as_posix()
            self.scan_class(root, rel, folder.name)

    def scan_class(self, root: PathLike, rel: str, name: str) -> int:
        """Re-index class ``name`` from folder ``rel`` under ``root``; returns pictures stored."""
        folder = Path(root) / rel
        entries = sorted(folder.iterdir(), key=lambda p: p.name)
        with self._lock:
            self._create(name)
            conn = self._db()
            with conn:
                conn.execute(f"DELETE FROM {_quote(name)}")
        stored = 0
        for entry in entries:
            if entry.is_dir() or not entry.name.lower().endswith(IMAGE_SUFFIXES):
                continue
            relpath = f"{rel}/{entry.name}"
            log.debug("[nsetu] read %s", relpath)
            with Image.open(entry) as image:
                image.load()
                img_id = difference_hash(image)
            log.debug("[nsetu] insert %s with id %d into %s", entry.name, img_id, name)
            with self._lock:
                conn = self._db()
                with conn:
                    conn.execute(
                        f"REPLACE INTO {_quote(name)} (imgid, name, path) VALUES (?, ?, ?)",
                        (img_id, entry.name, relpath),
                    )
            stored += 1
        return stored

    def _require(self, name: str) -> None:
        if name not in self.classes():
            raise LookupError(f"no such class: {name!r}")

    def pick(self, name: str) -> SetuEntry:
        """A random picture of class ``name``; raises LookupError if there is none."""
        with self._lock:
            self._require(name)
            row = self._db().execute(
                f"SELECT imgid, name, path FROM {_quote(name)} ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        if row is None:
            raise LookupError(f"class {name!r} is empty")
        return SetuEntry(*row)

    def count(self, name: str) -> int:
        with self._lock:
            self._require(name)
            return self._db().execute(f"SELECT COUNT(*) FROM {_quote(name)}").fetchone()[0]

    def summary(self) -> str:
        """Numbered list of classes with their picture counts."""
        lines = [SUMMARY_TITLE]
        for i, name in enumerate(self.classes()):
            try:
                lines.append(f"{i:02d}. {name}({self.count(name)})")
            except (LookupError, sqlite3.Error) as err:
                log.error("[nsetu] %s", err)
                lines.append(f"{i:02d}. {name}(error)")
        return "\n".join(lines)