"""Temple fortune slips: slip pictures and their explanations."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Tuple, Union

BED = "https://gitcode.net/u011570312/senso-ji-omikuji/-/raw/main/{}_{}.jpg"
SLIP_COUNT = 100


def image_urls(number: int) -> Tuple[str, str]:
    """Front and back pictures of slip ``number`` (1 to 100)."""
    if not 1 <= number <= SLIP_COUNT:
        raise ValueError(f"slip number out of range: {number}")
    return BED.format(number, 0), BED.format(number, 1)


class KujiStore:
    """Explanations of the slips, kept in SQLite."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS kuji (id INTEGER PRIMARY KEY, text TEXT NOT NULL)"
            )

    def text(self, number: int) -> str:
        """The explanation of slip ``number``; raises LookupError when missing."""
        with self._lock:
            row = self._conn.execute(
                "SELECT text FROM kuji WHERE id = ?", (number,)
            ).fetchone()
        if row is None:
            raise LookupError(f"no explanation for slip {number}")
        return row[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()