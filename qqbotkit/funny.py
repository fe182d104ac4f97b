"""Jokes with the listener's name filled in."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Union

PLACEHOLDER = "%name"


def fill_name(text: str, name: str) -> str:
    """Put ``name`` in place of every placeholder."""
    return text.replace(PLACEHOLDER, name)


class JokeStore:
    """Jokes kept in an SQLite table."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS jokes (id INTEGER PRIMARY KEY, text TEXT NOT NULL)"
            )

    def count(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM jokes").fetchone()[0]

    def pick(self, name: str) -> str:
        """A random joke about ``name``; raises LookupError when there are none."""
        with self._lock:
            row = self._conn.execute(
                "SELECT text FROM jokes ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        if row is None:
            raise LookupError("no jokes stored")
        return fill_name(row[0], name)

    def close(self) -> None:
        with self._lock:
            self._conn.close()