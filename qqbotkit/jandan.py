"""Boring-picture collection: CRC-64 keyed picture store and page scraping."""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

import lxml.html
import requests

log = logging.getLogger(__name__)

API = "http://jandan.net/pic"

_ISO_POLY = 0xD800000000000000
_MASK64 = (1 << 64) - 1
_PAGE_XPATH = (
    "//*[@id='comments']/div[2]/div/span[@class='current-comment-page']/text()"
)
_LINK_XPATH = "//*[@class='view_img_link']"
_PREVIOUS_XPATH = (
    "//*[@id='comments']/div[@class='comments']/div[@class='cp-pagenavi']"
    "/a[@class='previous-comment-page']"
)
_NUMBER = re.compile(r"\d+")

Html = Union[str, bytes]
Fetch = Callable[[str], Html]


def _make_table() -> tuple:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            crc = (crc >> 1) ^ _ISO_POLY if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_TABLE = _make_table()


def crc64_iso(data: Union[bytes, str]) -> int:
    """CRC-64 with the ISO polynomial, as an unsigned 64-bit number."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    crc = _MASK64
    for byte in data:
        crc = _TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ _MASK64


def _to_signed(key: int) -> int:
    return key - (1 << 64) if key >= 1 << 63 else key


class PictureStore:
    """Picture URLs keyed by the CRC-64 of the URL, kept in SQLite."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS picture (id INTEGER PRIMARY KEY, url TEXT NOT NULL)"
            )

    def random_url(self) -> str:
        """A randomly chosen stored URL; raises LookupError when the store is empty."""
        with self._lock:
            row = self._conn.execute(
                "SELECT url FROM picture ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        if row is None:
            raise LookupError("no pictures stored")
        return row[0]

    def contains(self, key: int) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM picture WHERE id = ?", (_to_signed(key),)
            ).fetchone()
        return row is not None

    def add(self, url: str) -> int:
        """Store ``url`` and return its key."""
        key = crc64_iso(url)
        with self._lock, self._conn:
            self._conn.execute(
                "REPLACE INTO picture (id, url) VALUES (?, ?)", (_to_signed(key), url)
            )
        return key

    def count(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM picture").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def _document(html: Html):
    return lxml.html.document_fromstring(html)


def page_total(html: Html) -> int:
    """Number of the current (newest) page; raises ValueError when absent."""
    nodes = _document(html).xpath(_PAGE_XPATH)
    text = str(nodes[0]) if nodes else ""
    match = _NUMBER.search(text)
    if match is None:
        raise ValueError("current page number not found")
    return int(match.group())


def picture_links(html: Html) -> List[str]:
    """Full-size picture URLs on a page."""
    links = []
    for element in _document(html).xpath(_LINK_XPATH):
        values = list(element.attrib.values())
        if values:
            links.append("https:" + values[0])
    return links


def previous_page(html: Html) -> str:
    """URL of the previous page; raises LookupError when there is no such link."""
    found = _document(html).xpath(_PREVIOUS_XPATH)
    if not found:
        raise LookupError("previous page link not found")
    values = list(found[0].attrib.values())
    if len(values) < 2:
        raise LookupError("previous page link has no target")
    return "https:" + values[1]


def _default_fetch(url: str) -> bytes:
    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response.content


def update(store: PictureStore, fetch: Optional[Fetch] = None) -> int:
    """Walk pages from the newest, adding pictures until one is already known.

    Returns the number of pictures added.
    """
    fetch = fetch or _default_fetch
    url = API
    total = page_total(fetch(url))
    added = 0
    for i in range(total):
        log.debug("[jandan]处理第%d/%d页...", i, total)
        html = fetch(url)
        for link in picture_links(html):
            if store.contains(crc64_iso(link)):
                return added
            store.add(link)
            added += 1
        if i != total - 1:
            url = previous_page(html)
    return added