"""Group management helpers: ban durations, welcome messages, switches and gist join checks."""

from __future__ import annotations

import hashlib
import logging
import random
import re
import sqlite3
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import requests

log = logging.getLogger(__name__)

MAX_BAN_MINUTES = 43199  # one month is the longest ban allowed
GIST_RAW = "https://gist.githubusercontent.com/{user}/{hash}/raw/{name}"
GIST_WINDOW_SECONDS = 600
VERIFY_BIT = 0x1
GIST_BIT = 0x10

_MESSAGE_TABLES = ("welcome", "farewell")
_ENABLE_WORDS = ("开启", "打开", "启用")
_DISABLE_WORDS = ("关闭", "关掉", "禁用")
_ANSWER_MARK = "答案："
_TIMESTAMP = re.compile(r"[+-]?[0-9]+")

_UNITS = {"分钟": 1, "小时": 60, "天": 60 * 24}
_EXTENDED_UNITS = {
    "min": 1, "mins": 1, "m": 1,
    "hour": 60, "hours": 60, "h": 60,
    "day": 60 * 24, "days": 60 * 24, "d": 60 * 24,
}

Fetch = Callable[[str], Union[bytes, str]]


class ManagerStore:
    """Welcome and farewell messages and gist-verified members in SQLite."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        with self._lock, self._conn:
            for table in _MESSAGE_TABLES:
                self._conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {table} "
                    "(gid INTEGER PRIMARY KEY, msg TEXT NOT NULL)"
                )
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS member (qq INTEGER PRIMARY KEY, ghun TEXT NOT NULL)"
            )

    @staticmethod
    def _check_table(table: str) -> str:
        if table not in _MESSAGE_TABLES:
            raise ValueError(f"unknown message table: {table!r}")
        return table

    def find_message(self, table: str, group_id: int) -> Optional[str]:
        """The stored message of ``table`` for a group, or None."""
        table = self._check_table(table)
        with self._lock:
            row = self._conn.execute(
                f"SELECT msg FROM {table} WHERE gid = ?", (group_id,)
            ).fetchone()
        return row[0] if row else None

    def set_message(self, table: str, group_id: int, message: str) -> None:
        table = self._check_table(table)
        with self._lock, self._conn:
            self._conn.execute(
                f"REPLACE INTO {table} (gid, msg) VALUES (?, ?)", (group_id, message)
            )

    def has_member(self, github_user: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM member WHERE ghun = ?", (github_user,)
            ).fetchone()
        return row is not None

    def add_member(self, qq: int, github_user: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "REPLACE INTO member (qq, ghun) VALUES (?, ?)", (qq, github_user)
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def parse_ban_minutes(amount: Union[int, str], unit: str, extended: bool = False) -> int:
    """Ban length in minutes; unknown units count as minutes.

    ``extended`` also accepts the English unit names used by the self-ban command.
    The result is capped just below one month.
    """
    minutes = int(amount)
    factor = _UNITS.get(unit)
    if factor is None and extended:
        factor = _EXTENDED_UNITS.get(unit)
    minutes *= factor or 1
    return min(minutes, MAX_BAN_MINUTES)


def unescape_brackets(text: str) -> str:
    """Undo the escaping of square brackets in CQ code text."""
    return text.replace("&#91;", "[").replace("&#93;", "]")


def render_welcome(
    template: str, user_id: int, nickname: str, group_id: int, group_name: str
) -> str:
    """Fill the placeholders of a welcome or farewell template with CQ codes and values."""
    uid = str(user_id)
    replacements = (
        ("{at}", f"[CQ:at,qq={uid}]"),
        ("{nickname}", nickname),
        ("{avatar}", f"[CQ:image,file=http://q4.qlogo.cn/g?b=qq&nk={uid}&s=640]"),
        ("{uid}", uid),
        ("{gid}", str(group_id)),
        ("{groupname}", group_name),
    )
    text = template
    for placeholder, value in replacements:
        text = text.replace(placeholder, value)
    return text


def _toggle(data: int, option: str, set_bits: int, clear_mask: int) -> int:
    if option in _ENABLE_WORDS:
        return data | set_bits
    if option in _DISABLE_WORDS:
        return data & clear_mask
    raise ValueError(f"unknown option: {option!r}")


def toggle_verification(data: int, option: str) -> int:
    """Plugin data with the join-verification switch turned on or off."""
    return _toggle(data, option, VERIFY_BIT, 0x7FFFFFFF_FFFFFFFE)


def toggle_gist_approval(data: int, option: str) -> int:
    """Plugin data with the gist auto-approval switch turned on or off."""
    return _toggle(data, option, GIST_BIT, 0x7FFFFFFF_FFFFFFFD)


def parse_join_answer(comment: str) -> Tuple[str, str]:
    """Split the answer of a join request into github user name and gist hash."""
    mark = comment.find(_ANSWER_MARK)
    answer = comment[mark + len(_ANSWER_MARK):] if mark >= 0 else comment
    slash = answer.find("/")
    if slash <= 0:
        raise ValueError("格式错误!")
    return answer[:slash], answer[slash + 1:]


def pick_lucky_member(
    members: Sequence[Mapping[str, object]], rng: Optional[random.Random] = None
) -> Mapping[str, object]:
    """Choose one of the ten members who spoke most recently."""
    if not members:
        raise ValueError("no members to choose from")
    rng = rng or random.Random()
    recent: List[Mapping[str, object]] = sorted(
        members, key=lambda m: int(m.get("last_sent_time", 0) or 0)
    )[-10:]
    return recent[rng.randrange(len(recent))]


def gist_url(github_user: str, gist_hash: str, group_id: int) -> str:
    """Raw gist file whose name is the md5 of the group number."""
    name = hashlib.md5(str(group_id).encode("ascii")).hexdigest()
    return GIST_RAW.format(user=github_user, hash=gist_hash, name=name)


def _default_fetch(url: str) -> bytes:
    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response.content


def check_new_user(
    store: ManagerStore,
    qq: int,
    group_id: int,
    github_user: str,
    gist_hash: str,
    fetch: Optional[Fetch] = None,
    now: Optional[float] = None,
) -> Tuple[bool, str]:
    """Verify a join request against the applicant's gist.

    Returns whether to approve and, if not, the reason. An approved user is stored.
    """
    if store.has_member(github_user):
        return False, "该github用户已入群"
    url = gist_url(github_user, gist_hash, group_id)
    log.debug("[gist]visit url: %s", url)
    try:
        data = (fetch or _default_fetch)(url)
    except OSError as err:
        return False, "无法连接到gist: " + str(err)
    text = data.decode("utf-8", "replace") if isinstance(data, bytes) else data
    log.debug("[gist]get data: %s", text)
    if not _TIMESTAMP.fullmatch(text):
        return False, "时间戳格式错误: " + text
    stamp = int(text)
    current = int(time.time() if now is None else now)
    if abs(current - stamp) < GIST_WINDOW_SECONDS:
        store.add_member(qq, github_user)
        return True, ""
    return False, "时间戳超时"