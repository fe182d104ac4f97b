"""Per-group wife galleries: adding, removing and the daily draw."""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, Union

EVERYONE_BIT = 0x1
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_EMPTY = "一个wife也没有哦~"
_NO_NAME = "没有找到wife的名字！"


def group_folder_name(group_id: int) -> str:
    """The group number in base 36, used as its folder name."""
    n = abs(group_id)
    digits = []
    while True:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
        if n == 0:
            break
    text = "".join(reversed(digits))
    return "-" + text if group_id < 0 else text


def clean_name(text: str, keyword: str) -> str:
    """The wife name following ``keyword`` in ``text``, without spaces or slashes."""
    compact = text.replace(" ", "")
    at = compact.rfind(keyword)
    rest = compact[at + len(keyword):] if at >= 0 else compact
    name = rest.replace("/", "").replace("\\", "")
    if not name:
        raise ValueError(_NO_NAME)
    return name


def daily_index(name: str, count: int, today: date) -> int:
    """Index in ``0..count-1`` fixed for one person on one day."""
    if count <= 0:
        raise ValueError("count must be positive")
    key = f"{name}{today.year}{today.month}{today.day}"
    digest = hashlib.md5(key.encode("utf-8")).digest()
    seed = int.from_bytes(digest[:8], "little", signed=True)
    return random.Random(seed).randrange(count)


def can_add(data: int, is_admin: bool) -> bool:
    """Whether a member may add wives, given the group's plugin data."""
    return data & EVERYONE_BIT == EVERYONE_BIT or is_admin


def everyone_flag(enable: bool) -> int:
    """Plugin data letting everyone add wives, or only admins."""
    return EVERYONE_BIT if enable else 0


@dataclass(frozen=True)
class WifeDraw:
    """Result of a draw; ``shared`` means the group has just one wife."""

    name: str
    path: Path
    shared: bool

    def message(self, nickname: str) -> str:
        if self.shared:
            return f"大家的wife都是{self.name}\n"
        return f"{nickname}的wife是{self.name}\n"


def _check(name: str) -> str:
    if not name or "/" in name or "\\" in name or name in (".", ".."):
        raise ValueError(_NO_NAME)
    return name


class WifeGallery:
    """Wife pictures stored under ``base``, one folder per group."""

    def __init__(self, base: Union[str, Path]) -> None:
        self.base = Path(base)

    def _folder(self, group_id: int) -> Path:
        return self.base / group_folder_name(group_id)

    def draw(self, group_id: int, nickname: str, today: Optional[date] = None) -> WifeDraw:
        """Today's wife of ``nickname``; raises LookupError when the group has none."""
        folder = self._folder(group_id)
        try:
            names = sorted(p.name for p in folder.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            raise LookupError(_EMPTY) from None
        if not names:
            raise LookupError(_EMPTY)
        if len(names) == 1:
            return WifeDraw(names[0], folder / names[0], True)
        index = daily_index(nickname, len(names), today or date.today())
        return WifeDraw(names[index], folder / names[index], False)

    def add(self, group_id: int, name: str, data: bytes) -> Path:
        """Store a picture under ``name``; returns its path."""
        folder = self._folder(group_id)
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / _check(name)
        path.write_bytes(data)
        return path

    def remove(self, group_id: int, name: str) -> None:
        """Delete a wife; raises FileNotFoundError when there is none of that name."""
        (self._folder(group_id) / _check(name)).unlink()