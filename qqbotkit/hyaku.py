"""Hyakunin Isshu: the hundred poems, their pictures and their text."""

from __future__ import annotations

import csv
import random
from dataclasses import astuple, dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

BED = "https://gitcode.net/u011570312/OguraHyakuninIsshu/-/raw/master/"
CSV_NAME = "小倉百人一首.csv"
POEM_COUNT = 100

_LABELS = ("番号", "歌人", "上の句", "下の句", "上の句ひらがな", "下の句ひらがな")
_MARKS = ("●", "◉", "○", "○", "◎", "◎")


@dataclass(frozen=True)
class Poem:
    """One poem as read from the table."""

    number: str
    poet: str
    upper: str
    lower: str
    upper_kana: str
    lower_kana: str

    def __str__(self) -> str:
        return "".join(
            f"{mark}{label}：{value}\n"
            for mark, label, value in zip(_MARKS, _LABELS, astuple(self))
        )


def load_poems(path: Union[str, Path]) -> List[Poem]:
    """Read the poem table: a title row and then poems 1 to 100 in order."""
    with open(path, newline="", encoding="utf-8-sig") as handle:
        records = list(csv.reader(handle))[1:]
    if len(records) != POEM_COUNT:
        raise ValueError("invalid csvfile")
    poems = []
    for expected, record in enumerate(records, start=1):
        if len(record) != len(_LABELS):
            raise ValueError("invalid csvfile")
        if int(record[0]) != expected:
            raise ValueError("invalid csvfile")
        poems.append(Poem(*record))
    return poems


def image_urls(number: int) -> Tuple[str, str]:
    """The card picture and the text picture of a poem."""
    return f"{BED}img/{number:03d}.jpg", f"{BED}img/{number:03d}.png"


def pick_poem(poems: Sequence[Poem], number: Optional[int] = None) -> Poem:
    """Poem ``number`` (1 to 100), or a random one when ``number`` is None."""
    if number is None:
        return poems[random.randrange(len(poems))]
    if number < 1 or number > POEM_COUNT or number > len(poems):
        raise ValueError("超出范围")
    return poems[number - 1]