"""Daily fortune slips: theme selection, text layout and drawing on a themed background."""

from __future__ import annotations

import hashlib
import io
import json
import zipfile
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from PIL import Image, ImageDraw, ImageFont

IMAGES_DIR = "data/Fortune/"
OMIKUJI_JSON = IMAGES_DIR + "text.json"
FONT_PATH = "data/Font/sakura.ttf"
CACHE_DIR = IMAGES_DIR + "cache/"

THEMES = (
    "车万", "DC4", "爱因斯坦", "星空列车", "樱云之恋", "富婆妹", "李清歌", "公主连结", "原神",
    "明日方舟", "碧蓝航线", "碧蓝幻想", "战双", "阴阳师", "赛马娘", "东方归言录", "奇异恩典", "夏日口袋",
)
DEFAULT_THEME = THEMES[0]

COLUMN = 9
TITLE_SIZE = 45
BODY_SIZE = 23
TITLE_CENTER_X = 140
TITLE_BASELINE = 112
TEXT_X = 115
TEXT_Y = 320.0
CHAR_PADDING = 10

_WHITE = (255, 255, 255, 255)
_BLACK = (0, 0, 0, 255)

PathLike = Union[str, Path]
Placement = Tuple[str, float, float]


def theme_index(name: str) -> int:
    """Position of a background theme; raises ValueError for an unknown one."""
    try:
        return THEMES.index(name)
    except ValueError:
        raise ValueError("没有这个底图哦～") from None


def offset(total: int, now: int, distance: float) -> float:
    """Offset of the ``now``-th of ``total`` items spaced ``distance`` apart."""
    half = total // 2
    if total % 2 == 0:
        return (now - half - 1) * distance
    return (now - half - 1.5) * distance


def rows_num(total: int, div: int) -> int:
    """Number of groups of ``div`` needed to hold ``total`` items."""
    quotient, remainder = divmod(total, div)
    return quotient + (remainder != 0)


def text_layout(text: str, char_width: float, char_height: float) -> List[Placement]:
    """Baseline positions of each character, written in vertical columns right to left."""
    chars = list(text)
    count = len(chars)
    columns = rows_num(count, COLUMN)
    placed: List[Placement] = []
    if columns == 2:
        div = rows_num(count, 2)
        for i, char in enumerate(chars):
            column = rows_num(i + 1, div)
            in_column = min(count - (column - 1) * div, div)
            row = i % div + 1
            x = -offset(columns, column, char_width) + TEXT_X
            if column == 1:
                y = offset(COLUMN, row, char_height) + TEXT_Y
            else:
                y = offset(COLUMN, row + (COLUMN - in_column), char_height) + TEXT_Y
            placed.append((char, x, y))
        return placed
    for i, char in enumerate(chars):
        column = rows_num(i + 1, COLUMN)
        in_column = min(count - (column - 1) * COLUMN, COLUMN)
        row = i % COLUMN + 1
        x = -offset(columns, column, char_width) + TEXT_X
        y = offset(in_column, row, char_height) + TEXT_Y
        placed.append((char, x, y))
    return placed


def cache_key(zip_path: str, index: int, title: str, text: str) -> str:
    """Name of the cached picture for one background and slip."""
    return hashlib.md5((zip_path + str(index) + title + text).encode("utf-8")).hexdigest()


def load_omikujis(path: PathLike) -> List[Dict[str, str]]:
    """Read the list of slips, each with a title and content."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValueError("omikuji file must hold a list of objects")
    return [{str(k): str(v) for k, v in item.items()} for item in data]


def pick_background(zip_path: PathLike, index: int) -> Image.Image:
    """Decode the ``index``-th entry of a background archive."""
    with zipfile.ZipFile(zip_path) as archive:
        entries = archive.infolist()
        if not 0 <= index < len(entries):
            raise IndexError(f"background index {index} out of range 0..{len(entries) - 1}")
        with archive.open(entries[index]) as handle:
            image = Image.open(handle)
            image.load()
    return image


def _load_font(font_path: Optional[PathLike], size: int):
    if font_path is None:
        try:
            return ImageFont.load_default(size=size)
        except TypeError:
            return ImageFont.load_default()
    return ImageFont.truetype(str(font_path), size)


def _put_text(painter: ImageDraw.ImageDraw, x: float, y: float, text: str, font, fill) -> None:
    """Draw ``text`` with its baseline at ``y``."""
    if isinstance(font, ImageFont.FreeTypeFont):
        painter.text((x, y), text, fill=fill, font=font, anchor="ls")
    else:
        painter.text((x, y - font.getbbox(text)[3]), text, fill=fill, font=font)


def draw(
    background: Image.Image,
    title: str,
    text: str,
    font_path: Optional[PathLike],
    out: Union[PathLike, BinaryIO],
) -> int:
    """Draw a slip on ``background`` and write it as PNG; returns the bytes written.

    The canvas takes the background's height as width and its width as height.
    ``font_path`` None uses Pillow's built-in font.
    """
    back = background.convert("RGBA")
    canvas = Image.new("RGBA", (back.height, back.width), (0, 0, 0, 0))
    canvas.paste(back, (0, 0))
    painter = ImageDraw.Draw(canvas)

    title_font = _load_font(font_path, TITLE_SIZE)
    title_width = painter.textlength(title, font=title_font)
    _put_text(painter, TITLE_CENTER_X - title_width / 2, TITLE_BASELINE, title, title_font, _WHITE)

    body_font = _load_font(font_path, BODY_SIZE)
    char_width = painter.textlength("测", font=body_font) + CHAR_PADDING
    char_height = BODY_SIZE * 72 / 96 + CHAR_PADDING
    for char, x, y in text_layout(text, char_width, char_height):
        _put_text(painter, x, y, char, body_font, _BLACK)

    buffer = io.BytesIO()
    canvas.save(buffer, "PNG")
    data = buffer.getvalue()
    if isinstance(out, (str, Path)):
        Path(out).write_bytes(data)
    else:
        out.write(data)
    return len(data)