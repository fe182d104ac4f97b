"""Ten-pull gacha: card pack loading, rolling results and composing the result picture."""

from __future__ import annotations

import logging
import random
import re
import threading
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from PIL import Image

log = logging.getLogger(__name__)

FIVE_STAR_BIT = 0x1
ARCHIVE_PREFIX_LEN = 8
CANVAS_SIZE = (1920, 1080)
BACKGROUND_COLOR = (50, 50, 50, 255)
FIRST_SLOT_X = 230
SLOT_STEP = 146
SHARE_ICON_AT = (1270, 945)
CHARACTERS = 1
WEAPONS = 2

_NAME = re.compile(r"_(.*)\.png")


def is_five_star_mode(data: int) -> bool:
    """Whether the stored plugin data selects the five-star pool."""
    return data & FIVE_STAR_BIT == FIVE_STAR_BIT


def set_mode(data: int, five_star: bool) -> int:
    """Plugin data with the pool switch set; other bits are kept."""
    return data | FIVE_STAR_BIT if five_star else data & ~FIVE_STAR_BIT


@dataclass(frozen=True)
class Card:
    """One picture in the pack: its name inside the pack and its archive member."""

    name: str
    member: str


@dataclass
class CardPack:
    """Pictures of a gacha pack, grouped by folder."""

    path: Path
    tree: Dict[str, List[Card]]
    star3: Optional[Card] = None
    star4: Optional[Card] = None
    star5: Optional[Card] = None

    @classmethod
    def from_zip(cls, path: Union[str, Path]) -> "CardPack":
        """Index a pack archive whose members share an 8-character top folder."""
        tree: Dict[str, List[Card]] = {}
        stars: Dict[str, Card] = {}
        with zipfile.ZipFile(path) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                if len(info.filename) < ARCHIVE_PREFIX_LEN:
                    raise ValueError(f"unexpected member name: {info.filename!r}")
                name = info.filename[ARCHIVE_PREFIX_LEN:]
                card = Card(name, info.filename)
                folder, sep, base = name.rpartition("/")
                if not sep:
                    tree[name] = [card]
                    log.debug("[genshin]insert file %s", name)
                    continue
                if not folder:
                    continue
                tree.setdefault(folder, []).append(card)
                log.debug("[genshin]insert file into %s", folder)
                if folder == "gacha":
                    stars[base] = card
        return cls(
            Path(path),
            tree,
            stars.get("ThreeStar.png"),
            stars.get("FourStar.png"),
            stars.get("FiveStar.png"),
        )

    def _first(self, key: str) -> Card:
        cards = self.tree.get(key)
        if not cards:
            raise KeyError(f"{key!r} missing from card pack")
        return cards[0]

    def _pick(self, category: str, rng: random.Random) -> Card:
        cards = self.tree.get(category)
        if not cards:
            raise KeyError(f"category {category!r} missing from card pack")
        return cards[rng.randrange(len(cards))]

    def _stars(self) -> Tuple[Card, Card, Card]:
        if self.star3 is None or self.star4 is None or self.star5 is None:
            raise KeyError("star icons missing from card pack")
        return self.star3, self.star4, self.star5

    def icon_for(self, name: str) -> Card:
        """The element icon of a card named like ``folder/Element_Name.png``."""
        base = name.rpartition("/")[2]
        element, sep, _ = base.partition("_")
        if not sep:
            raise ValueError(f"card name has no element: {name!r}")
        return self._first(element + ".png")

    @staticmethod
    def _image(archive: zipfile.ZipFile, card: Card) -> Image.Image:
        with archive.open(card.member) as handle:
            image = Image.open(handle)
            image.load()
        return image.convert("RGBA")


@dataclass(frozen=True)
class Slot:
    """One drawn card with the pictures layered for it."""

    hero: Card
    background: Card
    star: Card
    icon: Card


@dataclass(frozen=True)
class PullResult:
    """Outcome of a pull: ordered slots, five-star names and the updated pull count."""

    slots: Tuple[Slot, ...]
    text: str
    five_star: bool
    total: int

    @property
    def reply(self) -> str:
        if self.five_star:
            return "恭喜你抽到了: \n" + self.text
        return "十连成功~"


def reply_text(names: Sequence[str], kind: int, prefix: str) -> str:
    """Header and names of five-star cards; ``kind`` 1 is characters, otherwise weapons."""
    if kind == CHARACTERS:
        parts = ["★五星角色★\n"]
    elif kind == WEAPONS and prefix:
        parts = ["\n★五星武器★\n"]
    else:
        parts = ["★五星武器★\n"]
    for name in names:
        match = _NAME.search(name)
        if match is None:
            raise ValueError(f"card name has no display name: {name!r}")
        parts.append(match.group(1) + " * ")
    return "".join(parts)


def roll(
    nums: int,
    five_star_mode: bool,
    total: int,
    pack: CardPack,
    rng: Optional[random.Random] = None,
) -> PullResult:
    """Draw ``nums`` cards.

    Every ninth pull (counted by ``total``) starts with a guaranteed five-star card.
    The normal pool gives 3★ 80%, 4★ 17%, 5★ 3% and at least one 4★.
    """
    rng = rng or random.Random()
    five_bg = pack._first("five_bg.jpg")
    four_bg = pack._first("four_bg.jpg")
    three_bg = pack._first("three_bg.jpg")
    star3, star4, star5 = pack._stars()

    fives: List[Card] = []
    fours: List[Card] = []
    five_arms: List[Card] = []
    four_arms: List[Card] = []
    three_arms: List[Card] = []

    def five_pull() -> None:
        if rng.randrange(2) == 0:
            fives.append(pack._pick("five", rng))
        else:
            five_arms.append(pack._pick("five2", rng))

    def four_pull() -> None:
        if rng.randrange(2) == 0:
            fours.append(pack._pick("four", rng))
        else:
            four_arms.append(pack._pick("four2", rng))

    if total % 9 == 0:
        five_pull()
        nums -= 1

    if five_star_mode:
        for _ in range(nums):
            five_pull()
    else:
        for _ in range(nums):
            a = rng.randrange(1000)
            if a <= 800:
                three_arms.append(pack._pick("Three", rng))
            elif a <= 885:
                fours.append(pack._pick("four", rng))
            elif a <= 970:
                four_arms.append(pack._pick("four2", rng))
            elif a <= 985:
                fives.append(pack._pick("five", rng))
            else:
                five_arms.append(pack._pick("five2", rng))
        if not fours and not four_arms and three_arms:
            three_arms.pop()
            four_pull()
        total += 1

    slots: List[Slot] = []

    def add(cards: List[Card], star: Card, background: Card) -> None:
        slots.extend(Slot(c, background, star, pack.icon_for(c.name)) for c in cards)

    text = ""
    five_star = False
    if fives:
        add(fives, star5, five_bg)
        text += reply_text([c.name for c in fives], CHARACTERS, text)
        five_star = True
    if fours:
        add(fours, star4, four_bg)
    if five_arms:
        add(five_arms, star5, five_bg)
        text += reply_text([c.name for c in five_arms], WEAPONS, text)
        five_star = True
    if four_arms:
        add(four_arms, star4, four_bg)
    if three_arms:
        add(three_arms, star3, three_bg)
    return PullResult(tuple(slots), text, five_star, total)


def _over(canvas: Image.Image, image: Image.Image, at: Tuple[int, int]) -> None:
    x, y = at
    width = min(image.width, canvas.width - x)
    height = min(image.height, canvas.height - y)
    if width <= 0 or height <= 0:
        return
    canvas.alpha_composite(image.crop((0, 0, width, height)), dest=(x, y))


def render(result: PullResult, pack: CardPack) -> Image.Image:
    """Compose the result picture of a pull."""
    canvas = Image.new("RGBA", CANVAS_SIZE, BACKGROUND_COLOR)
    with zipfile.ZipFile(pack.path) as archive:
        _over(canvas, pack._image(archive, pack._first("bg0.jpg")), (0, 0))
        for i, slot in enumerate(result.slots):
            at = (FIRST_SLOT_X + SLOT_STEP * i, 0)
            for card in (slot.background, slot.hero, slot.star, slot.icon):
                _over(canvas, pack._image(archive, card), at)
        _over(canvas, pack._image(archive, pack._first("Reply.png")), SHARE_ICON_AT)
    return canvas


class Gacha:
    """Ten-pulls sharing one pull counter."""

    def __init__(self, pack: CardPack, rng: Optional[random.Random] = None) -> None:
        self.pack = pack
        self.total = 0
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    def pull_ten(self, five_star_mode: bool) -> Tuple[PullResult, Image.Image]:
        """Draw ten cards and compose their picture."""
        with self._lock:
            result = roll(10, five_star_mode, self.total, self.pack, self._rng)
            self.total = result.total
        return result, render(result, self.pack)