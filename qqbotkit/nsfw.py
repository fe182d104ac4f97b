"""Verdicts on image classifier scores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

THRESHOLD = 0.3
HSO_IMAGE = "https://gchat.qpic.cn/gchatpic_new//--4234EDEC5F147A4C319A41149D7E0EA9/0"


@dataclass(frozen=True)
class Scores:
    """Probabilities given by the classifier for each class."""

    drawings: float = 0.0
    hentai: float = 0.0
    neutral: float = 0.0
    porn: float = 0.0
    sexy: float = 0.0


def _flags(scores: Scores) -> list:
    flags = []
    if scores.hentai > THRESHOLD:
        flags.append("hentai")
    if scores.porn > THRESHOLD:
        flags.append("porn")
    if scores.sexy > THRESHOLD:
        flags.append("hso")
    return flags


def judge(scores: Scores) -> str:
    """Verdict given when a picture is submitted for rating."""
    if scores.neutral > THRESHOLD:
        return "普通哦"
    if scores.drawings > THRESHOLD or scores.neutral < THRESHOLD:
        kind = "二次元"
    else:
        kind = "三次元"
    return " ".join([kind, *_flags(scores)])


def auto_judge(scores: Scores) -> Optional[str]:
    """Verdict for automatic review, or None when nothing is worth remarking on."""
    if scores.neutral > THRESHOLD:
        return None
    kind = "二次元" if scores.drawings > THRESHOLD else "三次元"
    flags = _flags(scores)
    if not flags:
        return None
    return " ".join([kind, *flags])