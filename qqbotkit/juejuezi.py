"""Generating over-the-top praise from a verb and a noun."""

from __future__ import annotations

import json
from typing import Any

import requests

API = "https://www.offjuan.com/api/juejuezi/text"
REFERER = "https://juejuezi.offjuan.com/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36"
)
KEYWORD = "绝绝子"


def strip_keyword(text: str) -> str:
    """The request text without the keyword; raises ValueError if under two characters remain."""
    rest = text.replace(KEYWORD, "")
    if len(rest) < 2:
        raise ValueError("不要只输入绝绝子")
    return rest


def build_payload(verb: str, noun: str) -> str:
    """Request body in the exact form the service expects."""
    return '{"verb":"%s","noun":"%s"}' % (verb, noun)


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def generate(verb: str, noun: str) -> str:
    """Ask the service for a sentence built from ``verb`` and ``noun``."""
    response = requests.post(
        API,
        data=build_payload(verb, noun).encode("utf-8"),
        headers={"Referer": REFERER, "User-Agent": USER_AGENT},
        timeout=30,
    )
    try:
        data = json.loads(response.content)
    except ValueError:
        return ""
    return _to_str(data.get("text")) if isinstance(data, dict) else ""