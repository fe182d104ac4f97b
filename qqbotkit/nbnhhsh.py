"""Guessing what a pinyin-initial abbreviation stands for."""

from __future__ import annotations

import json
from typing import Any, List, Union

import requests

API = "https://lab.magiconch.com/api/nbnhhsh/guess"


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def extract_guesses(payload: Union[bytes, str]) -> List[str]:
    """Meanings in an API answer: the translations, or else the input suggestions."""
    try:
        data = json.loads(payload)
    except ValueError:
        return []
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return []
    first = data[0]
    values = first.get("trans") if "trans" in first else first.get("inputting")
    if not isinstance(values, list):
        return []
    return [_to_str(v) for v in values]


def guess(text: str) -> List[str]:
    """Ask the guessing service about ``text``."""
    response = requests.post(API, data={"text": text}, timeout=30)
    return extract_guesses(response.content)