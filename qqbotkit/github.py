"""Searching GitHub repositories and describing the best match."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

import requests

API = "https://api.github.com/search/repositories"
PREVIEW = "https://opengraph.githubassets.com/0/"
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/88.0.4324.182 Safari/537.36"
    )
}


class FetchError(OSError):
    """Raised when a request does not answer with status 200."""


def notnull(text: str, default: str) -> str:
    """``text``, or ``default`` when it is empty."""
    return text if text else default


def net_get(url: str, headers: Optional[Mapping[str, str]] = None) -> bytes:
    """GET ``url`` and return the body; raises FetchError unless the status is 200."""
    response = requests.get(url, headers=dict(headers or {}), timeout=30)
    body = response.content
    if response.status_code != 200:
        raise FetchError(f"code {response.status_code}")
    return body


def search_url(query: str) -> str:
    return API + "?" + urlencode({"q": query})


def preview_image_url(full_name: str) -> str:
    """The social preview picture of a repository."""
    return PREVIEW + full_name


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def format_repo(repo: Mapping[str, Any]) -> str:
    """Text summary of a repository as returned by the search API."""
    licence = repo.get("license")
    licence_key = _str(licence.get("key")) if isinstance(licence, Mapping) else ""
    return (
        f"{_str(repo.get('full_name'))}\n"
        f"Description: {_str(repo.get('description'))}\n"
        f"Star/Fork/Issue: {_int(repo.get('watchers'))}/{_int(repo.get('forks'))}"
        f"/{_int(repo.get('open_issues'))}\n"
        f"Language: {notnull(_str(repo.get('language')), 'None')}\n"
        f"License: {notnull(licence_key.upper(), 'None')}\n"
        f"Last pushed: {_str(repo.get('pushed_at'))}\n"
        f"Jump: {_str(repo.get('html_url'))}\n"
    )


def search(query: str) -> Mapping[str, Any]:
    """The best matching repository; raises LookupError when there is none."""
    info = json.loads(net_get(search_url(query), HEADERS))
    items = info.get("items") if isinstance(info, dict) else None
    if not isinstance(info, dict) or _int(info.get("total_count")) == 0 or not items:
        raise LookupError("没有找到这样的仓库")
    return items[0]