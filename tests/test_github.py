import json
from unittest.mock import patch

import pytest

from qqbotkit.github import (
    API,
    PREVIEW,
    FetchError,
    format_repo,
    net_get,
    notnull,
    preview_image_url,
    search,
    search_url,
)


class _Response:
    def __init__(self, status_code, content):
        self.status_code = status_code
        self.content = content


REPO = {
    "full_name": "someone/project",
    "description": "a project",
    "watchers": 12,
    "forks": 3,
    "open_issues": 4,
    "language": None,
    "license": {"key": "mit"},
    "pushed_at": "2022-01-01T00:00:00Z",
    "html_url": "https://example.com/someone/project",
}


def test_notnull():
    assert notnull("", "None") == "None"
    assert notnull("Go", "None") == "Go"


def test_search_url_encodes_query():
    url = search_url("hello world")
    assert url.startswith(API + "?")
    assert url.endswith("q=hello+world")


def test_preview_image_url():
    assert preview_image_url("a/b") == PREVIEW + "a/b"


def test_format_repo():
    lines = format_repo(REPO).splitlines()
    assert lines[0] == "someone/project"
    assert lines[1] == "Description: a project"
    assert lines[2] == "Star/Fork/Issue: 12/3/4"
    assert lines[3] == "Language: None"
    assert lines[4] == "License: MIT"
    assert lines[6] == "Jump: " + REPO["html_url"]


def test_format_repo_missing_licence():
    text = format_repo({"full_name": "x/y", "license": None})
    assert "License: None\n" in text
    assert "Star/Fork/Issue: 0/0/0\n" in text


def test_net_get_rejects_non_200():
    with patch("qqbotkit.github.requests.get", return_value=_Response(404, b"")):
        with pytest.raises(FetchError, match="code 404"):
            net_get("https://example.com/")


def test_net_get_returns_body():
    with patch("qqbotkit.github.requests.get", return_value=_Response(200, b"abc")) as get:
        assert net_get("https://example.com/", {"User-Agent": "x"}) == b"abc"
    assert get.call_args.kwargs["headers"] == {"User-Agent": "x"}


def test_search_returns_first_item():
    body = json.dumps({"total_count": 2, "items": [REPO, {"full_name": "other/one"}]}).encode()
    with patch("qqbotkit.github.requests.get", return_value=_Response(200, body)) as get:
        assert search("project") == REPO
    assert get.call_args.args[0] == search_url("project")


def test_search_nothing_found():
    body = json.dumps({"total_count": 0, "items": []}).encode()
    with patch("qqbotkit.github.requests.get", return_value=_Response(200, body)):
        with pytest.raises(LookupError):
            search("nothing")