import random

import pytest

from qqbotkit.manager import (
    ManagerStore,
    check_new_user,
    gist_url,
    parse_ban_minutes,
    parse_join_answer,
    pick_lucky_member,
    render_welcome,
    toggle_gist_approval,
    toggle_verification,
    unescape_brackets,
)


@pytest.fixture
def store(tmp_path):
    s = ManagerStore(tmp_path / "config.db")
    yield s
    s.close()


def test_ban_minutes_plain_and_unknown_unit():
    assert parse_ban_minutes("7", "分钟") == 7
    assert parse_ban_minutes("7", "whatever") == 7


def test_ban_minutes_hours_relation():
    assert parse_ban_minutes("5", "小时") == 60 * parse_ban_minutes("5", "分钟")
    assert parse_ban_minutes("2", "天") == 24 * parse_ban_minutes("2", "小时")


def test_ban_minutes_capped():
    assert parse_ban_minutes("100", "天") == 43199


def test_english_units_only_when_extended():
    assert parse_ban_minutes("2", "h", False) == 2
    assert parse_ban_minutes("2", "h", True) == parse_ban_minutes("2", "小时")
    assert parse_ban_minutes("3", "days", True) == parse_ban_minutes("3", "天")


def test_unescape_brackets():
    assert unescape_brackets("&#91;CQ:face,id=1&#93;") == "[CQ:face,id=1]"


def test_render_welcome_fills_placeholders():
    text = render_welcome("{at} {nickname} {uid} {gid} {groupname}", 123, "bob", 456, "club")
    assert text == "[CQ:at,qq=123] bob 123 456 club"


def test_render_welcome_avatar():
    text = render_welcome("{avatar}", 42, "n", 1, "g")
    assert "{" not in text
    assert "nk=42" in text


def test_toggle_verification():
    on = toggle_verification(0, "开启")
    assert on & 1 == 1
    off = toggle_verification(on, "禁用")
    assert off & 1 == 0
    with pytest.raises(ValueError):
        toggle_verification(0, "maybe")


def test_toggle_gist_approval_enable():
    assert toggle_gist_approval(0, "打开") & 0x10 == 0x10
    with pytest.raises(ValueError):
        toggle_gist_approval(0, "")


def test_parse_join_answer():
    assert parse_join_answer("问题：x\n答案：alice/abc123") == ("alice", "abc123")
    with pytest.raises(ValueError):
        parse_join_answer("答案：/abc")
    with pytest.raises(ValueError):
        parse_join_answer("答案：noslash")


def test_pick_lucky_member_among_recent():
    members = [{"user_id": i, "last_sent_time": i} for i in range(12)]
    rng = random.Random(0)
    for _ in range(50):
        who = pick_lucky_member(members, rng)
        assert who["last_sent_time"] >= 2


def test_pick_lucky_member_empty():
    with pytest.raises(ValueError):
        pick_lucky_member([], random.Random(1))


def test_gist_url_shape():
    url = gist_url("alice", "abc", 1234)
    prefix = "https://gist.githubusercontent.com/alice/abc/raw/"
    assert url.startswith(prefix)
    name = url[len(prefix):]
    assert len(name) == 32
    assert int(name, 16) >= 0
    assert gist_url("alice", "abc", 1235) != url


def test_store_message_round_trip(store):
    assert store.find_message("welcome", 1) is None
    store.set_message("welcome", 1, "hi")
    store.set_message("welcome", 1, "hello")
    assert store.find_message("welcome", 1) == "hello"
    assert store.find_message("farewell", 1) is None
    with pytest.raises(ValueError):
        store.set_message("member", 1, "x")


def test_check_new_user_success_then_duplicate(store):
    now = 1_700_000_000
    ok, reason = check_new_user(store, 10, 99, "alice", "h", lambda url: str(now), now)
    assert (ok, reason) == (True, "")
    assert store.has_member("alice")
    ok, reason = check_new_user(store, 11, 99, "alice", "h", lambda url: str(now), now)
    assert (ok, reason) == (False, "该github用户已入群")


def test_check_new_user_stale(store):
    now = 1_700_000_000
    ok, reason = check_new_user(store, 10, 99, "bob", "h", lambda url: str(now - 601), now)
    assert (ok, reason) == (False, "时间戳超时")
    assert not store.has_member("bob")


def test_check_new_user_bad_data(store):
    ok, reason = check_new_user(store, 10, 99, "carl", "h", lambda url: b"nope", 0)
    assert not ok
    assert reason.startswith("时间戳格式错误")


def test_check_new_user_fetch_error(store):
    def fail(url):
        raise OSError("boom")

    ok, reason = check_new_user(store, 10, 99, "dave", "h", fail, 0)
    assert (ok, reason) == (False, "无法连接到gist: boom")


def test_check_new_user_fetches_gist_url(store):
    seen = []

    def fetch(url):
        seen.append(url)
        return "100"

    check_new_user(store, 1, 7, "erin", "hh", fetch, 100)
    assert seen == [gist_url("erin", "hh", 7)]