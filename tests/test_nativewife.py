from datetime import date

import pytest

from qqbotkit.nativewife import (
    WifeGallery,
    can_add,
    clean_name,
    daily_index,
    everyone_flag,
    group_folder_name,
)


def test_group_folder_name_base36():
    assert group_folder_name(35) == "z"
    for gid in (0, 1, 36, 123456789, -987654321):
        assert int(group_folder_name(gid), 36) == gid


def test_clean_name():
    assert clean_name("添加wife 小 明/", "添加wife") == "小明"
    assert clean_name("删除wife a\\b", "删除wife") == "ab"


def test_clean_name_empty():
    with pytest.raises(ValueError):
        clean_name("添加wife  ", "添加wife")


def test_daily_index_stable_and_in_range():
    today = date(2022, 5, 14)
    for count in (1, 2, 5, 17):
        idx = daily_index("alice", count, today)
        assert 0 <= idx < count
        assert daily_index("alice", count, today) == idx


def test_daily_index_bad_count():
    with pytest.raises(ValueError):
        daily_index("alice", 0, date(2022, 5, 14))


def test_permissions():
    assert can_add(everyone_flag(True), False)
    assert not can_add(everyone_flag(False), False)
    assert can_add(everyone_flag(False), True)
    assert not can_add(2, False)


def test_gallery_single_and_many(tmp_path):
    gallery = WifeGallery(tmp_path)
    path = gallery.add(42, "rem", b"img1")
    assert path.read_bytes() == b"img1"
    one = gallery.draw(42, "bob", date(2022, 5, 14))
    assert one.shared and one.name == "rem"
    assert one.message("bob") == "大家的wife都是rem\n"

    gallery.add(42, "emilia", b"img2")
    today = date(2022, 5, 14)
    drawn = gallery.draw(42, "bob", today)
    assert not drawn.shared
    assert drawn.name == sorted(["rem", "emilia"])[daily_index("bob", 2, today)]
    assert drawn.path.read_bytes() in (b"img1", b"img2")
    assert drawn.message("bob") == f"bob的wife是{drawn.name}\n"


def test_gallery_remove_and_empty(tmp_path):
    gallery = WifeGallery(tmp_path)
    with pytest.raises(LookupError):
        gallery.draw(7, "bob")
    gallery.add(7, "rem", b"x")
    gallery.remove(7, "rem")
    with pytest.raises(LookupError):
        gallery.draw(7, "bob")
    with pytest.raises(FileNotFoundError):
        gallery.remove(7, "rem")


def test_gallery_rejects_bad_names(tmp_path):
    gallery = WifeGallery(tmp_path)
    with pytest.raises(ValueError):
        gallery.add(7, "../evil", b"x")
    with pytest.raises(ValueError):
        gallery.add(7, "", b"x")