import csv

import pytest

from qqbotkit.hyaku import BED, Poem, image_urls, load_poems, pick_poem


def _row(i):
    return [str(i), f"poet{i}", f"u{i}", f"l{i}", f"uk{i}", f"lk{i}"]


def _write(path, rows):
    with open(path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["番号", "歌人", "上の句", "下の句", "上の句ひらがな", "下の句ひらがな"])
        writer.writerows(rows)
    return path


@pytest.fixture
def poems(tmp_path):
    return load_poems(_write(tmp_path / "hyaku.csv", [_row(i) for i in range(1, 101)]))


def test_load_poems(poems):
    assert len(poems) == 100
    assert poems[0].number == "1"
    assert poems[99].poet == "poet100"
    assert [p.number for p in poems] == [str(i) for i in range(1, 101)]


def test_str_lists_fields(poems):
    lines = str(poems[0]).splitlines()
    assert lines == ["●番号：1", "◉歌人：poet1", "○上の句：u1", "○下の句：l1",
                     "◎上の句ひらがな：uk1", "◎下の句ひらがな：lk1"]


def test_wrong_count(tmp_path):
    path = _write(tmp_path / "a.csv", [_row(i) for i in range(1, 100)])
    with pytest.raises(ValueError):
        load_poems(path)


def test_wrong_order(tmp_path):
    rows = [_row(i) for i in range(1, 101)]
    rows[3], rows[4] = rows[4], rows[3]
    with pytest.raises(ValueError):
        load_poems(_write(tmp_path / "b.csv", rows))


def test_wrong_columns(tmp_path):
    rows = [_row(i) for i in range(1, 101)]
    rows[10] = rows[10][:5]
    with pytest.raises(ValueError):
        load_poems(_write(tmp_path / "c.csv", rows))


def test_non_number(tmp_path):
    rows = [_row(i) for i in range(1, 101)]
    rows[0][0] = "one"
    with pytest.raises(ValueError):
        load_poems(_write(tmp_path / "d.csv", rows))


def test_image_urls():
    jpg, png = image_urls(7)
    assert jpg.startswith(BED) and png.startswith(BED)
    assert jpg.endswith("img/007.jpg")
    assert png.endswith("img/007.png")


def test_pick_by_number(poems):
    assert pick_poem(poems, 42).number == "42"
    assert pick_poem(poems, 100) is poems[99]


@pytest.mark.parametrize("number", [0, 101, -3])
def test_pick_out_of_range(poems, number):
    with pytest.raises(ValueError):
        pick_poem(poems, number)


def test_pick_random(poems):
    assert pick_poem(poems) in poems


def test_poem_str_round_trip_fields():
    poem = Poem("9", "a", "b", "c", "d", "e")
    values = [line.split("：", 1)[1] for line in str(poem).splitlines()]
    assert values == ["9", "a", "b", "c", "d", "e"]