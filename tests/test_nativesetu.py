import pytest
from PIL import Image

from qqbotkit.nativesetu import SUMMARY_TITLE, SetuLibrary, difference_hash


def gradient():
    img = Image.new("L", (90, 80))
    img.putdata([x * 2 for _ in range(80) for x in range(90)])
    return img


def reverse_gradient():
    img = Image.new("L", (90, 80))
    img.putdata([255 - x * 2 for _ in range(80) for x in range(90)])
    return img


def step():
    img = Image.new("L", (90, 80), 0)
    img.paste(255, (45, 0, 90, 80))
    return img


@pytest.fixture
def root(tmp_path):
    base = tmp_path / "pics"
    (base / "cats").mkdir(parents=True)
    (base / "dogs").mkdir()
    gradient().save(base / "cats" / "a.png")
    Image.new("RGB", (40, 40), (120, 120, 120)).save(base / "cats" / "B.PNG", "PNG")
    (base / "cats" / "notes.txt").write_text("not a picture")
    step().save(base / "dogs" / "c.png")
    return base


@pytest.fixture
def library(tmp_path):
    lib = SetuLibrary(tmp_path / "data.db")
    yield lib
    lib.close()


def test_difference_hash_extremes():
    assert difference_hash(gradient()) == -1
    assert difference_hash(reverse_gradient()) == 0
    assert difference_hash(Image.new("RGB", (30, 30), (5, 5, 5))) == 0


def test_difference_hash_step_in_range():
    h = difference_hash(step())
    assert -(1 << 63) <= h < (1 << 63)
    assert h not in (0, -1)
    assert difference_hash(step()) == h


def test_classes_empty_without_index(library):
    assert library.classes() == []
    assert not library.db_path.exists()


def test_scan_all(root, library):
    library.scan_all(root)
    assert library.classes() == ["cats", "dogs"]
    assert library.count("cats") == 2
    assert library.count("dogs") == 1
    entry = library.pick("dogs")
    assert entry.name == "c.png"
    assert entry.path == "dogs/c.png"
    assert entry.img_id == difference_hash(step())
    assert library.pick("cats").path in {"cats/a.png", "cats/B.PNG"}


def test_summary(root, library):
    library.scan_all(root)
    assert library.summary() == SUMMARY_TITLE + "\n00. cats(2)\n01. dogs(1)"


def test_scan_class_refresh(root, library):
    library.scan_all(root)
    step().save(root / "cats" / "d.png")
    stored = library.scan_class(root, "cats", "cats")
    assert stored == library.count("cats")
    assert library.count("cats") == 3


def test_pick_unknown_class(root, library):
    library.scan_all(root)
    with pytest.raises(LookupError):
        library.pick("birds")
    with pytest.raises(LookupError):
        library.count("birds")


def test_scan_all_missing_root(tmp_path, library):
    with pytest.raises(NotADirectoryError):
        library.scan_all(tmp_path / "missing")