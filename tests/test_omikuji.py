import sqlite3

import pytest

from qqbotkit.omikuji import KujiStore, image_urls


def test_image_urls():
    front, back = image_urls(5)
    assert front == "https://gitcode.net/u011570312/senso-ji-omikuji/-/raw/main/5_0.jpg"
    assert back == "https://gitcode.net/u011570312/senso-ji-omikuji/-/raw/main/5_1.jpg"


@pytest.mark.parametrize("number", [0, 101, -3])
def test_image_urls_out_of_range(number):
    with pytest.raises(ValueError):
        image_urls(number)


def test_kuji_text(tmp_path):
    path = tmp_path / "kuji.db"
    store = KujiStore(path)
    conn = sqlite3.connect(str(path))
    conn.execute("INSERT INTO kuji (id, text) VALUES (3, '大吉')")
    conn.commit()
    conn.close()
    assert store.text(3) == "大吉"
    with pytest.raises(LookupError):
        store.text(4)
    store.close()