from qqbotkit.nsfw import Scores, auto_judge, judge


def test_neutral_is_ordinary():
    assert judge(Scores(neutral=0.9)) == "普通哦"
    assert auto_judge(Scores(neutral=0.9)) is None


def test_judge_low_neutral_is_drawing():
    assert judge(Scores(neutral=0.1)) == "二次元"


def test_judge_exact_threshold_is_real():
    assert judge(Scores(neutral=0.3)) == "三次元"


def test_judge_flags_in_order():
    words = judge(Scores(neutral=0.1, hentai=0.8, porn=0.5, sexy=0.4)).split()
    assert words[0] == "二次元"
    assert words[1:] == ["hentai", "porn", "hso"]


def test_auto_judge_without_flags_is_silent():
    assert auto_judge(Scores(neutral=0.1, drawings=0.9)) is None


def test_auto_judge_kind_depends_on_drawings():
    real = auto_judge(Scores(drawings=0.1, porn=0.9))
    drawn = auto_judge(Scores(drawings=0.9, porn=0.9))
    assert real.split() == ["三次元", "porn"]
    assert drawn.split() == ["二次元", "porn"]


def test_auto_judge_agrees_with_judge_when_flagged():
    scores = Scores(drawings=0.5, sexy=0.6)
    assert auto_judge(scores) == judge(scores)