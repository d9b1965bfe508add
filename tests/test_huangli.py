"""Almanac (黄历) day facts."""

import json
from datetime import date

import pytest

from ganzhi.config import Settings
from ganzhi.errors import OutOfRangeError, ValidationError
from ganzhi.huangli import (
    almanac_day,
    auspicious_gods,
    conflict,
    day_hours,
    day_star,
    fetal_god,
    god_note,
    hour_details,
    hour_fortune,
    inauspicious_gods,
    nayin,
    officer_advice,
    pengzu_taboo,
    twelve_officer,
)
from ganzhi.tables import branch_at, stem_at

NAYIN_CASES = [
    ("甲", "子", "海中金"),
    ("乙", "丑", "海中金"),
    ("丙", "寅", "炉中火"),
    ("甲", "午", "沙中金"),
    ("戊", "午", "天上火"),
    ("壬", "戌", "大海水"),
    ("癸", "亥", "大海水"),
]

# day branch -> (conflict label, sha label)
CONFLICT_CASES = [
    ("子", "冲马", "煞南"),
    ("午", "冲鼠", "煞北"),
    ("卯", "冲鸡", "煞西"),
    ("寅", "冲猴", "煞北"),
    ("巳", "冲猪", "煞东"),
]


class TestDayLookups:
    def test_day_star(self):
        assert day_star(date(2000, 1, 1)).name == "角"
        assert day_star(date(2000, 1, 29)).name == "角"
        assert day_star(date(1999, 12, 31)).name == "轸"
        assert day_star(date(2000, 1, 2)).fortune == "凶"

    @pytest.mark.parametrize("month, day, expected", [
        ("寅", "寅", "建"), ("寅", "卯", "除"), ("子", "午", "破"), ("寅", "丑", "闭"),
    ])
    def test_twelve_officer(self, month, day, expected):
        assert twelve_officer(month, day) == expected

    def test_officer_advice(self):
        advice = officer_advice("建")
        assert advice.suitable[0] == "出行"
        assert "嫁娶" in advice.avoid

    def test_unknown_officer(self):
        with pytest.raises(ValidationError):
            officer_advice("X")

    @pytest.mark.parametrize(
        "stem, branch, expected", NAYIN_CASES, ids=[s + b for s, b, _ in NAYIN_CASES],
    )
    def test_nayin(self, stem, branch, expected):
        assert nayin(stem, branch) == expected

    def test_nayin_covers_every_pair(self):
        names = {nayin(stem_at(k), branch_at(k)) for k in range(60)}
        assert len(names) == 30

    def test_nayin_rejects_mixed_pair(self):
        with pytest.raises(ValidationError):
            nayin("甲", "丑")

    def test_fetal_god(self):
        assert fetal_god("甲", "子") == "占门碓外东南"
        assert fetal_god("乙", "丑") == "碓磨厕外东南"
        assert fetal_god("戊", "午") == "房床碓外正西"
        assert fetal_god("癸", "亥") == "房床床外西北"

    @pytest.mark.parametrize(
        "branch, label, sha", CONFLICT_CASES, ids=[b for b, _, _ in CONFLICT_CASES],
    )
    def test_conflict(self, branch, label, sha):
        result = conflict(branch)
        assert result.conflict_label == label
        assert result.sha_label == sha

    def test_pengzu(self):
        taboo = pengzu_taboo("甲", "子")
        assert taboo.stem == "甲不开仓财物耗散"
        assert taboo.branch == "子不问卜自惹祸殃"


class TestDayGods:
    def test_auspicious_pick(self):
        assert auspicious_gods(date(2024, 1, 1)) == ["月德", "天德合", "月德合", "天赦"]

    def test_inauspicious_pick(self):
        assert inauspicious_gods(date(2024, 1, 1)) == ["五虚", "月煞", "白虎", "往亡"]

    def test_repeated_picks_collapse(self):
        assert auspicious_gods(date(2024, 2, 9)) == ["天德"]

    def test_depends_only_on_month_and_day(self):
        assert auspicious_gods(date(1950, 7, 7)) == auspicious_gods(date(2050, 7, 7))

    def test_counts(self):
        for day in (date(2024, m, d) for m in range(1, 13) for d in (1, 10, 20)):
            assert 1 <= len(auspicious_gods(day)) <= 5
            assert 1 <= len(inauspicious_gods(day)) <= 4

    def test_notes(self):
        assert god_note("天德") == "上天之德，百事皆宜"
        assert god_note("天马") == "吉祥之神，宜进行各种活动"
        assert god_note("九空") == "凶煞之神，需谨慎避让"


class TestHours:
    @pytest.mark.parametrize("hour, day, expected", [
        ("子", "子", "凶"), ("午", "子", "凶"), ("卯", "子", "吉"),
        ("辰", "子", "吉"), ("丑", "子", "平"), ("亥", "子", "平"),
    ])
    def test_hour_fortune(self, hour, day, expected):
        assert hour_fortune(hour, day) == expected

    def test_hour_details(self):
        details = hour_details("子")
        assert details.star == "金匮"
        assert details.conflict.conflict_label == "冲马"

    def test_day_hours(self):
        slots = day_hours(date(2000, 1, 1))  # 戊午 day
        assert len(slots) == 12
        assert slots[0].stem + slots[0].branch == "壬子"
        assert slots[0].hour_range == "23:00-01:00"
        assert slots[6].fortune == "凶"
        assert slots[2].fortune == "吉"


@pytest.fixture(scope="module")
def day():
    return almanac_day(date(2000, 1, 1), settings=Settings())


class TestAlmanacDay:
    def test_pillars(self, day):
        assert (day.year_ganzhi, day.month_ganzhi, day.day_ganzhi) == ("己卯", "丁丑", "戊午")

    def test_lunar(self, day):
        assert (day.lunar.year, day.lunar.month, day.lunar.is_leap) == (1999, 11, False)

    def test_facts(self, day):
        assert day.officer == "执"
        assert day.nayin == "天上火"
        assert day.conflict.conflict_label == "冲鼠"
        assert day.conflict.sha_label == "煞北"
        assert day.day_star.name == "角"
        assert day.pengzu.stem == "戊不受田田主不祥"
        assert day.solar_term is None
        assert len(day.hours) == 12

    def test_officer_before_xiao_han(self, day):
        # month branch 丑 while the lunar month is still 冬月
        assert day.month_ganzhi[1] == "丑"
        assert day.lunar.month_cn == "冬月"
        assert day.officer == twelve_officer("丑", "午")

    def test_to_dict(self, day):
        data = json.loads(json.dumps(day.to_dict(), ensure_ascii=False))
        assert data["pillars"]["day"] == "戊午"
        assert data["conflict"] == "冲鼠"
        assert data["auspicious_gods"][0]["note"]

    def test_solar_term_marker(self):
        day = almanac_day(date(2000, 1, 6), settings=Settings())
        assert day.solar_term.name == "小寒"
        assert day.month_ganzhi == "丁丑"

    def test_before_lunar_table(self):
        with pytest.raises(OutOfRangeError):
            almanac_day(date(1900, 1, 1), settings=Settings())

    def test_after_range(self):
        with pytest.raises(OutOfRangeError):
            almanac_day(date(2100, 1, 1), settings=Settings())
