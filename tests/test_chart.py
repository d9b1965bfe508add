"""Four Pillars chart engine."""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from ganzhi.chart import (
    Gender,
    Location,
    Verdict,
    compute_luck_cycles,
    day_offset,
    day_pillar,
    determine_strength,
    four_pillars,
    generate_chart,
    hour_pillar,
    parse_birth,
    parse_gender,
)
from ganzhi.config import Settings
from ganzhi.errors import OutOfRangeError, UnknownCityError, ValidationError
from ganzhi.tables import Element, TenGod, parse_branch, parse_stem, sexagenary_index

DAY_CASES = [
    {"date": date(1987, 1, 7), "expected": "丙辰"},
    {"date": date(1984, 3, 8), "expected": "辛丑"},
    {"date": date(2008, 9, 8), "expected": "辛亥"},
    {"date": date(2000, 1, 1), "expected": "戊午"},
    {"date": date(1990, 6, 15), "expected": "辛亥"},
    {"date": date(1900, 1, 1), "expected": "甲戌"},
]

SAMPLE_INSTANTS = [
    datetime(1900, 2, 10, 0, 30),
    datetime(1949, 10, 1, 15, 0),
    datetime(1976, 7, 28, 3, 42),
    datetime(2000, 1, 1, 0, 0),
    datetime(2024, 2, 4, 16, 30),
    datetime(2099, 12, 31, 23, 59),
]


class TestDayPillar:
    @pytest.mark.parametrize("case", DAY_CASES, ids=[str(c["date"]) for c in DAY_CASES])
    def test_day_pillar(self, case):
        stem, branch = day_pillar(case["date"])
        assert stem.chinese + branch.chinese == case["expected"]

    def test_epoch_offsets(self):
        assert day_offset(date(1900, 1, 1)) == 10
        assert day_offset(date(2000, 1, 1)) == 54

    def test_sixty_day_period(self):
        for start in (date(1900, 1, 1), date(1955, 5, 5), date(2099, 10, 1)):
            assert day_offset(start) == day_offset(start + timedelta(days=60))
            assert day_offset(start + timedelta(days=1)) == (day_offset(start) + 1) % 60

    def test_no_day_roll_at_23(self):
        late = datetime(2000, 1, 1, 23, 30)
        assert day_pillar(late) == day_pillar(date(2000, 1, 1))


class TestHourPillar:
    def test_five_rats(self):
        # 戊 day: 子 hour is 壬子
        stem, branch = hour_pillar(parse_stem("戊").index, 0.5)
        assert stem.chinese + branch.chinese == "壬子"
        stem, branch = hour_pillar(parse_stem("甲").index, 12.0)
        assert stem.chinese + branch.chinese == "庚午"

    def test_late_zi_hour(self):
        stem, branch = hour_pillar(parse_stem("甲").index, 23.5)
        assert stem.chinese + branch.chinese == "甲子"


class TestFourPillars:
    @pytest.mark.parametrize("instant", SAMPLE_INSTANTS, ids=[i.isoformat() for i in SAMPLE_INSTANTS])
    def test_every_pillar_is_a_valid_pair(self, instant, settings):
        for stem, branch in four_pillars(instant, settings).values():
            sexagenary_index(stem, branch)

    def test_before_li_chun(self, settings):
        pillars = four_pillars(datetime(1900, 1, 20, 12), settings)
        year = pillars["year"][0].chinese + pillars["year"][1].chinese
        month = pillars["month"][0].chinese + pillars["month"][1].chinese
        assert year == "己亥"
        assert month == "丁丑"

    def test_first_days_of_january(self, settings):
        pillars = four_pillars(datetime(2000, 1, 1, 12), settings)
        assert pillars["year"][0].chinese + pillars["year"][1].chinese == "己卯"
        assert pillars["month"][0].chinese + pillars["month"][1].chinese == "丁丑"


class TestGenerateChart:
    def test_pillars(self, beijing_chart):
        assert [p.ganzhi for p in beijing_chart.pillars] == ["庚午", "壬午", "辛亥", "甲午"]
        assert beijing_chart.day_master.chinese == "辛"

    def test_solar_time_applied(self, beijing_chart):
        assert beijing_chart.corrected.hour == 11
        assert beijing_chart.corrected.minute == 45
        assert beijing_chart.solar_time.city == "北京"

    def test_ten_gods(self, beijing_chart):
        year, month, day, hour = beijing_chart.pillars
        assert year.ten_god is TenGod.JIE_CAI
        assert month.ten_god is TenGod.SHANG_GUAN
        assert day.ten_god is TenGod.BI_JIAN
        assert hour.ten_god is TenGod.ZHENG_CAI
        assert year.hidden_gods == (TenGod.QI_SHA, TenGod.PIAN_YIN)

    def test_life_stages(self, beijing_chart):
        assert beijing_chart.year_pillar.life_stage == "病"
        assert beijing_chart.day_pillar.life_stage == "沐浴"

    def test_elements_and_strength(self, beijing_chart):
        counts = beijing_chart.element_counts
        assert counts == {
            Element.WOOD: 1, Element.FIRE: 3, Element.EARTH: 0,
            Element.METAL: 2, Element.WATER: 2,
        }
        assert sum(counts.values()) == 8
        strength = beijing_chart.strength
        assert strength.verdict is Verdict.WEAK
        assert strength.score == 20
        assert strength.favorable == (Element.METAL, Element.EARTH)
        assert strength.unfavorable == (Element.WOOD, Element.FIRE)

    def test_luck_cycles(self, beijing_chart):
        cycles = beijing_chart.luck_cycles
        assert [c.stem.chinese + c.branch.chinese for c in cycles] == [
            "癸未", "甲申", "乙酉", "丙戌", "丁亥", "戊子", "己丑", "庚寅",
        ]
        assert [c.start_age for c in cycles] == [10, 20, 30, 40, 50, 60, 70, 80]
        assert cycles[0].end_age == 19
        assert cycles[0].ten_god is TenGod.SHI_SHEN

    def test_female_runs_backward(self, settings):
        chart = generate_chart("李四", "female", datetime(1990, 6, 15, 12), "北京", settings=settings)
        assert [c.stem.chinese + c.branch.chinese for c in chart.luck_cycles][:3] == [
            "辛巳", "庚辰", "己卯",
        ]

    def test_warnings(self, beijing_chart):
        assert [w.kind for w in beijing_chart.warnings] == ["solar_time"]

    def test_boundary_warnings(self, settings):
        chart = generate_chart(
            "王五", "male", datetime(1990, 6, 21, 12, 55), "乌鲁木齐", settings=settings,
        )
        kinds = [w.kind for w in chart.warnings]
        assert kinds == ["solar_time", "solar_term_boundary", "hour_boundary"]
        assert chart.hour_pillar.branch.chinese == "巳"

    def test_deities(self, beijing_chart):
        assert [d.type for d in beijing_chart.deities] == (
            ["天乙贵人"] * 3 + ["将星"] * 3 + ["劫煞", "天德贵人", "太极贵人"]
        )
        assert [d.position for d in beijing_chart.deities[:3]] == ["年", "月", "时"]

    def test_deterministic(self, beijing_chart, settings):
        again = generate_chart("张三", "male", datetime(1990, 6, 15, 12, 0), "北京", settings=settings)
        assert again.id != beijing_chart.id
        first, second = beijing_chart.to_dict(), again.to_dict()
        for key in ("id", "created_at"):
            first.pop(key)
            second.pop(key)
        assert first == second

    def test_to_dict_is_json(self, beijing_chart):
        data = json.loads(json.dumps(beijing_chart.to_dict(), ensure_ascii=False))
        assert data["pillars"]["day"]["ganzhi"] == "辛亥"
        assert data["strength"]["verdict"] == "身弱"
        assert data["ten_gods"][2]["is_day_master"] is True
        assert data["element_counts"]["fire"] == 3

    def test_no_location(self, settings):
        chart = generate_chart("赵六", "male", datetime(1990, 6, 15, 12, 0), settings=settings)
        assert chart.solar_time is None
        assert chart.corrected == chart.birth
        assert chart.hour_pillar.ganzhi == "甲午"

    def test_explicit_longitude_wins_over_city(self, settings):
        chart = generate_chart(
            "赵六", "male", datetime(1990, 6, 15, 12, 0),
            Location(city="北京", longitude=120.0), settings=settings,
        )
        assert chart.solar_time.longitude_minutes == 0.0

    def test_detected_meridian(self):
        chart = generate_chart(
            "Taro", "male", datetime(1990, 6, 15, 12, 0),
            Location(longitude=139.6503, latitude=35.6762),
            settings=Settings(detect_timezone=True),
        )
        assert chart.solar_time.standard_meridian == 135.0

    @pytest.mark.parametrize("birth", [
        datetime(1990, 6, 15, 13, 0, tzinfo=timezone(timedelta(hours=9))),
        "1990-06-15T13:00:00+09:00",
    ], ids=["datetime", "iso"])
    def test_aware_birth_read_on_local_clock(self, birth):
        chart = generate_chart(
            "Taro", "male", birth,
            Location(longitude=139.6503, latitude=35.6762),
            settings=Settings(detect_timezone=True),
        )
        assert chart.birth == datetime(1990, 6, 15, 12, 0)
        assert chart.solar_time.original == datetime(1990, 6, 15, 13, 0)
        assert chart.solar_time.standard_meridian == 135.0
        assert (chart.corrected.hour, chart.corrected.minute) == (13, 18)
        assert chart.hour_pillar.ganzhi == "乙未"

    def test_unknown_city_lenient(self, settings):
        chart = generate_chart("赵六", "male", datetime(1990, 6, 15, 12, 0), "Atlantis", settings=settings)
        assert chart.corrected == chart.birth

    def test_unknown_city_strict(self, settings):
        with pytest.raises(UnknownCityError):
            generate_chart("赵六", "male", datetime(1990, 6, 15, 12, 0), "Atlantis",
                           strict_city=True, settings=settings)


class TestValidation:
    @pytest.mark.parametrize("birth", ["1990-13-01T00:00", "not a date", 19900615])
    def test_bad_birth(self, birth, settings):
        with pytest.raises(ValidationError):
            generate_chart("x", "male", birth, settings=settings)

    @pytest.mark.parametrize("birth", [datetime(1899, 12, 31, 12), datetime(2100, 1, 1)])
    def test_out_of_range(self, birth, settings):
        with pytest.raises(OutOfRangeError):
            generate_chart("x", "male", birth, settings=settings)

    def test_bad_gender(self, settings):
        with pytest.raises(ValidationError):
            generate_chart("x", "other", datetime(1990, 1, 1), settings=settings)

    def test_empty_location(self, settings):
        with pytest.raises(ValidationError):
            generate_chart("x", "male", datetime(1990, 1, 1), Location(), settings=settings)

    @pytest.mark.parametrize("value, expected", [
        ("male", Gender.MALE), ("M", Gender.MALE), ("男", Gender.MALE),
        ("female", Gender.FEMALE), ("女", Gender.FEMALE), (Gender.FEMALE, Gender.FEMALE),
    ])
    def test_gender_aliases(self, value, expected):
        assert parse_gender(value) is expected

    def test_aware_birth_converted(self):
        aware = datetime(1990, 6, 15, 4, 0, tzinfo=timezone.utc)
        assert parse_birth(aware) == datetime(1990, 6, 15, 12, 0)

    def test_date_is_midnight(self):
        assert parse_birth(date(1990, 6, 15)) == datetime(1990, 6, 15)


class TestStrength:
    def test_dominant(self):
        counts = {Element.WOOD: 1, Element.FIRE: 3, Element.EARTH: 0,
                  Element.METAL: 2, Element.WATER: 2}
        strength = determine_strength(counts, Element.WOOD)
        assert strength.score == 26
        assert strength.verdict is Verdict.DOMINANT
        assert strength.favorable == (Element.FIRE, Element.EARTH)
        assert strength.unfavorable == (Element.WOOD, Element.WATER)

    def test_pure(self):
        counts = {Element.WOOD: 3, Element.WATER: 1}
        assert determine_strength(counts, Element.WOOD) == determine_strength(dict(counts), Element.WOOD)

    def test_only_two_verdicts_reachable(self):
        for same in range(9):
            for resource in range(9 - same):
                counts = {Element.FIRE: same, Element.WOOD: resource}
                verdict = determine_strength(counts, Element.FIRE).verdict
                assert verdict in (Verdict.DOMINANT, Verdict.WEAK)


class TestLuckCycles:
    @pytest.mark.parametrize("gender", [Gender.MALE, Gender.FEMALE])
    @pytest.mark.parametrize("year_stem", ["甲", "乙"])
    def test_consecutive_steps(self, gender, year_stem):
        cycles = compute_luck_cycles(
            parse_stem("丙"), parse_branch("寅"), gender, parse_stem(year_stem), parse_stem("甲"),
        )
        assert len(cycles) == 8
        indices = [sexagenary_index(c.stem, c.branch) for c in cycles]
        steps = {(b - a) % 60 for a, b in zip(indices, indices[1:])}
        assert len(steps) == 1
        assert steps <= {1, 59}
