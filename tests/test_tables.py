"""Sexagenary tables: stems, branches, ten gods, life stages."""

import pytest

from ganzhi.errors import ValidationError
from ganzhi.tables import (
    EARTHLY_BRANCHES,
    HEAVENLY_STEMS,
    LIFE_STAGE_TABLE,
    Element,
    Relation,
    TenGod,
    branch_at,
    element_for,
    element_relationship,
    ganzhi_name,
    life_stage,
    parse_branch,
    parse_stem,
    sexagenary_index,
    stem_at,
    ten_god,
)

# Day Master 甲 against every stem
TEN_GOD_CASES = [
    ("甲", "甲", TenGod.BI_JIAN),
    ("甲", "乙", TenGod.JIE_CAI),
    ("甲", "丙", TenGod.SHI_SHEN),
    ("甲", "丁", TenGod.SHANG_GUAN),
    ("甲", "戊", TenGod.PIAN_CAI),
    ("甲", "己", TenGod.ZHENG_CAI),
    ("甲", "庚", TenGod.QI_SHA),
    ("甲", "辛", TenGod.ZHENG_GUAN),
    ("甲", "壬", TenGod.PIAN_YIN),
    ("甲", "癸", TenGod.ZHENG_YIN),
    ("丁", "壬", TenGod.ZHENG_GUAN),
    ("辛", "庚", TenGod.JIE_CAI),
]

LIFE_STAGE_CASES = [
    ("甲", "亥", "长生"),
    ("甲", "卯", "帝旺"),
    ("乙", "午", "长生"),
    ("乙", "寅", "帝旺"),
    ("戊", "午", "帝旺"),
    ("辛", "午", "病"),
    ("癸", "子", "临官"),
]


class TestLookup:
    def test_counts(self):
        assert len(HEAVENLY_STEMS) == 10
        assert len(EARTHLY_BRANCHES) == 12

    def test_indices_wrap(self):
        assert stem_at(12).chinese == "丙"
        assert stem_at(-1).chinese == "癸"
        assert branch_at(-1).chinese == "亥"

    @pytest.mark.parametrize("value", ["甲", "jia", "Jia", 0])
    def test_parse_stem_forms(self, value):
        assert parse_stem(value).chinese == "甲"

    @pytest.mark.parametrize("value", ["亥", "hai", 11])
    def test_parse_branch_forms(self, value):
        assert parse_branch(value).chinese == "亥"

    @pytest.mark.parametrize("value", ["X", 10, True, None])
    def test_parse_stem_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_stem(value)

    def test_parse_branch_rejects(self):
        with pytest.raises(ValidationError):
            parse_branch(12)

    def test_hidden_stems_are_stems(self):
        for branch in EARTHLY_BRANCHES:
            assert 1 <= len(branch.hidden_stems) <= 3
            for char in branch.hidden_stems:
                parse_stem(char)


class TestSexagenary:
    def test_every_position_round_trips(self):
        for k in range(60):
            assert sexagenary_index(stem_at(k), branch_at(k)) == k

    def test_names(self):
        assert ganzhi_name(0) == "甲子"
        assert ganzhi_name(59) == "癸亥"
        assert ganzhi_name(54) == "戊午"

    @pytest.mark.parametrize("stem, branch", [("甲", "丑"), ("乙", "子"), ("庚", "亥")])
    def test_mixed_polarity_rejected(self, stem, branch):
        with pytest.raises(ValidationError):
            sexagenary_index(stem, branch)


class TestElements:
    def test_relationship(self):
        assert element_relationship(Element.WOOD, Element.WATER) is Relation.GENERATES_ME
        assert element_relationship(Element.WOOD, Element.FIRE) is Relation.I_GENERATE
        assert element_relationship(Element.WOOD, Element.EARTH) is Relation.I_CONTROL
        assert element_relationship(Element.WOOD, Element.METAL) is Relation.CONTROLS_ME
        assert element_relationship(Element.WOOD, Element.WOOD) is Relation.SAME

    def test_element_for(self):
        assert element_for(Relation.GENERATES_ME, Element.METAL) is Element.EARTH
        assert element_for(Relation.I_CONTROL, Element.WATER) is Element.FIRE

    def test_chinese_names(self):
        assert Element.METAL.chinese == "金"


class TestTenGods:
    @pytest.mark.parametrize(
        "dm, other, expected", TEN_GOD_CASES,
        ids=[f"{dm}-{other}" for dm, other, _ in TEN_GOD_CASES],
    )
    def test_ten_god(self, dm, other, expected):
        assert ten_god(dm, other) is expected

    def test_day_master_sees_itself_as_companion(self):
        for stem in HEAVENLY_STEMS:
            assert ten_god(stem, stem) is TenGod.BI_JIAN


class TestLifeStages:
    @pytest.mark.parametrize(
        "stem, branch, expected", LIFE_STAGE_CASES,
        ids=[f"{s}-{b}" for s, b, _ in LIFE_STAGE_CASES],
    )
    def test_life_stage(self, stem, branch, expected):
        assert life_stage(stem, branch) == expected

    def test_each_stem_visits_all_twelve_stages(self):
        for stem, stages in LIFE_STAGE_TABLE.items():
            assert sorted(stages.values()) == list(range(12)), stem
