"""
Static sexagenary lookup data.

Holds:
- the 10 Heavenly Stems and 12 Earthly Branches (element, polarity,
  hidden stems, zodiac)
- the five-element production/control cycles and the relation they imply
- the Ten Gods naming table
- the Twelve Life Stages traversal table

Everything here is built once at import time and never mutated.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ganzhi.errors import ValidationError


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Polarity(Enum):
    YANG = "yang"
    YIN = "yin"

    @property
    def chinese(self) -> str:
        return "阳" if self is Polarity.YANG else "阴"


class Element(Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"

    @property
    def chinese(self) -> str:
        return ELEMENT_CHINESE[self]


ELEMENT_CHINESE = {
    Element.WOOD: "木",
    Element.FIRE: "火",
    Element.EARTH: "土",
    Element.METAL: "金",
    Element.WATER: "水",
}
ELEMENT_BY_CHINESE = {v: k for k, v in ELEMENT_CHINESE.items()}


@dataclass(frozen=True)
class HeavenlyStem:
    chinese: str
    pinyin: str
    element: Element
    polarity: Polarity
    index: int  # 0-9 in the cycle

    def __str__(self):
        return f"{self.chinese} {self.pinyin} ({self.polarity.value} {self.element.value})"


@dataclass(frozen=True)
class EarthlyBranch:
    chinese: str
    pinyin: str
    animal: str          # English zodiac name
    zodiac: str          # Chinese zodiac character
    element: Element
    polarity: Polarity
    index: int           # 0-11 in the cycle
    hidden_stems: tuple  # chinese chars of hidden stems [main_qi, middle_qi, residual_qi]

    def __str__(self):
        return f"{self.chinese} {self.pinyin} ({self.animal})"


# ============================================================
# STEM AND BRANCH DEFINITIONS
# ============================================================

HEAVENLY_STEMS = (
    HeavenlyStem("甲", "Jia", Element.WOOD, Polarity.YANG, 0),
    HeavenlyStem("乙", "Yi", Element.WOOD, Polarity.YIN, 1),
    HeavenlyStem("丙", "Bing", Element.FIRE, Polarity.YANG, 2),
    HeavenlyStem("丁", "Ding", Element.FIRE, Polarity.YIN, 3),
    HeavenlyStem("戊", "Wu", Element.EARTH, Polarity.YANG, 4),
    HeavenlyStem("己", "Ji", Element.EARTH, Polarity.YIN, 5),
    HeavenlyStem("庚", "Geng", Element.METAL, Polarity.YANG, 6),
    HeavenlyStem("辛", "Xin", Element.METAL, Polarity.YIN, 7),
    HeavenlyStem("壬", "Ren", Element.WATER, Polarity.YANG, 8),
    HeavenlyStem("癸", "Gui", Element.WATER, Polarity.YIN, 9),
)

EARTHLY_BRANCHES = (
    EarthlyBranch("子", "Zi", "Rat", "鼠", Element.WATER, Polarity.YANG, 0,
                  ("癸",)),
    EarthlyBranch("丑", "Chou", "Ox", "牛", Element.EARTH, Polarity.YIN, 1,
                  ("己", "癸", "辛")),
    EarthlyBranch("寅", "Yin", "Tiger", "虎", Element.WOOD, Polarity.YANG, 2,
                  ("甲", "丙", "戊")),
    EarthlyBranch("卯", "Mao", "Rabbit", "兔", Element.WOOD, Polarity.YIN, 3,
                  ("乙",)),
    EarthlyBranch("辰", "Chen", "Dragon", "龙", Element.EARTH, Polarity.YANG, 4,
                  ("戊", "乙", "癸")),
    EarthlyBranch("巳", "Si", "Snake", "蛇", Element.FIRE, Polarity.YIN, 5,
                  ("丙", "庚", "戊")),
    EarthlyBranch("午", "Wu", "Horse", "马", Element.FIRE, Polarity.YANG, 6,
                  ("丁", "己")),
    EarthlyBranch("未", "Wei", "Goat", "羊", Element.EARTH, Polarity.YIN, 7,
                  ("己", "丁", "乙")),
    EarthlyBranch("申", "Shen", "Monkey", "猴", Element.METAL, Polarity.YANG, 8,
                  ("庚", "壬", "戊")),
    EarthlyBranch("酉", "You", "Rooster", "鸡", Element.METAL, Polarity.YIN, 9,
                  ("辛",)),
    EarthlyBranch("戌", "Xu", "Dog", "狗", Element.EARTH, Polarity.YANG, 10,
                  ("戊", "辛", "丁")),
    EarthlyBranch("亥", "Hai", "Pig", "猪", Element.WATER, Polarity.YIN, 11,
                  ("壬", "甲")),
)

STEM_ORDER = "".join(s.chinese for s in HEAVENLY_STEMS)
BRANCH_ORDER = "".join(b.chinese for b in EARTHLY_BRANCHES)
ZODIAC_ANIMALS = tuple(b.zodiac for b in EARTHLY_BRANCHES)

# Lookup helpers
STEM_BY_CHINESE = {s.chinese: s for s in HEAVENLY_STEMS}
STEM_BY_PINYIN = {s.pinyin: s for s in HEAVENLY_STEMS}
BRANCH_BY_CHINESE = {b.chinese: b for b in EARTHLY_BRANCHES}
BRANCH_BY_PINYIN = {b.pinyin: b for b in EARTHLY_BRANCHES}
BRANCH_BY_ANIMAL = {b.animal: b for b in EARTHLY_BRANCHES}

StemLike = Union[HeavenlyStem, str, int]
BranchLike = Union[EarthlyBranch, str, int]


def stem_at(index: int) -> HeavenlyStem:
    """Stem for any integer index (wraps with a non-negative modulo)."""
    return HEAVENLY_STEMS[index % 10]


def branch_at(index: int) -> EarthlyBranch:
    """Branch for any integer index (wraps with a non-negative modulo)."""
    return EARTHLY_BRANCHES[index % 12]


def parse_stem(value: StemLike) -> HeavenlyStem:
    """Accept a stem instance, chinese char, pinyin name or 0-9 index."""
    if isinstance(value, HeavenlyStem):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < 10:
            return HEAVENLY_STEMS[value]
    elif isinstance(value, str):
        stem = STEM_BY_CHINESE.get(value) or STEM_BY_PINYIN.get(value.capitalize())
        if stem is not None:
            return stem
    raise ValidationError(f"Unknown heavenly stem: {value!r}")


def parse_branch(value: BranchLike) -> EarthlyBranch:
    """Accept a branch instance, chinese char, pinyin name or 0-11 index."""
    if isinstance(value, EarthlyBranch):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < 12:
            return EARTHLY_BRANCHES[value]
    elif isinstance(value, str):
        branch = BRANCH_BY_CHINESE.get(value) or BRANCH_BY_PINYIN.get(value.capitalize())
        if branch is not None:
            return branch
    raise ValidationError(f"Unknown earthly branch: {value!r}")


def sexagenary_index(stem: StemLike, branch: BranchLike) -> int:
    """
    Position (0-59) of a stem/branch pair in the sixty-cycle, 甲子 = 0.

    Only pairs of matching polarity exist in the cycle; any other pair
    raises ValidationError.
    """
    s = parse_stem(stem).index
    b = parse_branch(branch).index
    if s % 2 != b % 2:
        raise ValidationError(
            f"{HEAVENLY_STEMS[s].chinese}{EARTHLY_BRANCHES[b].chinese} is not a valid "
            "sexagenary pair (stem and branch polarity differ)"
        )
    # k ≡ s (mod 10) and k ≡ b (mod 12)
    return (6 * s - 5 * b) % 60


def ganzhi_name(index: int) -> str:
    """Chinese name (e.g. 甲子) of a sixty-cycle position."""
    return HEAVENLY_STEMS[index % 10].chinese + EARTHLY_BRANCHES[index % 12].chinese


# ============================================================
# FIVE ELEMENT RELATIONS
# ============================================================

# Production cycle: Wood → Fire → Earth → Metal → Water → Wood
PRODUCTION_CYCLE = {
    Element.WOOD: Element.FIRE,
    Element.FIRE: Element.EARTH,
    Element.EARTH: Element.METAL,
    Element.METAL: Element.WATER,
    Element.WATER: Element.WOOD,
}

# Control cycle: Wood → Earth → Water → Fire → Metal → Wood
CONTROL_CYCLE = {
    Element.WOOD: Element.EARTH,
    Element.EARTH: Element.WATER,
    Element.WATER: Element.FIRE,
    Element.FIRE: Element.METAL,
    Element.METAL: Element.WOOD,
}


class Relation(Enum):
    """How another element stands to the Day Master's element."""
    SAME = "same"                  # companion
    GENERATES_ME = "generates_me"  # resource
    I_GENERATE = "i_generate"      # output
    I_CONTROL = "i_control"        # wealth
    CONTROLS_ME = "controls_me"    # officer


def element_relationship(day_master_element: Element, other_element: Element) -> Relation:
    """Determine the elemental relationship from DM's perspective."""
    if day_master_element == other_element:
        return Relation.SAME
    if PRODUCTION_CYCLE[other_element] == day_master_element:
        return Relation.GENERATES_ME
    if PRODUCTION_CYCLE[day_master_element] == other_element:
        return Relation.I_GENERATE
    if CONTROL_CYCLE[day_master_element] == other_element:
        return Relation.I_CONTROL
    if CONTROL_CYCLE[other_element] == day_master_element:
        return Relation.CONTROLS_ME
    raise ValueError(f"No valid relationship between {day_master_element} and {other_element}")


def element_for(relation: Relation, day_master_element: Element) -> Element:
    """The element standing in `relation` to the Day Master's element."""
    for element in Element:
        if element_relationship(day_master_element, element) is relation:
            return element
    raise ValueError(f"No element stands in {relation} to {day_master_element}")


# ============================================================
# TEN GODS (十神)
# ============================================================

class TenGod(Enum):
    BI_JIAN = "比肩"      # Companion
    JIE_CAI = "劫财"      # Rob Wealth
    SHI_SHEN = "食神"     # Eating God
    SHANG_GUAN = "伤官"   # Hurting Officer
    PIAN_CAI = "偏财"     # Indirect Wealth
    ZHENG_CAI = "正财"    # Direct Wealth
    QI_SHA = "七杀"       # 7 Killings
    ZHENG_GUAN = "正官"   # Direct Officer
    PIAN_YIN = "偏印"     # Indirect Resource
    ZHENG_YIN = "正印"    # Direct Resource


# relation -> (same polarity, different polarity)
TEN_GOD_PAIRS = {
    Relation.SAME: (TenGod.BI_JIAN, TenGod.JIE_CAI),
    Relation.GENERATES_ME: (TenGod.PIAN_YIN, TenGod.ZHENG_YIN),
    Relation.I_GENERATE: (TenGod.SHI_SHEN, TenGod.SHANG_GUAN),
    Relation.I_CONTROL: (TenGod.PIAN_CAI, TenGod.ZHENG_CAI),
    Relation.CONTROLS_ME: (TenGod.QI_SHA, TenGod.ZHENG_GUAN),
}


def ten_god(day_master: StemLike, other: StemLike) -> TenGod:
    """
    Ten God of `other` seen from the Day Master.

    The element relation picks the pair, polarity match picks the member.
    """
    dm = parse_stem(day_master)
    target = parse_stem(other)
    same, different = TEN_GOD_PAIRS[element_relationship(dm.element, target.element)]
    return same if dm.polarity == target.polarity else different


# ============================================================
# TWELVE LIFE STAGES (十二长生)
# ============================================================

LIFE_STAGES = ("长生", "沐浴", "冠带", "临官", "帝旺", "衰", "病", "死", "墓", "绝", "胎", "养")

# Branch where each stem's 长生 falls. Earth stems follow fire: 戊 as 丙, 己 as 丁.
LONG_LIFE_BRANCH = {
    "甲": "亥", "丙": "寅", "戊": "寅", "庚": "巳", "壬": "申",
    "乙": "午", "丁": "酉", "己": "酉", "辛": "子", "癸": "卯",
}


def _build_life_stage_table() -> dict:
    table = {}
    for stem in HEAVENLY_STEMS:
        start = BRANCH_BY_CHINESE[LONG_LIFE_BRANCH[stem.chinese]].index
        # Yang stems walk the branches forward, yin stems backward.
        step = 1 if stem.polarity is Polarity.YANG else -1
        table[stem.chinese] = {
            EARTHLY_BRANCHES[(start + step * n) % 12].chinese: n for n in range(12)
        }
    return table


LIFE_STAGE_TABLE = _build_life_stage_table()


def life_stage(stem: StemLike, branch: BranchLike) -> str:
    """Life stage of a stem sitting on a branch."""
    s = parse_stem(stem)
    b = parse_branch(branch)
    return LIFE_STAGES[LIFE_STAGE_TABLE[s.chinese][b.chinese]]
