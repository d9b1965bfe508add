"""
Deity (神煞) annotations.

Each deity is a rule table keyed by the Day Master, the year branch or the
month branch, mapping to the target characters it looks for. A deity
attaches to every pillar whose branch (or, for a few, stem) is a target,
so a pillar can carry several deities and one deity several pillars.
Results come out in catalogue order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ganzhi.errors import ValidationError
from ganzhi.tables import (
    BRANCH_ORDER,
    BranchLike,
    StemLike,
    parse_branch,
    parse_stem,
)

POSITION_LABELS = ("年", "月", "日", "时")


class Influence(Enum):
    AUSPICIOUS = "吉"
    INAUSPICIOUS = "凶"
    NEUTRAL = "平"


@dataclass(frozen=True)
class Deity:
    type: str
    description: str
    influence: Influence
    position: str  # 年 / 月 / 日 / 时 / 全局

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "description": self.description,
            "influence": self.influence.value,
            "position": self.position,
        }


@dataclass(frozen=True)
class DeityRule:
    name: str
    keyed_by: str  # "day_master", "year_branch" or "month_branch"
    table: dict    # key char -> target chars
    meaning: str
    influence: Influence
    match_stems: bool = False
    match_branches: bool = True

    def describe(self, position: str) -> str:
        return f"{self.name}出现在{position}柱，{self.meaning}"


def _by_triad(groups: dict) -> dict:
    """Expand {"申子辰": "酉"} into one entry per branch of each group."""
    table = {}
    for triad, targets in groups.items():
        for branch in triad:
            table[branch] = tuple(targets)
    return table


# ============================================================
# RULE TABLES
# ============================================================

# 甲戊庚牛羊，乙己鼠猴乡，丙丁猪鸡位，壬癸兔蛇藏，六辛逢马虎
TIAN_YI = {
    "甲": "丑未", "戊": "丑未", "庚": "丑未",
    "乙": "子申", "己": "子申",
    "丙": "亥酉", "丁": "亥酉",
    "壬": "卯巳", "癸": "卯巳",
    "辛": "午寅",
}

# 甲乙巳午报君知，丙戊申宫丁己鸡，庚猪辛鼠壬逢虎，癸人见卯入云梯
WEN_CHANG = {
    "甲": "巳", "乙": "午", "丙": "申", "戊": "申", "丁": "酉",
    "己": "酉", "庚": "亥", "辛": "子", "壬": "寅", "癸": "卯",
}

# Yang stems: the branch after their 临官; yin stems: the branch before
YANG_REN = {
    "甲": "卯", "丙": "午", "戊": "午", "庚": "酉", "壬": "子",
    "乙": "寅", "丁": "巳", "己": "巳", "辛": "申", "癸": "亥",
}

FU_XING = {
    "甲": "寅子", "丙": "寅子", "乙": "丑卯", "癸": "丑卯",
    "戊": "申", "己": "未", "丁": "亥", "庚": "午", "辛": "巳", "壬": "辰",
}

TAI_JI = {
    "甲": "子午", "乙": "子午",
    "丙": "卯酉", "丁": "卯酉",
    "戊": "辰戌丑未", "己": "辰戌丑未",
    "庚": "寅亥", "辛": "寅亥",
    "壬": "巳申", "癸": "巳申",
}

TAO_HUA = _by_triad({"申子辰": "酉", "寅午戌": "卯", "巳酉丑": "午", "亥卯未": "子"})
YI_MA = _by_triad({"申子辰": "寅", "寅午戌": "申", "巳酉丑": "亥", "亥卯未": "巳"})
HUA_GAI = _by_triad({"寅午戌": "戌", "亥卯未": "未", "申子辰": "辰", "巳酉丑": "丑"})
JIANG_XING = _by_triad({"寅午戌": "午", "申子辰": "子", "巳酉丑": "酉", "亥卯未": "卯"})
WANG_SHEN = _by_triad({"申子辰": "亥", "寅午戌": "巳", "巳酉丑": "申", "亥卯未": "寅"})
JIE_SHA = _by_triad({"申子辰": "巳", "寅午戌": "亥", "巳酉丑": "寅", "亥卯未": "申"})
ZAI_SHA = _by_triad({"申子辰": "午", "寅午戌": "子", "巳酉丑": "卯", "亥卯未": "酉"})

GU_CHEN = _by_triad({"亥子丑": "寅", "寅卯辰": "巳", "巳午未": "申", "申酉戌": "亥"})
GUA_SU = _by_triad({"亥子丑": "戌", "寅卯辰": "丑", "巳午未": "辰", "申酉戌": "未"})

# 红鸾 counts back from 卯, 天喜 sits opposite it
HONG_LUAN = {b: BRANCH_ORDER[(3 - i) % 12] for i, b in enumerate(BRANCH_ORDER)}
TIAN_XI = {b: BRANCH_ORDER[(9 - i) % 12] for i, b in enumerate(BRANCH_ORDER)}

# Keyed by month branch; targets mix stems and branches
TIAN_DE = {
    "寅": "丁", "卯": "申", "辰": "壬", "巳": "辛", "午": "亥", "未": "甲",
    "申": "癸", "酉": "寅", "戌": "丙", "亥": "乙", "子": "巳", "丑": "庚",
}
YUE_DE = _by_triad({"寅午戌": "丙", "申子辰": "壬", "亥卯未": "甲", "巳酉丑": "庚"})


DEITY_RULES = (
    DeityRule("天乙贵人", "day_master", TIAN_YI, "主贵人相助，逢凶化吉", Influence.AUSPICIOUS),
    DeityRule("文昌贵人", "day_master", WEN_CHANG, "主聪明好学，文采出众", Influence.AUSPICIOUS),
    DeityRule("桃花", "year_branch", TAO_HUA, "主人缘佳，异性缘好", Influence.NEUTRAL),
    DeityRule("驿马", "year_branch", YI_MA, "主变动、旅行、搬迁", Influence.NEUTRAL),
    DeityRule("华盖", "year_branch", HUA_GAI, "主艺术天赋、宗教缘分、孤独", Influence.NEUTRAL),
    DeityRule("将星", "year_branch", JIANG_XING, "主领导才能、权威", Influence.AUSPICIOUS),
    DeityRule("羊刃", "day_master", YANG_REN, "主强势、暴躁、易受伤", Influence.INAUSPICIOUS),
    DeityRule("亡神", "year_branch", WANG_SHEN, "主灾祸、官非、破财", Influence.INAUSPICIOUS),
    DeityRule("劫煞", "year_branch", JIE_SHA, "主破财、小人、意外", Influence.INAUSPICIOUS),
    DeityRule("灾煞", "year_branch", ZAI_SHA, "主疾病、意外、灾祸", Influence.INAUSPICIOUS),
    DeityRule("天德贵人", "month_branch", TIAN_DE, "主逢凶化吉，一生少灾", Influence.AUSPICIOUS,
              match_stems=True),
    DeityRule("月德贵人", "month_branch", YUE_DE, "主心地善良，化解灾厄", Influence.AUSPICIOUS,
              match_stems=True, match_branches=False),
    DeityRule("福星贵人", "day_master", FU_XING, "主福禄丰厚，衣食无忧", Influence.AUSPICIOUS),
    DeityRule("太极贵人", "day_master", TAI_JI, "主聪明好学，喜玄学哲理", Influence.AUSPICIOUS),
    DeityRule("红鸾", "year_branch", HONG_LUAN, "主婚恋喜庆，异性缘佳", Influence.AUSPICIOUS),
    DeityRule("天喜", "year_branch", TIAN_XI, "主喜事临门，性情开朗", Influence.AUSPICIOUS),
    DeityRule("孤辰", "year_branch", GU_CHEN, "主性情孤僻，六亲缘薄", Influence.INAUSPICIOUS),
    DeityRule("寡宿", "year_branch", GUA_SU, "主孤独寡合，婚姻不顺", Influence.INAUSPICIOUS),
)

DEITY_CATALOGUE = tuple(rule.name for rule in DEITY_RULES)


# ============================================================
# LOOKUP
# ============================================================

def check_deity(rule: DeityRule, key: str, pillars: list) -> list[Deity]:
    """Attach one deity to every matching pillar of (stem_char, branch_char) pairs."""
    targets = rule.table.get(key, ())
    found = []
    for position, (stem, branch) in zip(POSITION_LABELS, pillars):
        if (rule.match_branches and branch in targets) or (rule.match_stems and stem in targets):
            found.append(Deity(rule.name, rule.describe(position), rule.influence, position))
    return found


def get_all_deities(day_master: StemLike, year_branch: BranchLike, pillars: list,
                    month_branch: Optional[BranchLike] = None) -> list[Deity]:
    """
    All deities of a chart, in catalogue order.

    Args:
        day_master: Day Master stem
        year_branch: year pillar branch
        pillars: four (stem, branch) pairs in year, month, day, hour order
        month_branch: month pillar branch (defaults to pillars[1]'s branch)
    """
    if len(pillars) != 4:
        raise ValidationError(f"Expected four pillars, got {len(pillars)}")
    pairs = [(parse_stem(s).chinese, parse_branch(b).chinese) for s, b in pillars]
    keys = {
        "day_master": parse_stem(day_master).chinese,
        "year_branch": parse_branch(year_branch).chinese,
        "month_branch": parse_branch(month_branch).chinese if month_branch is not None else pairs[1][1],
    }

    deities = []
    for rule in DEITY_RULES:
        deities.extend(check_deity(rule, keys[rule.keyed_by], pairs))
    return deities


def count_influences(deities: list[Deity]) -> dict:
    return {
        "auspicious": sum(1 for d in deities if d.influence is Influence.AUSPICIOUS),
        "inauspicious": sum(1 for d in deities if d.influence is Influence.INAUSPICIOUS),
        "neutral": sum(1 for d in deities if d.influence is Influence.NEUTRAL),
    }


def deity_summary(deities: list[Deity]) -> str:
    """One-line Chinese summary, e.g. 命带3个神煞：吉神2个（天乙贵人、将星），中性神煞1个"""
    counts = count_influences(deities)
    parts = []
    if counts["auspicious"]:
        names = "、".join(d.type for d in deities if d.influence is Influence.AUSPICIOUS)
        parts.append(f"吉神{counts['auspicious']}个（{names}）")
    if counts["inauspicious"]:
        names = "、".join(d.type for d in deities if d.influence is Influence.INAUSPICIOUS)
        parts.append(f"凶煞{counts['inauspicious']}个（{names}）")
    if counts["neutral"]:
        parts.append(f"中性神煞{counts['neutral']}个")
    return f"命带{len(deities)}个神煞：" + "，".join(parts)
