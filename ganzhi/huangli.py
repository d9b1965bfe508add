"""
Almanac (黄历) day facts for the perpetual calendar.

Each lookup is a pure function of the date or of the day's stem/branch.
almanac_day() bundles them together with the day's pillars, lunar date
and solar term marker.

The auspicious/inauspicious god lists are NOT the traditional rule
tables: they are picked from fixed name lists by a small arithmetic hash
of the month and day. Treat them as placeholders.

The 建除 officer follows the BaZi month branch, not the lunar month. From
January 1 until 小寒 that branch is 丑, so those days take their officer
from a 丑 month while the lunar date on the same day is still in 冬月 or
腊月.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ganzhi.chart import day_pillar, four_pillars
from ganzhi.config import Settings, check_year
from ganzhi.errors import ValidationError
from ganzhi.lunar import LunarDate, solar_to_lunar
from ganzhi.solar_terms import SolarTerm, solar_term_on
from ganzhi.solar_time import HOUR_RANGES
from ganzhi.tables import (
    BRANCH_ORDER,
    ZODIAC_ANIMALS,
    BranchLike,
    StemLike,
    branch_at,
    parse_branch,
    parse_stem,
    sexagenary_index,
    stem_at,
)

logger = logging.getLogger(__name__)

# Pillars and the term marker are read at local noon of the almanac day.
ALMANAC_REFERENCE_HOUR = 12


# ============================================================
# TWENTY-EIGHT MANSIONS (二十八星宿)
# ============================================================

STAR_EPOCH = date(2000, 1, 1)  # 角 day

TWENTY_EIGHT_STARS = (
    "角", "亢", "氐", "房", "心", "尾", "箕",  # 东方青龙
    "斗", "牛", "女", "虚", "危", "室", "壁",  # 北方玄武
    "奎", "娄", "胃", "昴", "毕", "觜", "参",  # 西方白虎
    "井", "鬼", "柳", "星", "张", "翼", "轸",  # 南方朱雀
)

STAR_FORTUNE = {
    "角": "吉", "亢": "凶", "氐": "凶", "房": "吉", "心": "凶", "尾": "吉", "箕": "吉",
    "斗": "吉", "牛": "凶", "女": "凶", "虚": "凶", "危": "凶", "室": "吉", "壁": "吉",
    "奎": "凶", "娄": "吉", "胃": "吉", "昴": "凶", "毕": "吉", "觜": "凶", "参": "吉",
    "井": "吉", "鬼": "凶", "柳": "凶", "星": "凶", "张": "吉", "翼": "凶", "轸": "吉",
}


# ============================================================
# TWELVE DAY OFFICERS (建除十二神)
# ============================================================

# Branch order used for officer counting, starting at the tiger month
OFFICER_BRANCH_ORDER = "寅卯辰巳午未申酉戌亥子丑"

TWELVE_OFFICERS = ("建", "除", "满", "平", "定", "执", "破", "危", "成", "收", "开", "闭")

OFFICER_ADVICE = {
    "建": (("出行", "上任", "会友", "上书", "见工"), ("动土", "开仓", "嫁娶", "纳采")),
    "除": (("除服", "疗病", "出行", "拆卸", "入宅"), ("求官", "上任", "嫁娶")),
    "满": (("祈福", "祭祀", "结亲", "开市", "交易"), ("服药", "求医", "栽种", "下葬")),
    "平": (("祭祀", "修填", "涂泥", "余事勿取"), ("诸事不宜",)),
    "定": (("祭祀", "祈福", "订盟", "纳采", "冠笄"), ("诉讼", "出行", "安葬")),
    "执": (("祭祀", "祈福", "求医", "捕捉", "畋猎"), ("移徙", "出行", "嫁娶")),
    "破": (("破屋", "坏垣", "求医", "治病"), ("诸事不宜",)),
    "危": (("安床", "经络", "酝酿", "造仓"), ("登高", "出行", "乘船")),
    "成": (("开市", "交易", "纳财", "开仓", "出货"), ("诉讼", "安葬")),
    "收": (("祭祀", "求财", "签约", "嫁娶", "订盟"), ("开市", "安葬", "动土")),
    "开": (("开市", "交易", "求财", "见贵", "嫁娶"), ("安葬", "修坟")),
    "闭": (("祭祀", "祈福", "筑堤", "埋葬", "余事勿取"), ("开市", "出行", "求财")),
}


# ============================================================
# NAYIN (纳音) AND FETAL GOD (胎神)
# ============================================================

# One name per pair of the sixty-cycle: 甲子乙丑 海中金, 丙寅丁卯 炉中火, ...
NAYIN = (
    "海中金", "炉中火", "大林木", "路旁土", "剑锋金",
    "山头火", "涧下水", "城头土", "白蜡金", "杨柳木",
    "泉中水", "屋上土", "霹雳火", "松柏木", "长流水",
    "沙中金", "山下火", "平地木", "壁上土", "金箔金",
    "覆灯火", "天河水", "大驿土", "钗钏金", "桑柘木",
    "大溪水", "沙中土", "天上火", "石榴木", "大海水",
)

# Sixty-cycle order, 甲子 first
FETAL_GOD_POSITIONS = (
    "占门碓外东南", "碓磨厕外东南", "厨灶炉外正南", "仓库门外正南", "房床栖外正南",
    "占房床外正南", "占碓磨外正南", "厨灶厕外西南", "仓库炉外西南", "房床门外西南",
    "门鸡栖外西南", "碓磨床外西南", "厨灶碓外正西", "仓库厕外正西", "房床炉外正西",
    "占大门外西北", "碓磨栖外西北", "厨灶床外西北", "仓库碓外西北", "房床厕外西北",
    "占房炉外正北", "碓磨门外正北", "厨灶栖外正北", "仓库床外正北", "房床碓外正北",
    "占门厕外东北", "碓磨炉外东北", "厨灶门外东北", "仓库栖外东北", "房床床外东北",
    "占房碓外正东", "碓磨厕外正东", "厨灶炉外正东", "仓库门外正东", "房床栖外正东",
    "占门床外东南", "碓磨碓外东南", "厨灶厕外东南", "仓库炉外东南", "房床门外东南",
    "占房栖外正南", "碓磨床外正南", "厨灶碓外正南", "仓库厕外正南", "房床炉外正南",
    "占大门外西南", "碓磨栖外西南", "厨灶床外西南", "仓库碓外西南", "房床厕外西南",
    "占房炉外正西", "碓磨门外正西", "厨灶栖外正西", "仓库床外正西", "房床碓外正西",
    "占门厕外西北", "碓磨炉外西北", "厨灶门外西北", "仓库栖外西北", "房床床外西北",
)


def _slot(stem_index: int, branch_index: int) -> int:
    """Table slot of a valid pair: stem x 6 + branch // 2 (one slot per pair)."""
    return stem_index * 6 + branch_index // 2


def _by_slot(values_for_cycle) -> tuple:
    table = [None] * 60
    for k in range(60):
        table[_slot(k % 10, k % 12)] = values_for_cycle(k)
    return tuple(table)


_NAYIN_BY_SLOT = _by_slot(lambda k: NAYIN[k // 2])
_FETAL_GOD_BY_SLOT = _by_slot(lambda k: FETAL_GOD_POSITIONS[k])


# ============================================================
# CONFLICT (冲煞) AND PENGZU TABOOS (彭祖百忌)
# ============================================================

# 申子辰 days sha 南, 巳酉丑 东, 寅午戌 北, 亥卯未 西
SHA_DIRECTIONS = ("南", "东", "北", "西") * 3

PENGZU_STEM_TABOO = {
    "甲": "甲不开仓财物耗散", "乙": "乙不栽植千株不长",
    "丙": "丙不修灶必见灾殃", "丁": "丁不剃头头必生疮",
    "戊": "戊不受田田主不祥", "己": "己不破券二比并亡",
    "庚": "庚不经络织机虚张", "辛": "辛不合酱主人不尝",
    "壬": "壬不汲水更难提防", "癸": "癸不词讼理弱敌强",
}

PENGZU_BRANCH_TABOO = {
    "子": "子不问卜自惹祸殃", "丑": "丑不冠带主不还乡",
    "寅": "寅不祭祀神鬼不尝", "卯": "卯不穿井水泉不香",
    "辰": "辰不哭泣必主重丧", "巳": "巳不远行财物伏藏",
    "午": "午不苫盖屋主更张", "未": "未不服药毒气入肠",
    "申": "申不安床鬼祟入房", "酉": "酉不会客醉坐颠狂",
    "戌": "戌不吃犬作怪上床", "亥": "亥不嫁娶不利新郎",
}


# ============================================================
# DAY GODS (placeholder selection)
# ============================================================

AUSPICIOUS_GODS = (
    "天德", "月德", "天德合", "月德合", "天赦", "天愿", "月恩", "四相", "时德", "民日",
    "三合", "临日", "天马", "时阳", "生气", "益后", "青龙", "明堂", "金匮", "天喜",
    "福生", "续世", "阳德", "阴德", "司命", "鸣吠", "鸣吠对", "母仓", "不将", "五富",
    "圣心", "普护", "六仪", "玉宇", "解神", "驿马", "天后", "天巫", "月空", "敬安",
)

AUSPICIOUS_GOD_NOTES = {
    "天德": "上天之德，百事皆宜",
    "月德": "月亮之德，逢凶化吉",
    "天赦": "上天赦免，消灾解厄",
    "天愿": "天遂人愿，心想事成",
    "三合": "三方和合，贵人相助",
    "青龙": "吉神之首，万事大吉",
    "明堂": "光明正大，公正无私",
    "金匮": "财富丰盈，聚财纳福",
    "天喜": "喜庆之神，婚姻美满",
    "生气": "生机勃勃，活力充沛",
}

INAUSPICIOUS_GODS = (
    "月破", "大耗", "灾煞", "天火", "厌对", "招摇", "血忌", "天贼", "五虚", "土符",
    "归忌", "血支", "游祸", "重日", "天牢", "往亡", "月煞", "月虚", "四击", "九空",
    "天刑", "天吏", "致死", "五墓", "白虎", "大煞", "劫煞", "地囊", "天狗", "土瘟",
    "刀砧", "河魁", "往亡", "死神", "孤辰", "寡宿", "勾陈", "元武", "朱雀", "螣蛇",
)

INAUSPICIOUS_GOD_NOTES = {
    "月破": "月亮破损，诸事不宜",
    "大耗": "大耗钱财，破财之兆",
    "灾煞": "灾祸降临，小心意外",
    "血忌": "忌见血光，手术不宜",
    "白虎": "凶神之首，主伤灾病",
    "天狗": "天狗食日，易生口舌",
    "劫煞": "劫财之煞，防偷防盗",
    "死神": "死亡之神，疾病凶险",
    "勾陈": "纠缠不清，官司是非",
}

DEFAULT_AUSPICIOUS_NOTE = "吉祥之神，宜进行各种活动"
DEFAULT_INAUSPICIOUS_NOTE = "凶煞之神，需谨慎避让"


# ============================================================
# HOUR FORTUNE
# ============================================================

# branch -> (star, fortune, suitable, avoid)
HOUR_DETAILED_FORTUNE = {
    "子": ("金匮", "吉", ("祈福", "祭祀", "酬神", "出行", "嫁娶"), ("开光", "修造", "安葬")),
    "丑": ("天德", "吉", ("祭祀", "祈福", "斋醮", "酬神", "修造", "作灶"), ("开市", "安葬", "嫁娶")),
    "寅": ("白虎", "凶", ("出行", "求财", "见贵", "订婚", "嫁娶"), ("祭祀", "祈福", "斋醮", "开光")),
    "卯": ("玉堂", "吉", ("修造", "盖屋", "移徙", "安床", "入宅", "开市"), ("开光", "作灶", "安葬")),
    "辰": ("天牢", "凶", ("祭祀", "祈福", "求嗣", "斋醮", "订婚"), ("赴任", "出行", "修造", "动土")),
    "巳": ("玄武", "凶", ("订婚", "嫁娶", "安床", "移徙", "入宅"), ("祭祀", "祈福", "斋醮", "开光")),
    "午": ("司命", "吉", ("祭祀", "祈福", "斋醮", "酬神", "订婚", "嫁娶"), ("开光", "修造", "安葬")),
    "未": ("勾陈", "凶", ("祭祀", "祈福", "求嗣", "斋醮", "开市"), ("开光", "安床", "嫁娶")),
    "申": ("青龙", "吉", ("祈福", "嫁娶", "安床", "移徙", "入宅", "开市"), ("开光", "修造", "动土")),
    "酉": ("明堂", "吉", ("修造", "盖屋", "移徙", "作灶", "安床", "入宅"), ("祭祀", "祈福", "开光")),
    "戌": ("天刑", "凶", ("祭祀", "祈福", "酬神", "求财", "见贵"), ("赴任", "出行", "修造", "动土")),
    "亥": ("朱雀", "凶", ("订婚", "嫁娶", "安床", "移徙", "修造"), ("祭祀", "祈福", "开光", "斋醮")),
}


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass(frozen=True)
class DayStar:
    name: str
    fortune: str


@dataclass(frozen=True)
class OfficerAdvice:
    suitable: tuple
    avoid: tuple


@dataclass(frozen=True)
class Conflict:
    branch: str      # the clashing branch
    animal: str      # its zodiac animal
    sha: str         # sha direction of the day

    @property
    def conflict_label(self) -> str:
        return f"冲{self.animal}"

    @property
    def sha_label(self) -> str:
        return f"煞{self.sha}"


@dataclass(frozen=True)
class PengzuTaboo:
    stem: str
    branch: str


@dataclass(frozen=True)
class HourDetails:
    star: str
    fortune: str
    suitable: tuple
    avoid: tuple
    conflict: Conflict


@dataclass(frozen=True)
class HourSlot:
    stem: str
    branch: str
    hour_range: str
    fortune: str
    details: HourDetails

    def to_dict(self) -> dict:
        return {
            "ganzhi": self.stem + self.branch,
            "hour_range": self.hour_range,
            "fortune": self.fortune,
            "star": self.details.star,
            "star_fortune": self.details.fortune,
            "suitable": list(self.details.suitable),
            "avoid": list(self.details.avoid),
            "conflict": self.details.conflict.conflict_label,
            "sha": self.details.conflict.sha_label,
        }


@dataclass(frozen=True)
class AlmanacDay:
    date: date
    year_ganzhi: str
    month_ganzhi: str
    day_ganzhi: str
    lunar: LunarDate
    solar_term: Optional[SolarTerm]
    day_star: DayStar
    officer: str
    officer_advice: OfficerAdvice
    nayin: str
    conflict: Conflict
    fetal_god: str
    pengzu: PengzuTaboo
    auspicious_gods: tuple
    inauspicious_gods: tuple
    hours: tuple

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "pillars": {
                "year": self.year_ganzhi,
                "month": self.month_ganzhi,
                "day": self.day_ganzhi,
            },
            "lunar": self.lunar.to_dict(),
            "solar_term": self.solar_term.to_dict() if self.solar_term else None,
            "day_star": {"name": self.day_star.name, "fortune": self.day_star.fortune},
            "officer": self.officer,
            "suitable": list(self.officer_advice.suitable),
            "avoid": list(self.officer_advice.avoid),
            "nayin": self.nayin,
            "conflict": self.conflict.conflict_label,
            "sha": self.conflict.sha_label,
            "fetal_god": self.fetal_god,
            "pengzu": {"stem": self.pengzu.stem, "branch": self.pengzu.branch},
            "auspicious_gods": [
                {"name": g, "note": god_note(g)} for g in self.auspicious_gods
            ],
            "inauspicious_gods": [
                {"name": g, "note": god_note(g)} for g in self.inauspicious_gods
            ],
            "hours": [h.to_dict() for h in self.hours],
        }


# ============================================================
# LOOKUPS
# ============================================================

def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def day_star(day: Union[date, datetime]) -> DayStar:
    """Mansion on duty: days since 2000-01-01 modulo 28."""
    index = (_as_date(day) - STAR_EPOCH).days % 28
    name = TWENTY_EIGHT_STARS[index]
    return DayStar(name, STAR_FORTUNE[name])


def twelve_officer(month_branch: BranchLike, day_branch: BranchLike) -> str:
    """Day officer: distance from the month branch to the day branch, counted from 寅."""
    month_index = OFFICER_BRANCH_ORDER.index(parse_branch(month_branch).chinese)
    day_index = OFFICER_BRANCH_ORDER.index(parse_branch(day_branch).chinese)
    return TWELVE_OFFICERS[(day_index - month_index + 12) % 12]


def officer_advice(officer: str) -> OfficerAdvice:
    try:
        suitable, avoid = OFFICER_ADVICE[officer]
    except KeyError:
        raise ValidationError(f"Unknown day officer: {officer!r}") from None
    return OfficerAdvice(suitable, avoid)


def nayin(stem: StemLike, branch: BranchLike) -> str:
    """Nayin element name of a sixty-cycle pair, e.g. 甲子 -> 海中金."""
    s, b = parse_stem(stem), parse_branch(branch)
    sexagenary_index(s, b)  # rejects mixed-polarity pairs
    return _NAYIN_BY_SLOT[_slot(s.index, b.index)]


def fetal_god(stem: StemLike, branch: BranchLike) -> str:
    """Where the fetal god resides on a given day."""
    s, b = parse_stem(stem), parse_branch(branch)
    sexagenary_index(s, b)
    return _FETAL_GOD_BY_SLOT[_slot(s.index, b.index)]


def conflict(day_branch: BranchLike) -> Conflict:
    """The branch a day clashes with, (index + 6) mod 12, and its sha direction."""
    index = parse_branch(day_branch).index
    opposite = (index + 6) % 12
    return Conflict(
        branch=BRANCH_ORDER[opposite],
        animal=ZODIAC_ANIMALS[opposite],
        sha=SHA_DIRECTIONS[index],
    )


def pengzu_taboo(stem: StemLike, branch: BranchLike) -> PengzuTaboo:
    return PengzuTaboo(
        stem=PENGZU_STEM_TABOO[parse_stem(stem).chinese],
        branch=PENGZU_BRANCH_TABOO[parse_branch(branch).chinese],
    )


def _pick(names: tuple, seed: int, count: int) -> list[str]:
    picked = []
    for i in range(count):
        name = names[(seed * (i + 1)) % len(names)]
        if name not in picked:
            picked.append(name)
    return picked


def _seed(day: date) -> int:
    return day.day + (day.month - 1) * 31


def auspicious_gods(day: Union[date, datetime]) -> list[str]:
    """Placeholder: 3-5 names chosen by a hash of month and day."""
    seed = _seed(_as_date(day))
    return _pick(AUSPICIOUS_GODS, seed, 3 + seed % 3)


def inauspicious_gods(day: Union[date, datetime]) -> list[str]:
    """Placeholder: 2-4 names chosen by a hash of month and day."""
    seed = _seed(_as_date(day)) + 7
    return _pick(INAUSPICIOUS_GODS, seed, 2 + seed % 3)


def god_note(name: str) -> str:
    if name in AUSPICIOUS_GOD_NOTES:
        return AUSPICIOUS_GOD_NOTES[name]
    if name in INAUSPICIOUS_GOD_NOTES:
        return INAUSPICIOUS_GOD_NOTES[name]
    return DEFAULT_AUSPICIOUS_NOTE if name in AUSPICIOUS_GODS else DEFAULT_INAUSPICIOUS_NOTE


def hour_fortune(hour_branch: BranchLike, day_branch: BranchLike) -> str:
    """
    Rough hour fortune from the branch distance to the day:
    same or opposite branch 凶, a third or a quarter of the cycle away 吉.
    """
    diff = abs(parse_branch(hour_branch).index - parse_branch(day_branch).index)
    if diff in (0, 6):
        return "凶"
    if diff in (3, 9, 4, 8):
        return "吉"
    return "平"


def hour_details(hour_branch: BranchLike) -> HourDetails:
    branch = parse_branch(hour_branch)
    star, fortune, suitable, avoid = HOUR_DETAILED_FORTUNE[branch.chinese]
    return HourDetails(star, fortune, suitable, avoid, conflict(branch))


def day_hours(day: Union[date, datetime]) -> list[HourSlot]:
    """The twelve two-hour slots of a day, stems by the Five Rats rule."""
    day_stem, day_branch = day_pillar(_as_date(day))
    stem_index = day_stem.index
    slots = []
    for branch_index in range(12):
        branch = branch_at(branch_index)
        stem = stem_at((stem_index % 5) * 2 + branch_index)
        slots.append(HourSlot(
            stem=stem.chinese,
            branch=branch.chinese,
            hour_range=HOUR_RANGES[branch_index],
            fortune=hour_fortune(branch, day_branch),
            details=hour_details(branch),
        ))
    return slots


# ============================================================
# DAY BUNDLE
# ============================================================

def almanac_day(day: Union[date, datetime], settings: Optional[Settings] = None) -> AlmanacDay:
    """
    Every almanac fact for one civil date.

    Raises OutOfRangeError outside the lunar table (1900-01-31 to the end of
    lunar 2099).
    """
    day = _as_date(day)
    check_year(day.year)
    reference = datetime(day.year, day.month, day.day) + timedelta(hours=ALMANAC_REFERENCE_HOUR)
    pillars = four_pillars(reference, settings)
    (year_stem, year_branch) = pillars["year"]
    (month_stem, month_branch) = pillars["month"]
    (day_stem, day_branch) = pillars["day"]
    officer = twelve_officer(month_branch, day_branch)
    logger.debug("almanac %s: %s%s day, officer %s", day, day_stem.chinese, day_branch.chinese, officer)

    return AlmanacDay(
        date=day,
        year_ganzhi=year_stem.chinese + year_branch.chinese,
        month_ganzhi=month_stem.chinese + month_branch.chinese,
        day_ganzhi=day_stem.chinese + day_branch.chinese,
        lunar=solar_to_lunar(day),
        solar_term=solar_term_on(reference, settings=settings),
        day_star=day_star(day),
        officer=officer,
        officer_advice=officer_advice(officer),
        nayin=nayin(day_stem, day_branch),
        conflict=conflict(day_branch),
        fetal_god=fetal_god(day_stem, day_branch),
        pengzu=pengzu_taboo(day_stem, day_branch),
        auspicious_gods=tuple(auspicious_gods(day)),
        inauspicious_gods=tuple(inauspicious_gods(day)),
        hours=tuple(day_hours(day)),
    )
