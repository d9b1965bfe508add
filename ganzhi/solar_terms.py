"""
Solar term (节气) computation.

Solar terms, not lunar months, delimit the BaZi month pillars, and 立春
(Start of Spring) starts the BaZi year.

Two ways to place a term:

- "mean" (default): a fixed-period linear model anchored on 小寒 1900
  (1900-01-06 02:05) with a tropical year of 365.2422 days. This is an
  approximation, not an ephemeris: errors reach about ±1 day at the
  extremes of 1900-2099, which is why charts carry a warning when the
  birth falls close to a term.
- "ephemeris": the exact moment the Sun crosses the term's ecliptic
  longitude, found with Swiss Ephemeris swe.solcross_ut().

All instants are naive datetimes in China Standard Time (UTC+8).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import swisseph as swe

from ganzhi.config import Settings, get_settings
from ganzhi.errors import ValidationError
from ganzhi.tables import BRANCH_BY_CHINESE

logger = logging.getLogger(__name__)


# ============================================================
# TERM DEFINITIONS
# ============================================================

SOLAR_TERMS = (
    "小寒", "大寒",  # 丑月
    "立春", "雨水",  # 寅月 - 立春 starts the year
    "惊蛰", "春分",  # 卯月
    "清明", "谷雨",  # 辰月
    "立夏", "小满",  # 巳月
    "芒种", "夏至",  # 午月
    "小暑", "大暑",  # 未月
    "立秋", "处暑",  # 申月
    "白露", "秋分",  # 酉月
    "寒露", "霜降",  # 戌月
    "立冬", "小雪",  # 亥月
    "大雪", "冬至",  # 子月
)
TERM_INDEX = {name: i for i, name in enumerate(SOLAR_TERMS)}

# The 12 Jie (节) "entry" terms in branch order starting at the tiger month.
# (term_name, branch)
JIE_TERMS = (
    ("立春", "寅"),
    ("惊蛰", "卯"),
    ("清明", "辰"),
    ("立夏", "巳"),
    ("芒种", "午"),
    ("小暑", "未"),
    ("立秋", "申"),
    ("白露", "酉"),
    ("寒露", "戌"),
    ("立冬", "亥"),
    ("大雪", "子"),
    ("小寒", "丑"),
)

LI_CHUN = TERM_INDEX["立春"]

TROPICAL_YEAR_DAYS = 365.2422
TERM_INTERVAL_DAYS = TROPICAL_YEAR_DAYS / 24
MEAN_BASE_INSTANT = datetime(1900, 1, 6, 2, 5)  # 小寒 1900

# 小寒 sits at 285° of solar longitude; each following term adds 15°.
FIRST_TERM_LONGITUDE = 285.0
CST_OFFSET_HOURS = 8.0

# Five Tigers Escape (五虎遁): year stem -> stem of the tiger month
TIGER_MONTH_STEMS = {
    0: 2, 5: 2,   # 甲/己 year → 丙寅
    1: 4, 6: 4,   # 乙/庚 year → 戊寅
    2: 6, 7: 6,   # 丙/辛 year → 庚寅
    3: 8, 8: 8,   # 丁/壬 year → 壬寅
    4: 0, 9: 0,   # 戊/癸 year → 甲寅
}


@dataclass(frozen=True)
class SolarTerm:
    name: str
    index: int
    instant: datetime

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "index": self.index,
            "instant": self.instant.isoformat(timespec="minutes"),
        }


@dataclass(frozen=True)
class TermProximity:
    is_near: bool
    term: Optional[str] = None
    days_to_term: Optional[int] = None


# ============================================================
# TERM INSTANTS
# ============================================================

def _mean_term_instant(year: int, term_index: int) -> datetime:
    total_days = (year - 1900) * TROPICAL_YEAR_DAYS + term_index * TERM_INTERVAL_DAYS
    return MEAN_BASE_INSTANT + timedelta(days=total_days)


def _ephemeris_term_instant(year: int, term_index: int, ephe_path: str) -> datetime:
    """
    Exact term instant from Swiss Ephemeris.

    Falls back to the built-in Moshier theory when no data files are
    present at ephe_path, which is plenty for the Sun.
    """
    swe.set_ephe_path(ephe_path)
    longitude = (FIRST_TERM_LONGITUDE + 15.0 * term_index) % 360.0
    jd_year_start = swe.julday(year, 1, 1, 0)
    jd_cross = swe.solcross_ut(longitude, jd_year_start, swe.FLG_SWIEPH)
    y, m, d, h = swe.revjul(jd_cross + CST_OFFSET_HOURS / 24.0)
    instant = datetime(y, m, d) + timedelta(hours=h)
    logger.debug("ephemeris term %d of %d at %.1f°: %s", term_index, year, longitude, instant)
    return instant


def get_solar_term_date(year: int, term_index: int, method: Optional[str] = None,
                        settings: Optional[Settings] = None) -> datetime:
    """
    Instant of solar term `term_index` (0 = 小寒 ... 23 = 冬至) in `year`.

    Args:
        year: Gregorian year
        term_index: 0-23 in SOLAR_TERMS order
        method: "mean" or "ephemeris"; defaults to the configured method
        settings: explicit settings (defaults to get_settings())

    Returns:
        naive datetime in China Standard Time
    """
    if not 0 <= term_index < 24:
        raise ValidationError(f"Solar term index must be 0-23, got {term_index}")
    settings = settings or get_settings()
    method = method or settings.solar_term_method

    if method == "mean":
        return _mean_term_instant(year, term_index)
    if method == "ephemeris":
        return _ephemeris_term_instant(year, term_index, settings.ephe_path)
    raise ValidationError(f"Unknown solar term method: {method!r}")


def solar_terms_for_year(year: int, method: Optional[str] = None,
                         settings: Optional[Settings] = None) -> list[SolarTerm]:
    """All 24 terms of a Gregorian year, in chronological order."""
    return [
        SolarTerm(name, index, get_solar_term_date(year, index, method, settings))
        for index, name in enumerate(SOLAR_TERMS)
    ]


# ============================================================
# PILLAR BOUNDARIES
# ============================================================

def month_branch_index(instant: datetime, method: Optional[str] = None,
                       settings: Optional[Settings] = None) -> int:
    """
    Earthly branch index (0 = 子) of the BaZi month containing `instant`.

    Scans the year's 12 entry terms from the latest back to the earliest
    and returns the branch of the first one at or before the instant. An
    instant earlier than all of them is still in the 丑 month that closes
    the previous cycle.

    Note: the first days of January, before 小寒, also land on 丑 here
    rather than on the previous year's 大雪 month (子).
    """
    dated = [
        (get_solar_term_date(instant.year, TERM_INDEX[name], method, settings), branch)
        for name, branch in JIE_TERMS
    ]
    dated.sort(key=lambda item: item[0])

    for term_instant, branch in reversed(dated):
        if instant >= term_instant:
            return BRANCH_BY_CHINESE[branch].index
    return BRANCH_BY_CHINESE["丑"].index


def effective_year(instant: datetime, method: Optional[str] = None,
                   settings: Optional[Settings] = None) -> int:
    """Gregorian year whose 立春 most recently started the BaZi year."""
    li_chun = get_solar_term_date(instant.year, LI_CHUN, method, settings)
    return instant.year - 1 if instant < li_chun else instant.year


def year_pillar_indices(instant: datetime, method: Optional[str] = None,
                        settings: Optional[Settings] = None) -> tuple:
    """
    (stem_index, branch_index) of the year pillar.

    The year changes at 立春, not on January 1 or at the lunar new year.
    """
    offset = (effective_year(instant, method, settings) - 4) % 60
    return offset % 10, offset % 12


def month_stem_index(year_stem_index: int, month_branch_index: int) -> int:
    """
    Month stem from the year stem (Five Tigers Escape).

    Args:
        year_stem_index: index of the year's heavenly stem (0-9)
        month_branch_index: index of the month's earthly branch (0-11, 子 = 0;
            the first month, 寅, has index 2)
    """
    start_stem = TIGER_MONTH_STEMS[year_stem_index % 10]
    months_from_tiger = (month_branch_index - 2) % 12
    return (start_stem + months_from_tiger) % 10


def is_near_solar_term(instant: datetime, tolerance_days: float = 3,
                       method: Optional[str] = None,
                       settings: Optional[Settings] = None) -> TermProximity:
    """Whether `instant` lies within `tolerance_days` of any of its year's 24 terms."""
    for term in solar_terms_for_year(instant.year, method, settings):
        diff_days = (term.instant - instant).total_seconds() / 86400
        if abs(diff_days) <= tolerance_days:
            return TermProximity(True, term.name, round(diff_days))
    return TermProximity(False)


def solar_term_on(instant: datetime, method: Optional[str] = None,
                  settings: Optional[Settings] = None) -> Optional[SolarTerm]:
    """The term falling within 12 hours of `instant`, if any (calendar marker)."""
    for term in solar_terms_for_year(instant.year, method, settings):
        if abs((term.instant - instant).total_seconds()) < 12 * 3600:
            return term
    return None


def month_term_span(instant: datetime, method: Optional[str] = None,
                    settings: Optional[Settings] = None) -> tuple:
    """
    The entry term that opened the current BaZi month and the one that
    closes it, as (start, end) SolarTerm pairs.
    """
    terms = []
    for year in (instant.year - 1, instant.year, instant.year + 1):
        for name, _ in JIE_TERMS:
            index = TERM_INDEX[name]
            terms.append(SolarTerm(name, index, get_solar_term_date(year, index, method, settings)))
    terms.sort(key=lambda t: t.instant)

    for start, end in zip(terms, terms[1:]):
        if start.instant <= instant < end.instant:
            return start, end
    raise ValidationError(f"Could not place {instant} between two entry terms")
