"""
Gregorian <-> Chinese lunisolar calendar conversion, 1900-2099.

Each year is packed into one 17-bit value of LUNAR_INFO:

    bit 16        leap month has 30 days (else 29)
    bits 15..4    months 1..12, 1 = 30 days, 0 = 29 days
    bits 3..0     which month is followed by a leap month (0 = none)

Day counting is anchored on 1900-01-31, which is lunar 1900, month 1, day 1.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Union

from ganzhi.config import MAX_YEAR, MIN_YEAR
from ganzhi.errors import OutOfRangeError, ValidationError
from ganzhi.tables import ZODIAC_ANIMALS, ganzhi_name

logger = logging.getLogger(__name__)

LUNAR_INFO = (
    0x04bd8, 0x04ae0, 0x0a570, 0x054d5, 0x0d260, 0x0d950, 0x16554, 0x056a0, 0x09ad0, 0x055d2,  # 1900
    0x04ae0, 0x0a5b6, 0x0a4d0, 0x0d250, 0x1d255, 0x0b540, 0x0d6a0, 0x0ada2, 0x095b0, 0x14977,  # 1910
    0x04970, 0x0a4b0, 0x0b4b5, 0x06a50, 0x06d40, 0x1ab54, 0x02b60, 0x09570, 0x052f2, 0x04970,  # 1920
    0x06566, 0x0d4a0, 0x0ea50, 0x06e95, 0x05ad0, 0x02b60, 0x186e3, 0x092e0, 0x1c8d7, 0x0c950,  # 1930
    0x0d4a0, 0x1d8a6, 0x0b550, 0x056a0, 0x1a5b4, 0x025d0, 0x092d0, 0x0d2b2, 0x0a950, 0x0b557,  # 1940
    0x06ca0, 0x0b550, 0x15355, 0x04da0, 0x0a5b0, 0x14573, 0x052b0, 0x0a9a8, 0x0e950, 0x06aa0,  # 1950
    0x0aea6, 0x0ab50, 0x04b60, 0x0aae4, 0x0a570, 0x05260, 0x0f263, 0x0d950, 0x05b57, 0x056a0,  # 1960
    0x096d0, 0x04dd5, 0x04ad0, 0x0a4d0, 0x0d4d4, 0x0d250, 0x0d558, 0x0b540, 0x0b6a0, 0x195a6,  # 1970
    0x095b0, 0x049b0, 0x0a974, 0x0a4b0, 0x0b27a, 0x06a50, 0x06d40, 0x0af46, 0x0ab60, 0x09570,  # 1980
    0x04af5, 0x04970, 0x064b0, 0x074a3, 0x0ea50, 0x06b58, 0x055c0, 0x0ab60, 0x096d5, 0x092e0,  # 1990
    0x0c960, 0x0d954, 0x0d4a0, 0x0da50, 0x07552, 0x056a0, 0x0abb7, 0x025d0, 0x092d0, 0x0cab5,  # 2000
    0x0a950, 0x0b4a0, 0x0baa4, 0x0ad50, 0x055d9, 0x04ba0, 0x0a5b0, 0x15176, 0x052b0, 0x0a930,  # 2010
    0x07954, 0x06aa0, 0x0ad50, 0x05b52, 0x04b60, 0x0a6e6, 0x0a4e0, 0x0d260, 0x0ea65, 0x0d530,  # 2020
    0x05aa0, 0x076a3, 0x096d0, 0x04afb, 0x04ad0, 0x0a4d0, 0x1d0b6, 0x0d250, 0x0d520, 0x0dd45,  # 2030
    0x0b5a0, 0x056d0, 0x055b2, 0x049b0, 0x0a577, 0x0a4b0, 0x0aa50, 0x1b255, 0x06d20, 0x0ada0,  # 2040
    0x14b63, 0x09370, 0x049f8, 0x04970, 0x064b0, 0x168a6, 0x0ea50, 0x06b20, 0x1a6c4, 0x0aae0,  # 2050
    0x0a2e0, 0x0d2e3, 0x0c960, 0x0d557, 0x0d4a0, 0x0da50, 0x05d55, 0x056a0, 0x0a6d0, 0x055d4,  # 2060
    0x052d0, 0x0a9b8, 0x0a950, 0x0b4a0, 0x0b6a6, 0x0ad50, 0x055a0, 0x0aba4, 0x0a5b0, 0x052b0,  # 2070
    0x0b273, 0x06930, 0x07337, 0x06aa0, 0x0ad50, 0x14b55, 0x04b60, 0x0a570, 0x054e4, 0x0d160,  # 2080
    0x0e968, 0x0d520, 0x0daa0, 0x16aa6, 0x056d0, 0x04ae0, 0x0a9d4, 0x0a2d0, 0x0d150, 0x0f252,  # 2090
)

ANCHOR_DATE = date(1900, 1, 31)

LUNAR_MONTHS = ("正", "二", "三", "四", "五", "六", "七", "八", "九", "十", "冬", "腊")
LUNAR_DAYS = (
    "初一", "初二", "初三", "初四", "初五", "初六", "初七", "初八", "初九", "初十",
    "十一", "十二", "十三", "十四", "十五", "十六", "十七", "十八", "十九", "二十",
    "廿一", "廿二", "廿三", "廿四", "廿五", "廿六", "廿七", "廿八", "廿九", "三十",
)
_DIGITS = "〇一二三四五六七八九"


@dataclass(frozen=True)
class LunarDate:
    year: int
    month: int
    day: int
    is_leap: bool
    zodiac: str
    ganzhi: str

    @property
    def year_cn(self) -> str:
        return "".join(_DIGITS[int(c)] for c in str(self.year))

    @property
    def month_cn(self) -> str:
        return ("闰" if self.is_leap else "") + LUNAR_MONTHS[self.month - 1] + "月"

    @property
    def day_cn(self) -> str:
        return LUNAR_DAYS[self.day - 1]

    def __str__(self):
        return f"{self.ganzhi}年 {self.month_cn}{self.day_cn}"

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "is_leap": self.is_leap,
            "zodiac": self.zodiac,
            "ganzhi": self.ganzhi,
            "year_cn": self.year_cn,
            "month_cn": self.month_cn,
            "day_cn": self.day_cn,
        }


# ============================================================
# TABLE ACCESSORS
# ============================================================

def _info(year: int) -> int:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise OutOfRangeError(f"Lunar year {year} is outside the table range {MIN_YEAR}-{MAX_YEAR}")
    return LUNAR_INFO[year - MIN_YEAR]


def leap_month(year: int) -> int:
    """Month followed by a leap month in `year`, 0 if none."""
    return _info(year) & 0xF


def leap_month_days(year: int) -> int:
    """Length of the leap month, 0 if the year has none."""
    if not leap_month(year):
        return 0
    return 30 if _info(year) & 0x10000 else 29


def month_days(year: int, month: int) -> int:
    """Length (29 or 30) of regular month 1-12."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Lunar month must be 1-12, got {month}")
    return 30 if _info(year) & (0x10000 >> month) else 29


@lru_cache(maxsize=None)
def year_days(year: int) -> int:
    """Total days in a lunar year, leap month included."""
    info = _info(year)
    big_months = sum(1 for month in range(1, 13) if info & (0x10000 >> month))
    return 348 + big_months + leap_month_days(year)


def months_of_year(year: int) -> list[tuple]:
    """(month, is_leap, days) for each month of the year in calendar order."""
    leap = leap_month(year)
    months = []
    for month in range(1, 13):
        months.append((month, False, month_days(year, month)))
        if month == leap:
            months.append((month, True, leap_month_days(year)))
    return months


# ============================================================
# CONVERSION
# ============================================================

def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"Expected a date, got {type(value).__name__}")


def _lunar_date(year: int, month: int, day: int, is_leap: bool) -> LunarDate:
    return LunarDate(
        year=year,
        month=month,
        day=day,
        is_leap=is_leap,
        zodiac=ZODIAC_ANIMALS[(year - 4) % 12],
        ganzhi=ganzhi_name((year - 4) % 60),
    )


def solar_to_lunar(value: Union[date, datetime]) -> LunarDate:
    """
    Convert a Gregorian date to the lunar calendar.

    Raises OutOfRangeError before 1900-01-31 or after the last day of
    lunar 2099.
    """
    day = _as_date(value)
    offset = (day - ANCHOR_DATE).days
    if offset < 0:
        raise OutOfRangeError(f"{day} is before the lunar table anchor {ANCHOR_DATE}")

    year = MIN_YEAR
    while True:
        if year > MAX_YEAR:
            raise OutOfRangeError(f"{day} is after the end of lunar year {MAX_YEAR}")
        days = year_days(year)
        if offset < days:
            break
        offset -= days
        year += 1

    for month, is_leap, days in months_of_year(year):
        if offset < days:
            result = _lunar_date(year, month, offset + 1, is_leap)
            logger.debug("solar %s -> lunar %s", day, result)
            return result
        offset -= days

    # year_days() and months_of_year() add up to the same total
    raise AssertionError(f"Lunar month walk overran year {year}")


def lunar_to_solar(year: int, month: int, day: int, is_leap: bool = False) -> date:
    """Convert a lunar date back to the Gregorian calendar."""
    if is_leap and leap_month(year) != month:
        raise ValidationError(f"Lunar year {year} has no leap month {month}")

    offset = sum(year_days(y) for y in range(MIN_YEAR, year))
    for m, leap, days in months_of_year(year):
        if m == month and leap == is_leap:
            if not 1 <= day <= days:
                raise ValidationError(
                    f"Lunar {year}-{'leap ' if is_leap else ''}{month} has {days} days, got day {day}"
                )
            return ANCHOR_DATE + timedelta(days=offset + day - 1)
        offset += days

    raise ValidationError(f"Lunar month must be 1-12, got {month}")
