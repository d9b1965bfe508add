"""
True solar time (真太阳时) correction.

The hour pillar follows local apparent solar time, not the civil clock:

    true solar time = clock time + longitude correction + equation of time

China keeps a single zone centred on 120°E, so a birth in Chengdu
(104.07°E) reads about an hour "late" on the clock compared with the sun.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from timezonefinder import TimezoneFinder

from ganzhi.errors import UnknownCityError, ValidationError

logger = logging.getLogger(__name__)

_tf = TimezoneFinder()

STANDARD_MERIDIAN = 120.0  # UTC+8

# Major Chinese cities (lat, lng)
CITY_COORDINATES = {
    "北京": (39.9042, 116.4074),
    "上海": (31.2304, 121.4737),
    "广州": (23.1291, 113.2644),
    "深圳": (22.5431, 114.0579),
    "成都": (30.5728, 104.0668),
    "武汉": (30.5928, 114.3055),
    "西安": (34.3416, 108.9398),
    "南京": (32.0603, 118.7969),
    "杭州": (30.2741, 120.1551),
    "重庆": (29.5630, 106.5516),
    "香港": (22.3193, 114.1694),
    "台北": (25.0330, 121.5654),
    "哈尔滨": (45.8038, 126.5349),
    "乌鲁木齐": (43.8256, 87.6168),
    "拉萨": (29.6548, 91.1406),
}

# Two-hour branch slots, 子 straddling midnight
HOUR_RANGES = (
    "23:00-01:00", "01:00-03:00", "03:00-05:00", "05:00-07:00",
    "07:00-09:00", "09:00-11:00", "11:00-13:00", "13:00-15:00",
    "15:00-17:00", "17:00-19:00", "19:00-21:00", "21:00-23:00",
)


@dataclass(frozen=True)
class SolarTimeCorrection:
    original: datetime
    corrected: datetime
    longitude: Optional[float]
    longitude_minutes: float
    equation_minutes: float
    total_minutes: float
    city: Optional[str] = None
    standard_meridian: float = STANDARD_MERIDIAN

    def to_dict(self) -> dict:
        return {
            "city": self.city,
            "longitude": self.longitude,
            "standard_meridian": self.standard_meridian,
            "longitude_minutes": round(self.longitude_minutes, 2),
            "equation_minutes": round(self.equation_minutes, 2),
            "total_minutes": round(self.total_minutes, 2),
            "original": self.original.isoformat(timespec="minutes"),
            "corrected": self.corrected.isoformat(timespec="minutes"),
        }


@dataclass(frozen=True)
class HourBranchInfo:
    branch_index: int
    hour_range: str
    is_boundary: bool


def longitude_correction(longitude: float, standard_meridian: float = STANDARD_MERIDIAN) -> float:
    """
    Longitude correction in minutes (4 minutes per degree).

    Example:
        Beijing (116.41°E): (116.41 - 120.0) * 4 = -14.4 min
    """
    if not -180.0 <= longitude <= 180.0:
        raise ValidationError(f"Longitude must be within -180..180, got {longitude}")
    return (longitude - standard_meridian) * 4.0


def equation_of_time(instant: datetime) -> float:
    """
    Equation of time in minutes (apparent minus mean solar time).

    E = 9.87 sin(2B) - 7.53 cos(B) - 1.5 sin(B), B = 360/365 * (N - 81) degrees,
    N = day of year.
    """
    n = instant.timetuple().tm_yday
    b = math.radians((360.0 / 365.0) * (n - 81))
    return 9.87 * math.sin(2 * b) - 7.53 * math.cos(b) - 1.5 * math.sin(b)


def correct(instant: datetime, longitude: float,
            standard_meridian: float = STANDARD_MERIDIAN,
            city: Optional[str] = None) -> SolarTimeCorrection:
    """Shift a clock instant to true solar time at `longitude`."""
    lon_minutes = longitude_correction(longitude, standard_meridian)
    eot_minutes = equation_of_time(instant)
    total = lon_minutes + eot_minutes
    corrected = instant + timedelta(minutes=total)
    logger.debug("solar time %s @ %.4f°E -> %s (%+.2f min)", instant, longitude, corrected, total)
    return SolarTimeCorrection(
        original=instant,
        corrected=corrected,
        longitude=longitude,
        longitude_minutes=lon_minutes,
        equation_minutes=eot_minutes,
        total_minutes=total,
        city=city,
        standard_meridian=standard_meridian,
    )


def correct_for_city(instant: datetime, city: str, strict: bool = False) -> SolarTimeCorrection:
    """
    Correct using the city coordinate table.

    An unknown city leaves the instant untouched (zero correction) unless
    strict is set, in which case UnknownCityError is raised.
    """
    coords = CITY_COORDINATES.get(city.strip())
    if coords is None:
        if strict:
            raise UnknownCityError(city)
        logger.info("City %r not in coordinate table; skipping true solar time correction", city)
        return SolarTimeCorrection(
            original=instant,
            corrected=instant,
            longitude=None,
            longitude_minutes=0.0,
            equation_minutes=0.0,
            total_minutes=0.0,
            city=city,
        )
    _, lng = coords
    return correct(instant, lng, city=city)


def correction_warning(correction: SolarTimeCorrection, threshold_minutes: float = 5.0) -> Optional[str]:
    """Signed message for a correction of at least `threshold_minutes`, else None."""
    total = correction.total_minutes
    if abs(total) < threshold_minutes:
        return None
    direction = "later" if total > 0 else "earlier"
    return f"True solar time correction (真太阳时校正): {total:+.1f} min, sun time runs {abs(total):.1f} min {direction} than the clock"


def fractional_hour(instant: datetime) -> float:
    return instant.hour + instant.minute / 60.0 + instant.second / 3600.0


def hour_branch_index(hour: float) -> int:
    """Branch index (子 = 0) of a 0-24 hour: floor((h + 1) / 2) mod 12."""
    return int(math.floor((hour + 1) / 2)) % 12


def hour_branch_info(hour: float) -> HourBranchInfo:
    """
    Branch slot of a (corrected) hour, flagged when it sits within half an
    hour of a slot edge.
    """
    index = hour_branch_index(hour)
    position = (hour + 1) % 2  # hours into the current two-hour slot
    is_boundary = position < 0.5 or position > 1.5
    return HourBranchInfo(index, HOUR_RANGES[index], is_boundary)


def timezone_for(latitude: float, longitude: float) -> ZoneInfo:
    """IANA zone covering (latitude, longitude)."""
    tz_name = _tf.timezone_at(lat=latitude, lng=longitude)
    if tz_name is None:
        raise ValidationError(f"Could not determine timezone for ({latitude}, {longitude})")
    return ZoneInfo(tz_name)


def standard_meridian_for(latitude: float, longitude: float, when: datetime) -> float:
    """
    Standard meridian of the zone covering (latitude, longitude) at `when`.

    Uses the zone's standard offset, so daylight saving time (e.g. China
    1986-1991) is stripped before the solar correction.
    """
    local_dt = when.replace(tzinfo=timezone_for(latitude, longitude))
    offset_hours = local_dt.utcoffset().total_seconds() / 3600
    dst = local_dt.dst()
    if dst is not None and dst.total_seconds() > 0:
        offset_hours -= dst.total_seconds() / 3600
    return offset_hours * 15.0
