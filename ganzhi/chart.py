"""
BaZi (Four Pillars of Destiny) chart engine.

Handles:
- Gregorian instant to the four pillars (true solar time, solar-term
  boundaries, day counting, five-rat hour stems)
- Ten Gods of every visible and hidden stem
- Life stage of the Day Master on each pillar branch
- Element tally, weighted distribution and strength verdict
- Luck cycle (大运) projection
- Precision warnings and deity annotations

This module COMPUTES and FLAGS. It does not interpret.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from ganzhi.config import Settings, check_year, get_settings
from ganzhi.deities import get_all_deities
from ganzhi.errors import ValidationError
from ganzhi.solar_terms import (
    is_near_solar_term,
    month_branch_index,
    month_stem_index,
    year_pillar_indices,
)
from ganzhi.solar_time import (
    STANDARD_MERIDIAN,
    SolarTimeCorrection,
    correct,
    correct_for_city,
    correction_warning,
    fractional_hour,
    hour_branch_index,
    hour_branch_info,
    standard_meridian_for,
    timezone_for,
)
from ganzhi.tables import (
    STEM_BY_CHINESE,
    EarthlyBranch,
    Element,
    HeavenlyStem,
    Polarity,
    Relation,
    TenGod,
    branch_at,
    element_for,
    life_stage,
    stem_at,
    ten_god,
)

logger = logging.getLogger(__name__)

POSITIONS = ("year", "month", "day", "hour")

DAY_EPOCH = date(1900, 1, 1)  # 甲戌 day, offset 10 in the sixty-cycle
DAY_EPOCH_OFFSET = 10

STRENGTH_THRESHOLD = 25
SAME_ELEMENT_WEIGHT = 10
RESOURCE_ELEMENT_WEIGHT = 8

LUCK_CYCLE_COUNT = 8
LUCK_CYCLE_SPAN = 10

HIDDEN_WEIGHTS = (0.7, 0.5, 0.3)

CST = timezone(timedelta(hours=8))


# ============================================================
# REQUEST AND RESULT TYPES
# ============================================================

class Gender(Enum):
    MALE = "male"
    FEMALE = "female"

    @property
    def chinese(self) -> str:
        return "乾造" if self is Gender.MALE else "坤造"


_GENDER_ALIASES = {
    "male": Gender.MALE, "m": Gender.MALE, "男": Gender.MALE,
    "female": Gender.FEMALE, "f": Gender.FEMALE, "女": Gender.FEMALE,
}


def parse_gender(value: Union[Gender, str]) -> Gender:
    if isinstance(value, Gender):
        return value
    if isinstance(value, str):
        gender = _GENDER_ALIASES.get(value.strip().lower())
        if gender is not None:
            return gender
    raise ValidationError(f"Gender must be 'male' or 'female', got {value!r}")


@dataclass(frozen=True)
class Location:
    """Birth place: a known city name, explicit coordinates, or both."""
    city: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None


class Verdict(Enum):
    DOMINANT = "身强"
    WEAK = "身弱"
    # Declared outcomes the scoring rule does not currently produce.
    DEPENDENT = "从格"
    BALANCED = "中和"


@dataclass(frozen=True)
class Strength:
    verdict: Verdict
    score: int
    favorable: tuple
    unfavorable: tuple

    def to_dict(self) -> dict:
        return {
            "verdict": self.verdict.value,
            "score": self.score,
            "favorable": [e.value for e in self.favorable],
            "unfavorable": [e.value for e in self.unfavorable],
        }


@dataclass(frozen=True)
class Pillar:
    stem: HeavenlyStem
    branch: EarthlyBranch
    position: str  # "year", "month", "day", "hour"
    ten_god: TenGod
    hidden_gods: tuple  # TenGod per hidden stem, main qi first
    life_stage: str

    @property
    def ganzhi(self) -> str:
        return self.stem.chinese + self.branch.chinese

    def __str__(self):
        return f"{self.ganzhi} {self.stem.pinyin} {self.branch.pinyin} ({self.stem.polarity.value} {self.stem.element.value} {self.branch.animal})"

    def to_dict(self):
        return {
            "position": self.position,
            "ganzhi": self.ganzhi,
            "stem": {
                "chinese": self.stem.chinese,
                "pinyin": self.stem.pinyin,
                "element": self.stem.element.value,
                "polarity": self.stem.polarity.value,
            },
            "branch": {
                "chinese": self.branch.chinese,
                "pinyin": self.branch.pinyin,
                "animal": self.branch.animal,
                "zodiac": self.branch.zodiac,
                "element": self.branch.element.value,
                "polarity": self.branch.polarity.value,
                "hidden_stems": list(self.branch.hidden_stems),
            },
            "ten_god": self.ten_god.value,
            "hidden_gods": [g.value for g in self.hidden_gods],
            "life_stage": self.life_stage,
            "description": str(self),
        }


@dataclass(frozen=True)
class LuckCycle:
    start_age: int
    stem: HeavenlyStem
    branch: EarthlyBranch
    ten_god: TenGod

    @property
    def end_age(self) -> int:
        return self.start_age + LUCK_CYCLE_SPAN - 1

    def to_dict(self) -> dict:
        return {
            "start_age": self.start_age,
            "end_age": self.end_age,
            "ganzhi": self.stem.chinese + self.branch.chinese,
            "stem": self.stem.chinese,
            "stem_element": self.stem.element.value,
            "branch": self.branch.chinese,
            "branch_animal": self.branch.animal,
            "ten_god": self.ten_god.value,
        }


@dataclass(frozen=True)
class ChartWarning:
    kind: str  # "solar_time", "solar_term_boundary", "hour_boundary"
    message: str
    detail: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "detail": self.detail}


@dataclass(frozen=True)
class Chart:
    id: str
    created_at: datetime
    name: str
    gender: Gender
    birth: datetime
    corrected: datetime
    solar_time: Optional[SolarTimeCorrection]
    year_pillar: Pillar
    month_pillar: Pillar
    day_pillar: Pillar
    hour_pillar: Pillar
    element_counts: dict
    element_distribution: dict
    strength: Strength
    luck_cycles: tuple
    warnings: tuple = ()
    deities: tuple = ()

    @property
    def pillars(self) -> tuple:
        return (self.year_pillar, self.month_pillar, self.day_pillar, self.hour_pillar)

    @property
    def day_master(self) -> HeavenlyStem:
        return self.day_pillar.stem

    def to_dict(self) -> dict:
        dm = self.day_master
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(timespec="seconds"),
            "name": self.name,
            "gender": self.gender.value,
            "birth": self.birth.isoformat(timespec="minutes"),
            "corrected": self.corrected.isoformat(timespec="minutes"),
            "solar_time": self.solar_time.to_dict() if self.solar_time else None,
            "day_master": {
                "chinese": dm.chinese,
                "pinyin": dm.pinyin,
                "element": dm.element.value,
                "polarity": dm.polarity.value,
                "description": str(dm),
            },
            "pillars": {p.position: p.to_dict() for p in self.pillars},
            "ten_gods": map_ten_gods(dm, self.pillars),
            "element_counts": {e.value: n for e, n in self.element_counts.items()},
            "element_distribution": self.element_distribution,
            "strength": self.strength.to_dict(),
            "luck_cycles": [lc.to_dict() for lc in self.luck_cycles],
            "warnings": [w.to_dict() for w in self.warnings],
            "deities": [d.to_dict() for d in self.deities],
        }


# ============================================================
# INPUT PARSING
# ============================================================

def _coerce_birth(value: Union[datetime, date, str]) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"Invalid birth date/time: {value!r}") from None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise ValidationError(f"Birth must be a datetime or ISO string, got {type(value).__name__}")


def parse_birth(value: Union[datetime, date, str]) -> datetime:
    """
    Normalize a birth instant to a naive China Standard Time datetime.

    Accepts a datetime (aware values are converted to UTC+8), a date
    (midnight) or an ISO 8601 string. Raises ValidationError for anything
    unparseable and OutOfRangeError outside 1900-2099.
    """
    value = _coerce_birth(value)
    if value.tzinfo is not None:
        value = value.astimezone(CST).replace(tzinfo=None)
    check_year(value.year)
    return value


# ============================================================
# PILLAR RESOLUTION
# ============================================================

def day_offset(day: Union[date, datetime]) -> int:
    """Sixty-cycle position (0 = 甲子) of a civil date."""
    if isinstance(day, datetime):
        day = day.date()
    return ((day - DAY_EPOCH).days + DAY_EPOCH_OFFSET) % 60


def year_pillar(instant: datetime, settings: Optional[Settings] = None) -> tuple:
    """(stem, branch) of the year pillar; the year turns at 立春."""
    s, b = year_pillar_indices(instant, settings=settings)
    return stem_at(s), branch_at(b)


def month_pillar(instant: datetime, settings: Optional[Settings] = None) -> tuple:
    """
    (stem, branch) of the month pillar.

    The branch comes from the entry term in force, the stem from the year
    stem by the Five Tigers rule.
    """
    year_stem, _ = year_pillar_indices(instant, settings=settings)
    branch = month_branch_index(instant, settings=settings)
    return stem_at(month_stem_index(year_stem, branch)), branch_at(branch)


def day_pillar(day: Union[date, datetime]) -> tuple:
    """(stem, branch) of the day pillar."""
    offset = day_offset(day)
    return stem_at(offset), branch_at(offset)


def hour_pillar(day_stem_index: int, hour: float) -> tuple:
    """
    (stem, branch) of the hour pillar.

    Five Rats rule: the 子 hour of a 甲/己 day is 甲子, of 乙/庚 丙子,
    of 丙/辛 戊子, of 丁/壬 庚子, of 戊/癸 壬子.
    """
    branch = hour_branch_index(hour)
    stem = ((day_stem_index % 5) * 2 + branch) % 10
    return stem_at(stem), branch_at(branch)


def four_pillars(instant: datetime, settings: Optional[Settings] = None) -> dict:
    """
    Raw (stem, branch) pairs for an already-corrected instant, keyed by
    position. No Day Master analysis.
    """
    day = day_pillar(instant)
    return dict(zip(POSITIONS, (
        year_pillar(instant, settings),
        month_pillar(instant, settings),
        day,
        hour_pillar(day[0].index, fractional_hour(instant)),
    )))


def build_pillar(stem: HeavenlyStem, branch: EarthlyBranch, position: str,
                 day_master: HeavenlyStem) -> Pillar:
    return Pillar(
        stem=stem,
        branch=branch,
        position=position,
        ten_god=ten_god(day_master, stem),
        hidden_gods=tuple(ten_god(day_master, h) for h in branch.hidden_stems),
        life_stage=life_stage(day_master, branch),
    )


# ============================================================
# TEN GODS AND ELEMENTS
# ============================================================

def map_ten_gods(day_master: HeavenlyStem, pillars) -> list[dict]:
    """
    Map Ten Gods for all visible stems in the chart.
    Also maps hidden stems within each branch.

    Returns list of dicts with position, stem, ten_god, and hidden_stem_gods.
    """
    results = []
    for pillar in pillars:
        hidden_gods = []
        for hidden_char in pillar.branch.hidden_stems:
            hidden_stem = STEM_BY_CHINESE[hidden_char]
            hidden_gods.append({
                "stem": hidden_char,
                "element": hidden_stem.element.value,
                "polarity": hidden_stem.polarity.value,
                "ten_god": ten_god(day_master, hidden_stem).value,
            })

        results.append({
            "position": pillar.position,
            "stem": pillar.stem.chinese,
            "ten_god": ten_god(day_master, pillar.stem).value,
            "is_day_master": pillar.position == "day",
            "branch": pillar.branch.chinese,
            "branch_animal": pillar.branch.animal,
            "hidden_stem_gods": hidden_gods,
        })

    return results


def element_counts(pillars) -> dict:
    """Occurrences of each element over the 8 stem/branch slots."""
    counts = {e: 0 for e in Element}
    for pillar in pillars:
        counts[pillar.stem.element] += 1
        counts[pillar.branch.element] += 1
    return counts


def element_distribution(pillars, include_hidden: bool = True) -> dict:
    """
    Element presence weighted by position:
    - Visible stems: weight 1.0
    - Main qi (hidden stem 1): weight 0.7
    - Middle qi (hidden stem 2): weight 0.5
    - Residual qi (hidden stem 3): weight 0.3
    """
    distribution = {e.value: 0.0 for e in Element}

    for pillar in pillars:
        distribution[pillar.stem.element.value] += 1.0

        if include_hidden:
            for idx, hidden_char in enumerate(pillar.branch.hidden_stems):
                hidden_stem = STEM_BY_CHINESE[hidden_char]
                distribution[hidden_stem.element.value] += HIDDEN_WEIGHTS[idx]

    return {k: round(v, 2) for k, v in distribution.items()}


def determine_strength(counts: dict, day_master_element: Element) -> Strength:
    """
    Strength verdict from the element tally.

    score = 10 x (Day Master element count) + 8 x (resource element count).
    Above 25 the Day Master is dominant and wants output and wealth drained
    from it; otherwise it is weak and wants companions and resource.
    """
    resource = element_for(Relation.GENERATES_ME, day_master_element)
    score = (SAME_ELEMENT_WEIGHT * counts.get(day_master_element, 0)
             + RESOURCE_ELEMENT_WEIGHT * counts.get(resource, 0))

    if score > STRENGTH_THRESHOLD:
        return Strength(
            verdict=Verdict.DOMINANT,
            score=score,
            favorable=(element_for(Relation.I_GENERATE, day_master_element),
                       element_for(Relation.I_CONTROL, day_master_element)),
            unfavorable=(day_master_element, resource),
        )
    return Strength(
        verdict=Verdict.WEAK,
        score=score,
        favorable=(day_master_element, resource),
        unfavorable=(element_for(Relation.I_CONTROL, day_master_element),
                     element_for(Relation.CONTROLS_ME, day_master_element)),
    )


# ============================================================
# LUCK CYCLES
# ============================================================

def luck_runs_forward(gender: Gender, year_stem: HeavenlyStem) -> bool:
    """Yang year + male or yin year + female count forward."""
    yang = year_stem.polarity is Polarity.YANG
    return (yang and gender is Gender.MALE) or (not yang and gender is Gender.FEMALE)


def compute_luck_cycles(month_stem: HeavenlyStem, month_branch: EarthlyBranch,
                        gender: Gender, year_stem: HeavenlyStem,
                        day_master: HeavenlyStem) -> list[LuckCycle]:
    """
    Luck cycles (大运) stepped one pillar per decade from the month pillar.

    Start ages are fixed at 10, 20, ... 80.
    """
    step = 1 if luck_runs_forward(gender, year_stem) else -1

    cycles = []
    for i in range(1, LUCK_CYCLE_COUNT + 1):
        stem = stem_at(month_stem.index + step * i)
        branch = branch_at(month_branch.index + step * i)
        cycles.append(LuckCycle(
            start_age=i * LUCK_CYCLE_SPAN,
            stem=stem,
            branch=branch,
            ten_god=ten_god(day_master, stem),
        ))
    return cycles


# ============================================================
# SOLAR TIME
# ============================================================

def _resolve_location(location: Union[Location, str]) -> Location:
    if isinstance(location, str):
        return Location(city=location)
    if isinstance(location, Location):
        if location.city is None and location.longitude is None:
            raise ValidationError("Location needs a city or a longitude")
        return location
    raise ValidationError(f"Location must be a city name or Location, got {type(location).__name__}")


def apply_solar_time(instant: datetime, location: Union[Location, str, None],
                     strict_city: bool, settings: Settings,
                     zone_aware: bool = False) -> Optional[SolarTimeCorrection]:
    """
    True solar time for a birth place, or None when no place is given.

    Explicit coordinates win over the city table. With timezone detection
    on, a birth given as an aware datetime (`zone_aware`) is first moved
    from UTC+8 to the wall clock of the detected zone, so the correction
    starts from that zone's meridian and the same clock.
    """
    if location is None:
        return None
    loc = _resolve_location(location)

    if loc.longitude is not None:
        meridian = STANDARD_MERIDIAN
        if settings.detect_timezone and loc.latitude is not None:
            if zone_aware:
                zone = timezone_for(loc.latitude, loc.longitude)
                instant = instant.replace(tzinfo=CST).astimezone(zone).replace(tzinfo=None)
            meridian = standard_meridian_for(loc.latitude, loc.longitude, instant)
        return correct(instant, loc.longitude, standard_meridian=meridian, city=loc.city)
    return correct_for_city(instant, loc.city, strict=strict_city)


def _collect_warnings(correction: Optional[SolarTimeCorrection], corrected: datetime,
                      settings: Settings) -> list[ChartWarning]:
    warnings = []

    if correction is not None:
        message = correction_warning(correction, settings.solar_time_warn_minutes)
        if message:
            warnings.append(ChartWarning(
                "solar_time", message, {"total_minutes": round(correction.total_minutes, 2)},
            ))

    proximity = is_near_solar_term(corrected, settings.term_tolerance_days, settings=settings)
    if proximity.is_near:
        warnings.append(ChartWarning(
            "solar_term_boundary",
            f"Within {abs(proximity.days_to_term)} days of {proximity.term} (节气交接期); "
            "the month pillar may be off",
            {"term": proximity.term, "days_to_term": proximity.days_to_term},
        ))

    info = hour_branch_info(fractional_hour(corrected))
    if info.is_boundary:
        warnings.append(ChartWarning(
            "hour_boundary",
            f"Birth time sits near the edge of the {info.hour_range} slot (时辰边界); "
            "the hour pillar may be off",
            {"hour_range": info.hour_range, "branch_index": info.branch_index},
        ))

    return warnings


# ============================================================
# FULL CHART COMPUTATION
# ============================================================

def generate_chart(name: str, gender: Union[Gender, str], birth: Union[datetime, date, str],
                   location: Union[Location, str, None] = None, *,
                   strict_city: Optional[bool] = None,
                   settings: Optional[Settings] = None) -> Chart:
    """
    Compute a full BaZi chart.

    Args:
        name: person's name
        gender: Gender or "male"/"female"
        birth: birth instant in China Standard Time (datetime or ISO string);
            aware values are converted, to the birth place's zone when
            timezone detection applies
        location: city name, Location, or None for no solar time correction
        strict_city: raise UnknownCityError for a city outside the table
            (defaults to the configured value)
        settings: explicit settings (defaults to get_settings())

    Returns:
        Chart, deterministic for identical inputs apart from id and created_at.
    """
    if not isinstance(name, str):
        raise ValidationError(f"Name must be a string, got {type(name).__name__}")
    settings = settings or get_settings()
    strict = settings.strict_city if strict_city is None else strict_city
    gender = parse_gender(gender)
    birth = _coerce_birth(birth)
    zone_aware = birth.tzinfo is not None
    birth = parse_birth(birth)

    correction = apply_solar_time(birth, location, strict, settings, zone_aware)
    corrected = correction.corrected if correction else birth
    logger.debug("chart for %r: birth %s corrected %s", name, birth, corrected)

    raw = four_pillars(corrected, settings)
    day_master = raw["day"][0]
    pillars = [build_pillar(stem, branch, position, day_master)
               for position, (stem, branch) in raw.items()]
    year_p, month_p, day_p, hour_p = pillars
    logger.debug("pillars: %s", " ".join(p.ganzhi for p in pillars))

    counts = element_counts(pillars)
    deities = get_all_deities(
        day_master,
        year_p.branch,
        [(p.stem, p.branch) for p in pillars],
        month_branch=month_p.branch,
    )

    return Chart(
        id=uuid.uuid4().hex,
        created_at=datetime.now(),
        name=name.strip(),
        gender=gender,
        birth=birth,
        corrected=corrected,
        solar_time=correction,
        year_pillar=year_p,
        month_pillar=month_p,
        day_pillar=day_p,
        hour_pillar=hour_p,
        element_counts=counts,
        element_distribution=element_distribution(pillars),
        strength=determine_strength(counts, day_master.element),
        luck_cycles=tuple(compute_luck_cycles(
            month_p.stem, month_p.branch, gender, year_p.stem, day_master,
        )),
        warnings=tuple(_collect_warnings(correction, corrected, settings)),
        deities=tuple(deities),
    )
