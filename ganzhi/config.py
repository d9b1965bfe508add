"""
Runtime settings, read from environment variables.

    BAZI_SOLAR_TERM_METHOD        mean | ephemeris        (default: mean)
    BAZI_TERM_TOLERANCE_DAYS      float                   (default: 3)
    BAZI_SOLAR_TIME_WARN_MINUTES  float                   (default: 5)
    BAZI_STRICT_CITY              true/false              (default: false)
    BAZI_DETECT_TIMEZONE          true/false              (default: false)
    BAZI_EPHE_PATH                Swiss Ephemeris data directory
    BAZI_LOG_LEVEL                logging level name      (default: WARNING)

Every engine entry point also takes an explicit ``settings=`` argument, so
the environment is only a default.
"""

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

from ganzhi.errors import OutOfRangeError, ValidationError

SOLAR_TERM_METHODS = ("mean", "ephemeris")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Coverage of the lunar bitmask table; charts are held to the same window.
MIN_YEAR = 1900
MAX_YEAR = 2099

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    solar_term_method: str = "mean"
    term_tolerance_days: float = 3.0
    solar_time_warn_minutes: float = 5.0
    strict_city: bool = False
    detect_timezone: bool = False
    ephe_path: str = str(Path(__file__).parent.parent / "ephe")
    log_level: str = "WARNING"

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with some fields replaced (validated again)."""
        updated = replace(self, **changes)
        _validate(updated)
        return updated


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValidationError(f"{name} must be a boolean, got {raw!r}")


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from None


def _validate(settings: Settings) -> None:
    if settings.solar_term_method not in SOLAR_TERM_METHODS:
        raise ValidationError(
            f"solar_term_method must be one of {SOLAR_TERM_METHODS}, "
            f"got {settings.solar_term_method!r}"
        )
    if settings.term_tolerance_days < 0:
        raise ValidationError("term_tolerance_days must not be negative")
    if settings.solar_time_warn_minutes < 0:
        raise ValidationError("solar_time_warn_minutes must not be negative")
    if settings.log_level not in LOG_LEVELS:
        raise ValidationError(f"log_level must be one of {LOG_LEVELS}, got {settings.log_level!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from an environment mapping (os.environ by default)."""
    env = os.environ if environ is None else environ
    defaults = Settings()

    settings = Settings(
        solar_term_method=env.get("BAZI_SOLAR_TERM_METHOD", defaults.solar_term_method).strip().lower(),
        term_tolerance_days=_parse_float(
            "BAZI_TERM_TOLERANCE_DAYS",
            env.get("BAZI_TERM_TOLERANCE_DAYS", str(defaults.term_tolerance_days)),
        ),
        solar_time_warn_minutes=_parse_float(
            "BAZI_SOLAR_TIME_WARN_MINUTES",
            env.get("BAZI_SOLAR_TIME_WARN_MINUTES", str(defaults.solar_time_warn_minutes)),
        ),
        strict_city=_parse_bool("BAZI_STRICT_CITY", env.get("BAZI_STRICT_CITY", "false")),
        detect_timezone=_parse_bool("BAZI_DETECT_TIMEZONE", env.get("BAZI_DETECT_TIMEZONE", "false")),
        ephe_path=env.get("BAZI_EPHE_PATH", defaults.ephe_path),
        log_level=env.get("BAZI_LOG_LEVEL", defaults.log_level).strip().upper(),
    )
    _validate(settings)
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from os.environ on first use."""
    return load_settings()


def check_year(year: int) -> None:
    """Raise OutOfRangeError unless MIN_YEAR <= year <= MAX_YEAR."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise OutOfRangeError(f"Year {year} is outside the supported range {MIN_YEAR}-{MAX_YEAR}")
