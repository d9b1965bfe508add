"""
CLI wrapper around the chart, almanac and lunar calendar engines.

Usage:
    python3 -m ganzhi.run chart --name NAME --birth-date YYYY-MM-DD --birth-time HH:MM \
        --gender GENDER [--city CITY | --longitude LON [--latitude LAT]] \
        [--strict-city] [--section SECTION] [--output PATH]
    python3 -m ganzhi.run almanac --date YYYY-MM-DD
    python3 -m ganzhi.run lunar --date YYYY-MM-DD
    python3 -m ganzhi.run lunar --lunar-date YYYY-MM-DD [--leap]

Global options (before the sub-command):
    --log-level LEVEL             overrides BAZI_LOG_LEVEL
    --solar-term-method METHOD    overrides BAZI_SOLAR_TERM_METHOD
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from ganzhi.chart import Location, generate_chart
from ganzhi.config import LOG_LEVELS, SOLAR_TERM_METHODS, get_settings
from ganzhi.digest import REPORT_SECTIONS, build_narrative_request, format_chart_digest
from ganzhi.errors import GanzhiError, ValidationError
from ganzhi.huangli import almanac_day
from ganzhi.lunar import lunar_to_solar, solar_to_lunar

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


def _location(args):
    if args.longitude is not None:
        return Location(city=args.city, longitude=args.longitude, latitude=args.latitude)
    if args.city:
        return args.city
    return None


def cmd_chart(args, settings) -> dict:
    chart = generate_chart(
        name=args.name,
        gender=args.gender,
        birth=f"{args.birth_date}T{args.birth_time}",
        location=_location(args),
        strict_city=args.strict_city or None,
        settings=settings,
    )
    result = chart.to_dict()
    result["digest"] = format_chart_digest(chart)
    if args.section:
        result["narrative_request"] = build_narrative_request(chart, args.section).to_dict()
    return result


def cmd_almanac(args, settings) -> dict:
    return almanac_day(_parse_date(args.date), settings=settings).to_dict()


def cmd_lunar(args, settings) -> dict:
    if args.lunar_date:
        y, m, d = _parse_lunar_triple(args.lunar_date)
        solar = lunar_to_solar(y, m, d, is_leap=args.leap)
        return {"solar": solar.isoformat(), "lunar": solar_to_lunar(solar).to_dict()}
    day = _parse_date(args.date)
    return {"solar": day.isoformat(), "lunar": solar_to_lunar(day).to_dict()}


def _parse_lunar_triple(value: str) -> tuple:
    # Lunar dates can have day 30 in months Gregorian parsing would reject
    try:
        y, m, d = (int(part) for part in value.split("-"))
    except ValueError:
        raise ValidationError(f"Invalid lunar date {value!r}, expected YYYY-MM-DD") from None
    return y, m, d


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ganzhi",
        description="Four Pillars charts, almanac days and lunar dates as JSON.",
    )
    parser.add_argument("--log-level", dest="log_level", default=None,
                        type=str.upper, choices=LOG_LEVELS)
    parser.add_argument("--solar-term-method", dest="solar_term_method", default=None,
                        choices=SOLAR_TERM_METHODS)
    sub = parser.add_subparsers(dest="command", required=True)

    chart = sub.add_parser("chart", help="Compute a Four Pillars chart.")
    chart.add_argument("--name", required=True)
    chart.add_argument("--birth-date", required=True, dest="birth_date")
    chart.add_argument("--birth-time", required=True, dest="birth_time")
    chart.add_argument("--gender", required=True, choices=["male", "female"])
    chart.add_argument("--city", default=None)
    chart.add_argument("--longitude", type=float, default=None)
    chart.add_argument("--latitude", type=float, default=None)
    chart.add_argument("--strict-city", dest="strict_city", action="store_true")
    chart.add_argument("--section", default=None, choices=list(REPORT_SECTIONS))
    chart.add_argument("--output", default=None, help="Also write the JSON to this file.")
    chart.set_defaults(handler=cmd_chart)

    almanac = sub.add_parser("almanac", help="Almanac facts for one day.")
    almanac.add_argument("--date", required=True)
    almanac.set_defaults(handler=cmd_almanac)

    lunar = sub.add_parser("lunar", help="Convert between Gregorian and lunar dates.")
    group = lunar.add_mutually_exclusive_group(required=True)
    group.add_argument("--date", help="Gregorian date to convert")
    group.add_argument("--lunar-date", dest="lunar_date", help="Lunar YYYY-MM-DD to convert back")
    lunar.add_argument("--leap", action="store_true", help="The lunar month is the leap month")
    lunar.set_defaults(handler=cmd_lunar)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
        overrides = {}
        if args.log_level:
            overrides["log_level"] = args.log_level
        if args.solar_term_method:
            overrides["solar_term_method"] = args.solar_term_method
        if overrides:
            settings = settings.with_overrides(**overrides)

        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        result = args.handler(args, settings)
    except GanzhiError as e:
        logger.debug("command %s failed", args.command, exc_info=True)
        parser.exit(2, f"error: {e}\n")

    output = json.dumps(result, indent=2, ensure_ascii=False)
    if getattr(args, "output", None):
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(output + "\n", encoding="utf-8")
    print(output)


if __name__ == "__main__":
    sys.exit(main())
