"""
Shared fixtures.

Every engine call in the tests passes an explicit Settings(), so the
BAZI_* environment of the machine running them has no effect.
"""

from datetime import datetime

import pytest

from ganzhi.chart import generate_chart
from ganzhi.config import Settings


@pytest.fixture(scope="session")
def settings():
    """Default settings: mean solar terms, no timezone detection."""
    return Settings()


@pytest.fixture(scope="session")
def ephemeris_settings():
    return Settings(solar_term_method="ephemeris")


@pytest.fixture(scope="session")
def beijing_chart(settings):
    """
    1990-06-15 12:00 in Beijing, male.

    Corrected to about 11:45 true solar time: 庚午 壬午 辛亥 甲午.
    """
    return generate_chart("张三", "male", datetime(1990, 6, 15, 12, 0), "北京", settings=settings)
