"""Four Pillars (BaZi) chart, lunar calendar and almanac computation."""

__version__ = "0.1.0"
