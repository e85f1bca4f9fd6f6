"""Public holiday lookups used by the vacation score."""

from datetime import date, timedelta
from functools import lru_cache
from typing import Protocol


class HolidayResolver(Protocol):
    """Tells whether a calendar date is a public holiday."""

    def is_holiday(self, day: date) -> bool:
        """True if ``day`` is a holiday."""
        ...


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous Gregorian algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


@lru_cache(maxsize=64)
def german_federal_holidays(year: int) -> dict[date, str]:
    """German nationwide public holidays of a year."""
    easter = easter_sunday(year)
    return {
        date(year, 1, 1): "Neujahr",
        easter - timedelta(days=2): "Karfreitag",
        easter + timedelta(days=1): "Ostermontag",
        date(year, 5, 1): "Tag der Arbeit",
        easter + timedelta(days=39): "Christi Himmelfahrt",
        easter + timedelta(days=50): "Pfingstmontag",
        date(year, 10, 3): "Tag der Deutschen Einheit",
        date(year, 12, 25): "1. Weihnachtstag",
        date(year, 12, 26): "2. Weihnachtstag",
    }


class GermanFederalHolidayResolver:
    """Holiday resolver for German federal holidays."""

    def is_holiday(self, day: date) -> bool:
        """Check ``day`` against the federal holiday calendar."""
        return day in german_federal_holidays(day.year)

    def holiday_name(self, day: date) -> str | None:
        """Name of the holiday on ``day``, if any."""
        return german_federal_holidays(day.year).get(day)


class NoHolidayResolver:
    """Resolver that knows no holidays."""

    def is_holiday(self, day: date) -> bool:  # noqa: ARG002
        """Always False."""
        return False
