"""Italian calendar helpers anchored to the Europe/Rome timezone."""

from datetime import datetime

from dateutil import tz

from .errors import SemanticError

ROME = tz.gettz("Europe/Rome")

MONTHS_IT = {
    "gennaio": 1,
    "febbraio": 2,
    "marzo": 3,
    "aprile": 4,
    "maggio": 5,
    "giugno": 6,
    "luglio": 7,
    "agosto": 8,
    "settembre": 9,
    "ottobre": 10,
    "novembre": 11,
    "dicembre": 12,
}


def month_name_to_number(name: str) -> int:
    """Map an Italian month name to its number (1-12)."""
    month = MONTHS_IT.get(name.strip().lower())
    if month is None:
        raise SemanticError(f"Encountered invalid month: '{name}'")
    return month


def make_date(
    year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0
) -> datetime:
    """Build a Europe/Rome datetime, rejecting impossible calendar values."""
    try:
        date = datetime(year, month, day, hour, minute, second, tzinfo=ROME)
    except ValueError as e:
        raise SemanticError(
            f"Unable to get valid date for y-m-d = {year}-{month}-{day} "
            f"{hour:02d}:{minute:02d}:{second:02d}: {e}"
        ) from e

    # Wall-clock times skipped by the spring DST change
    if not tz.datetime_exists(date):
        raise SemanticError(f"Local time {date.isoformat()} does not exist in Europe/Rome")

    return date


def current_year() -> int:
    return datetime.now(ROME).year
