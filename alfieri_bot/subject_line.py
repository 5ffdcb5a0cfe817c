"""Subject line parsing: the date range covered by a newsletter."""

import re

from .calendar_utils import MONTHS_IT, make_date, month_name_to_number
from .errors import SemanticError
from .models import BoundaryPair

MONTH_PATTERN = "|".join(MONTHS_IT)
SUBJECT_TOKEN_REGEX = re.compile(
    rf"(?P<day>(?<!\d)\d{{1,2}}(?!\d))|(?P<month>\b(?:{MONTH_PATTERN})\b)",
    re.IGNORECASE,
)


def tokenize_subject(subject_line: str) -> list[tuple[str, str]]:
    """Extract ``("day", "25")`` and ``("month", "settembre")`` tokens.

    Everything that is neither a 1-2 digit number nor an Italian month name
    is ignored.
    """
    return [
        (match.lastgroup, match.group(match.lastgroup))
        for match in SUBJECT_TOKEN_REGEX.finditer(subject_line)
    ]


def resolve_boundaries(subject_line: str, year: int) -> BoundaryPair:
    """Parse a subject like ``programmazione 25 settembre > 2 ottobre``.

    Args:
        subject_line: Raw email subject
        year: Year the first date belongs to

    Returns:
        BoundaryPair from midnight of the first date to 23:59:59 of the second

    Raises:
        SemanticError: If the subject does not contain exactly two day numbers
            and one or two correctly placed month names
    """
    day_numbers: list[int] = []
    months: list[int] = []

    for kind, value in tokenize_subject(subject_line):
        if kind == "day":
            day_numbers.append(int(value))
            continue

        month = month_name_to_number(value)
        if not day_numbers or len(day_numbers) > 2:
            raise SemanticError(
                f"Unexpected `month` input '{value}' with invalid day numbers: {day_numbers}"
            )
        months.append(month)

    if len(day_numbers) != 2:
        raise SemanticError(
            f"Expected two day numbers in subject line, got {len(day_numbers)}"
        )

    if not months or len(months) > 2:
        raise SemanticError(
            f"Expected one or two month names in subject line, got {len(months)}"
        )

    if len(months) == 1:
        months.append(months[0])

    lower = make_date(year, months[0], day_numbers[0])
    upper = make_date(year, months[1], day_numbers[1])

    # Year crossover, e.g. 27 dicembre > 3 gennaio
    if upper < lower:
        upper = make_date(year + 1, months[1], day_numbers[1])

    upper = make_date(upper.year, upper.month, upper.day, 23, 59, 59)

    return BoundaryPair(lower=lower, upper=upper)
