"""Month disambiguation and timestamp construction for date entry tokens."""

from dataclasses import dataclass
from datetime import datetime

from .calendar_utils import make_date
from .errors import GrammarError, NewsletterParseError, SemanticError
from .models import BoundaryPair, DateEntry, DateEntryToken


@dataclass(frozen=True)
class Resolved:
    entries: tuple[DateEntry, ...]


@dataclass(frozen=True)
class Deferred:
    token: DateEntryToken


class DateEntryResolver:
    """Turns date entry tokens into timestamps inside a boundary pair.

    Day-only tokens are tried against the month of the lower boundary first,
    then against the month of the upper boundary. Tokens that fit neither are
    deferred and retried once after every other token has been resolved.
    """

    def __init__(self, boundaries: BoundaryPair):
        self.boundaries = boundaries

    def resolve(self, tokens: list[DateEntryToken]) -> list[DateEntry]:
        """Resolve all tokens of a schedule box.

        Raises:
            GrammarError: If a token has no day number or no times
            SemanticError: If a date cannot be placed inside the boundaries
        """
        entries: list[DateEntry] = []
        deferred: list[DateEntryToken] = []

        for token in tokens:
            result = self.resolve_token(token)
            if isinstance(result, Resolved):
                entries.extend(result.entries)
            else:
                deferred.append(result.token)

        for token in deferred:
            result = self.resolve_token(token)
            if isinstance(result, Deferred):
                raise SemanticError(
                    f"Unable to parse month from input: '{token.raw}' "
                    f"(day {token.day} is outside {self._bounds_str()})"
                )
            entries.extend(result.entries)

        return entries

    def resolve_token(self, token: DateEntryToken) -> Resolved | Deferred:
        """Resolve a single token, deferring it when no month fits."""
        self._validate(token)

        if token.has_explicit_month:
            day = self._explicit_date(token)
        else:
            day = self._candidate_date(token.day)
            if day is None:
                return Deferred(token)

        return Resolved(
            tuple(
                DateEntry(
                    date=make_date(day.year, day.month, day.day, hours, minutes),
                    additional_details=token.details,
                )
                for hours, minutes in token.times
            )
        )

    def _validate(self, token: DateEntryToken) -> None:
        missing = []
        if token.day is None:
            missing.append("day")
        if not token.times:
            missing.append("times")
        if missing:
            raise GrammarError(
                f"Missing required data {missing} in date entry: '{token.raw}'"
            )

    def _candidate_date(self, day: int) -> datetime | None:
        lower, upper = self.boundaries.lower, self.boundaries.upper
        for year, month in ((lower.year, lower.month), (upper.year, upper.month)):
            try:
                candidate = make_date(year, month, day)
            except NewsletterParseError:
                continue
            if self.boundaries.contains(candidate):
                return candidate
        return None

    def _explicit_date(self, token: DateEntryToken) -> datetime:
        lower, upper = self.boundaries.lower, self.boundaries.upper
        year = upper.year if token.month == upper.month else lower.year
        if token.month == lower.month:
            year = lower.year

        date = make_date(year, token.month, token.day)
        if not self.boundaries.contains(date):
            raise SemanticError(
                f"Date {date.date().isoformat()} from '{token.raw}' is outside "
                f"{self._bounds_str()}"
            )
        return date

    def _bounds_str(self) -> str:
        return (
            f"[{self.boundaries.lower.isoformat()}, "
            f"{self.boundaries.upper.isoformat()}]"
        )
