"""Data models for Spazio Alfieri Bot."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class DateEntry:
    """A single screening of a programme."""

    date: datetime
    additional_details: str | None = None


@dataclass(frozen=True)
class ProgrammingEntry:
    """A title with all of its screenings, in newsletter order."""

    title: str
    date_entries: tuple[DateEntry, ...] = ()


@dataclass(frozen=True)
class NewsletterEntry:
    """Represents a fully parsed newsletter."""

    programming_entries: tuple[ProgrammingEntry, ...]
    newsletter_link: str

    def all_dates(self) -> list[datetime]:
        """Return every screening date across all programmes."""
        return [
            entry.date
            for programme in self.programming_entries
            for entry in programme.date_entries
        ]

    def next_date_after(self, now: datetime) -> datetime | None:
        """Return the earliest screening strictly after ``now``, if any."""
        upcoming = [date for date in self.all_dates() if date > now]
        return min(upcoming) if upcoming else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain types (dates as ISO-8601 strings)."""
        return {
            "newsletter_link": self.newsletter_link,
            "programs": [
                {
                    "title": programme.title,
                    "entries": [
                        {
                            "date": entry.date.isoformat(),
                            "details": entry.additional_details,
                        }
                        for entry in programme.date_entries
                    ],
                }
                for programme in self.programming_entries
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NewsletterEntry":
        """Rebuild a newsletter from the output of ``to_dict``."""
        programmes = tuple(
            ProgrammingEntry(
                title=program["title"],
                date_entries=tuple(
                    DateEntry(
                        date=datetime.fromisoformat(entry["date"]),
                        additional_details=entry.get("details"),
                    )
                    for entry in program.get("entries", [])
                ),
            )
            for program in data.get("programs", [])
        )
        return cls(
            programming_entries=programmes, newsletter_link=data["newsletter_link"]
        )


@dataclass(frozen=True)
class BoundaryPair:
    """Inclusive date range announced in the subject line."""

    lower: datetime
    upper: datetime

    def __post_init__(self):
        if self.lower > self.upper:
            raise ValueError(
                f"Lower boundary {self.lower.isoformat()} is after "
                f"upper boundary {self.upper.isoformat()}"
            )

    def contains(self, date: datetime) -> bool:
        return self.lower <= date <= self.upper


@dataclass(frozen=True)
class DateEntryToken:
    """A date entry as recognized by the grammar, before month resolution."""

    day: int | None
    times: tuple[tuple[int, int], ...]
    month: int | None = None
    details: str | None = None
    raw: str = field(default="", compare=False)

    @property
    def has_explicit_month(self) -> bool:
        return self.month is not None
