"""Grammar for the free-form schedule text of a programme.

The text of a schedule box is read as::

    text        := (date_entry | other)*
    date_entry  := day_number month? time+ additional_details?
    time        := hours (':' | '.') minutes

Weekday names, connectors such as ``ore`` or ``e`` and punctuation between
times are skipped. Times and numbers outside a date entry, such as prices
or running times in the film description, fall into ``other``.
``additional_details`` is whatever follows the last time on the same line,
up to the next date entry.
"""

import re
from dataclasses import dataclass

from .calendar_utils import MONTHS_IT
from .errors import GrammarError
from .models import DateEntryToken

TOKEN_REGEX = re.compile(
    r"""
    (?P<time>(?<!\d)\d{1,2}[:.]\d{2}(?!\d))
    |(?P<number>\d+)
    |(?P<newline>\n)
    |(?P<word>[^\W\d_]+(?:['’][^\W\d_]+)*)
    |(?P<symbol>[^\w\s])
    """,
    re.VERBOSE,
)

WEEKDAYS = {
    "lunedì", "lunedi", "lun",
    "martedì", "martedi", "mar",
    "mercoledì", "mercoledi", "mer",
    "giovedì", "giovedi", "gio",
    "venerdì", "venerdi", "ven",
    "sabato", "sab",
    "domenica", "dom",
}

CONNECTOR_WORDS = {"e", "ore", "h", "alle", "dalle"}
CONNECTOR_SYMBOLS = {",", ";", "-", "–", "/", "|", "·", "&", "+"}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    start: int
    end: int

    @property
    def lowered(self) -> str:
        return self.text.lower()


def tokenize(text: str) -> list[Token]:
    return [
        Token(match.lastgroup, match.group(), match.start(), match.end())
        for match in TOKEN_REGEX.finditer(text)
    ]


def parse_time(token: Token) -> tuple[int, int]:
    hours, minutes = re.split(r"[:.]", token.text)
    return int(hours), int(minutes)


class DateEntryGrammarParser:
    """Recursive-descent parser turning schedule text into date entry tokens."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)

    def parse(self) -> list[DateEntryToken]:
        """Parse the whole text.

        Returns:
            Date entry tokens in text order

        Raises:
            GrammarError: If no date entry is found
        """
        entries = []
        index = 0
        while index < len(self.tokens):
            token = self.tokens[index]
            if token.kind == "number":
                entry, next_index = self._date_entry(index)
                if entry is not None:
                    entries.append(entry)
                    index = next_index
                    continue
            index += 1

        if not entries:
            raise GrammarError(f"No date entry found in text: '{self.text.strip()}'")

        return entries

    def _skip_connectors(self, index: int) -> int:
        while index < len(self.tokens):
            token = self.tokens[index]
            if token.kind == "symbol" and token.text in CONNECTOR_SYMBOLS:
                index += 1
            elif token.kind == "word" and token.lowered in CONNECTOR_WORDS:
                index += 1
            else:
                break
        return index

    def _entry_head(self, index: int):
        """Match ``day_number month? time+`` starting at ``index``.

        Returns ``(day, month, times, next_index)`` or None.
        """
        token = self.tokens[index]
        if token.kind != "number" or len(token.text) > 2:
            return None

        day = int(token.text)
        month = None
        cursor = index + 1
        if cursor < len(self.tokens):
            candidate = self.tokens[cursor]
            if candidate.kind == "word" and candidate.lowered in MONTHS_IT:
                month = MONTHS_IT[candidate.lowered]
                cursor += 1

        times = []
        lookahead = self._skip_connectors(cursor)
        while lookahead < len(self.tokens) and self.tokens[lookahead].kind == "time":
            times.append(parse_time(self.tokens[lookahead]))
            cursor = lookahead + 1
            lookahead = self._skip_connectors(cursor)

        if not times:
            return None

        return day, month, tuple(times), cursor

    def _date_entry(self, index: int) -> tuple[DateEntryToken | None, int]:
        head = self._entry_head(index)
        if head is None:
            return None, index

        day, month, times, cursor = head

        details_end = cursor
        while details_end < len(self.tokens):
            token = self.tokens[details_end]
            if token.kind == "newline":
                break
            if token.kind == "number" and self._entry_head(details_end) is not None:
                break
            details_end += 1

        next_index = details_end
        if details_end < len(self.tokens) and self.tokens[details_end].kind == "number":
            # Weekday and separators belong to the following entry
            while details_end > cursor and self._is_entry_prefix(
                self.tokens[details_end - 1]
            ):
                details_end -= 1

        details = None
        if details_end > cursor:
            details = self.text[
                self.tokens[cursor].start : self.tokens[details_end - 1].end
            ]

        last = self.tokens[max(cursor, details_end) - 1]
        raw = self.text[self.tokens[index].start : last.end]

        return (
            DateEntryToken(day=day, month=month, times=times, details=details, raw=raw),
            next_index,
        )

    def _is_entry_prefix(self, token: Token) -> bool:
        if token.kind == "word":
            return token.lowered in WEEKDAYS or token.lowered in CONNECTOR_WORDS
        return token.kind == "symbol" and token.text in CONNECTOR_SYMBOLS


def parse_schedule_text(text: str) -> list[DateEntryToken]:
    """Parse schedule text into date entry tokens."""
    return DateEntryGrammarParser(text).parse()
