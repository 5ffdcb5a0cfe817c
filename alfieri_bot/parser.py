"""Newsletter email parsing: subject line + HTML body into a NewsletterEntry."""

from .calendar_utils import current_year
from .config import SelectorConfig
from .errors import NewsletterParseError
from .grammar import parse_schedule_text
from .html_walker import HtmlStructureWalker
from .logging_config import create_execution_logger
from .models import NewsletterEntry, ProgrammingEntry
from .resolver import DateEntryResolver
from .subject_line import resolve_boundaries


def parse_email_body(
    subject: str,
    body: str,
    year: int | None = None,
    selectors: SelectorConfig | None = None,
    execution_id: str | None = None,
) -> NewsletterEntry:
    """Parse a newsletter email.

    The result is all-or-nothing: any structural, grammar or date failure in
    any programme aborts the whole parse.

    Args:
        subject: Email subject line carrying the covered date range
        body: Email HTML body
        year: Year of the first date of the range, defaults to the current one
        selectors: Email template selectors
        execution_id: Execution ID for logging context

    Returns:
        The parsed newsletter

    Raises:
        StructuralError: If the HTML does not match the template
        GrammarError: If a schedule box cannot be tokenized
        SemanticError: If dates are invalid or fall outside the subject range
    """
    logger = create_execution_logger("parser", execution_id)

    try:
        boundaries = resolve_boundaries(
            subject, year if year is not None else current_year()
        )
    except NewsletterParseError as e:
        raise type(e)(f"Unable to parse subject line '{subject}': {e}") from e

    logger.info(
        "Resolved subject line boundaries",
        lower=boundaries.lower.isoformat(),
        upper=boundaries.upper.isoformat(),
    )

    walker = HtmlStructureWalker(body, selectors, execution_id=logger.execution_id)
    pairs, link = walker.walk()
    resolver = DateEntryResolver(boundaries)

    programmes = []
    for title, text in pairs:
        try:
            tokens = parse_schedule_text(text)
            entries = resolver.resolve(tokens)
        except NewsletterParseError as e:
            raise type(e)(f"Unable to parse schedule for '{title}': {e}") from e

        logger.log_programme(title, len(entries))
        programmes.append(ProgrammingEntry(title=title, date_entries=tuple(entries)))

    logger.info(
        f"Parsed newsletter with {len(programmes)} programmes",
        newsletter_link=link,
    )
    return NewsletterEntry(programming_entries=tuple(programmes), newsletter_link=link)
