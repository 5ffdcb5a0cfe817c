"""Error taxonomy for newsletter parsing."""


class NewsletterParseError(Exception):
    """Base class for every failure raised while parsing a newsletter."""


class StructuralError(NewsletterParseError):
    """The HTML body does not match the expected newsletter template."""


class GrammarError(NewsletterParseError):
    """A schedule box text cannot be tokenized into date entries."""


class SemanticError(NewsletterParseError):
    """Dates are syntactically valid but cannot be turned into timestamps."""
