"""Typed failures of a parse attempt."""


class ParseError(Exception):
    """Base class: the parse produced no record."""


class InvalidDocument(ParseError):
    """The document handle is unreadable or has zero pages."""


class NoExtractableText(ParseError):
    """Pages are present but no text could be recovered."""


class ParsingFailed(ParseError):
    """Unexpected internal failure while structuring the text."""
