"""Errors raised by the ingestion pipeline."""


class IngestError(Exception):
    """Base class for ingestion failures."""


class FetchError(IngestError):
    """The upstream feed could not be retrieved."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(IngestError):
    """The fetched document is not a recognizable feed."""


class ItemPersistError(IngestError):
    """A single article candidate could not be written to the store."""

    def __init__(self, message: str, slug: str | None = None):
        super().__init__(message)
        self.slug = slug
