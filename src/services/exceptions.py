"""Shared exceptions for service layer operations."""


class InvalidInputError(Exception):
    """Raised when a required field is missing or malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ItemNotFoundError(Exception):
    """
    Raised when no item matches both the item id and the owner.

    Deliberately does not say whether the item is missing or belongs to
    someone else, so existence never leaks across users.
    """

    def __init__(self) -> None:
        super().__init__("Item not found or access denied")


class OwnerMismatchError(Exception):
    """Raised when the claimed userId differs from the authenticated caller."""

    def __init__(self) -> None:
        super().__init__("userId does not match the authenticated user")


class UpstreamError(Exception):
    """Base exception for failures of the scrape or AI analysis services."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ScrapeError(UpstreamError):
    """Raised when a URL cannot be fetched or parsed."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to scrape {url}: {reason}")


class AnalysisError(UpstreamError):
    """Raised when the AI analysis service fails or returns an unusable reply."""


class PersistenceError(Exception):
    """
    Raised when a database read or write fails.

    The message is safe to return to clients; the database error is chained
    as __cause__ for logging.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
