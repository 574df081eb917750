# core/errors.py


class WishlistImportError(Exception):
    """Base class for errors that end a scrape or import request."""

    kind = "error"


class InvalidWishlistUrl(WishlistImportError):
    """The input does not look like any supported wishlist URL."""

    kind = "invalid_url"


class AllSourcesUnreachable(WishlistImportError):
    """
    Every candidate URL failed: a transport error, a non-2xx status, or a
    2xx page that turned out to be a robot check / CAPTCHA block.
    """

    kind = "unreachable"

    def __init__(self, message: str, attempts: list[tuple[str, str]] | None = None):
        super().__init__(message)
        self.attempts = list(attempts or [])


class NothingSelected(WishlistImportError):
    """An import was submitted with every item excluded."""

    kind = "nothing_selected"


class ImportBatchFailure(WishlistImportError):
    """
    The registry store rejected a batch insert.

    Some items of the batch may already have been saved; callers get no
    rollback and no retry.
    """

    kind = "import_failed"

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause
