from typing import Any, Optional


class ShortenerError(Exception):
    """Base class for failures reported back to the caller as a structured result."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, link: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        # Only set for DuplicateUrl: the mapping that already exists
        self.link = link


class InvalidUrl(ShortenerError):
    code = "error:nourl"


class ShortUrlLoopDetected(ShortenerError):
    code = "error:noloop"


class DuplicateUrl(ShortenerError):
    code = "error:url"


class KeywordUnavailable(ShortenerError):
    code = "error:keyword"


class AllocationConflict(ShortenerError):
    code = "error:concurrency"
    status_code = 503


class StorageUnavailable(ShortenerError):
    code = "error:db"
    status_code = 503


class FloodDetected(ShortenerError):
    code = "error:flood"
    status_code = 429


class LinkNotFound(ShortenerError):
    code = "error:notfound"
    status_code = 404


class KeywordConflict(Exception):
    """Raised by a LinkStore when an insert loses the race for a keyword."""

    def __init__(self, keyword: str):
        super().__init__(f"Keyword already stored: {keyword}")
        self.keyword = keyword
