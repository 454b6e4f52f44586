"""GetIcon specific exceptions."""


class InvalidURL(ValueError):
    """Raised when a user supplied site cannot be parsed into a fetchable URL."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid URL {value!r}: {reason}")


class FetchError(Exception):
    """Base class for errors retrieving a single remote resource.

    These errors are scoped to one candidate and are recovered from by falling
    back to the next candidate.
    """

    retryable: bool = False

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class FetchTimeout(FetchError):
    """Raised when the remote host did not answer in time."""

    retryable = True

    def __init__(self, url: str) -> None:
        super().__init__(url, f"Timed out fetching {url}")


class FetchNetworkError(FetchError):
    """Raised for connection, TLS, protocol and redirect-limit failures."""

    def __init__(self, url: str, reason: str) -> None:
        self.reason = reason
        super().__init__(url, f"Network error fetching {url}: {reason}")


class FetchHTTPError(FetchError):
    """Raised when the remote host answered with a non-success status."""

    def __init__(self, url: str, status: int) -> None:
        self.status = status
        self.retryable = status == 429 or status >= 500
        super().__init__(url, f"HTTP {status} fetching {url}")


class InvalidImageContent(Exception):
    """Raised when fetched bytes are not a usable icon image."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid image content at {url}: {reason}")


class InternalInconsistency(RuntimeError):
    """Raised when the engine reaches a state that should be impossible.

    Never caught by the engine: it surfaces as a server error and is reported
    to Sentry.
    """
