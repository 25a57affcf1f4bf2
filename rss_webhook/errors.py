"""
Error types for RSS Webhook.

Each failure kind of the pipeline has its own exception so the
processor can decide whether it aborts an item, a target, or nothing.
"""


class RelayError(Exception):
    """Base class for all RSS Webhook errors."""


class UpstreamError(RelayError):
    """
    Failure talking to a remote HTTP endpoint (feed or webhook).

    Attributes
    ----------
    url : str
        The URL that was being requested.
    """

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class TransportError(UpstreamError):
    """Network, DNS, or timeout failure. Retried up to the budget."""

    def __init__(self, url: str, cause: BaseException):
        super().__init__(url, f"Request to {url} failed: {cause!r}")
        self.cause = cause


class PermanentUpstreamError(UpstreamError):
    """
    Non-retryable HTTP failure (404).

    Attributes
    ----------
    status : int
        HTTP status code returned by the server.
    reason : str
        HTTP status text returned by the server.
    """

    def __init__(self, url: str, status: int, reason: str = ""):
        super().__init__(url, reason or f"HTTP {status}")
        self.status = status
        self.reason = reason


class RateLimitedError(UpstreamError):
    """
    HTTP 429 with a server-specified retry delay.

    Attributes
    ----------
    retry_after : float
        Seconds to wait before retrying.
    is_global : bool
        Whether the limit applies globally or only to this route.
    code : int | None
        Optional provider-specific error code.
    """

    def __init__(
        self,
        url: str,
        message: str,
        retry_after: float,
        is_global: bool = False,
        code: int | None = None,
    ):
        super().__init__(url, message or "Rate limited")
        self.retry_after = retry_after
        self.is_global = is_global
        self.code = code


class MalformedLinkError(RelayError):
    """Raised when an item link cannot be parsed as an absolute URL."""

    def __init__(self, link: str, reason: str):
        super().__init__(f"Malformed link {link!r}: {reason}")
        self.link = link
        self.reason = reason


class StoreError(RelayError):
    """
    Failure of the backing seen-set store.

    Attributes
    ----------
    operation : str
        Name of the store operation that failed.
    cause : BaseException | None
        Underlying backend exception.
    """

    def __init__(self, operation: str, cause: BaseException | None = None):
        message = f"Store operation '{operation}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class StoreLookupError(StoreError):
    """Reading from the store failed."""


class StoreWriteError(StoreError):
    """Writing to the store failed."""
