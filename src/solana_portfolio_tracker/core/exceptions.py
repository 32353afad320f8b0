"""Exception taxonomy shared by providers, resolvers and services."""


class TrackerError(Exception):
    """Base class for all errors raised by the tracker."""


class TransientNetworkError(TrackerError):
    """Network-level failure that is safe to retry (timeouts, resets, 5xx)."""


class DeadlineExceededError(TransientNetworkError):
    """A call did not finish before its deadline and was abandoned."""


class RateLimitedError(TrackerError):
    """Provider signalled that the caller is over quota (e.g. HTTP 429)."""


class InvalidAddressError(TrackerError, ValueError):
    """Address or mint is not a well-formed base58 public key."""


class ParseError(TrackerError):
    """Provider payload could not be decoded into the expected structure."""


class NotAvailableError(TrackerError):
    """No lookup tier produced data for the requested identity."""


class ProviderError(TrackerError):
    """
    Non-retryable error response from a provider.

    Parameters
    ----------
    message : str
        Error description
    error_data : dict | None
        Raw error payload returned by the provider, if any

    """

    def __init__(self, message: str, error_data: dict | None = None) -> None:
        super().__init__(message)
        self.error_data = error_data or {}


class TransactionFetchError(TrackerError):
    """A page of wallet transactions could not be fetched and nothing was cached."""


RETRYABLE_ERRORS: tuple[type[Exception], ...] = (TransientNetworkError, RateLimitedError)
