"""Exception types shared across solswap."""

from typing import Any, Optional


class SolswapError(Exception):
    """Base class for solswap errors."""
    pass


class ConfigError(SolswapError):
    """Exception raised for missing or invalid configuration (keys, paths, network)."""
    pass


class QuoteServiceError(SolswapError):
    """Exception raised when the quote service returns no route or a bad response.

    Attributes:
        status_code: HTTP status of the failing response, if any
        detail: Decoded response body (JSON or text), if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class SubmissionError(SolswapError):
    """Exception raised when the network rejects a transaction.

    Attributes:
        logs: Simulation logs returned by the RPC node, if any
    """

    def __init__(self, message: str, logs: Optional[list[str]] = None):
        super().__init__(message)
        self.logs = logs or []


class TokenListError(SolswapError):
    """Exception raised when the token list can be neither read from cache nor downloaded."""
    pass
