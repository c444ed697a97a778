"""Custom exceptions for SafeFlow."""


class SafeFlowError(Exception):
    """Base exception for all SafeFlow errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or "SAFEFLOW_ERROR"
        super().__init__(self.message)


class UnsupportedNetworkError(SafeFlowError):
    """Raised when a network id is not in the registry."""

    def __init__(self, network_id: int) -> None:
        self.network_id = network_id
        super().__init__(f"Unsupported network ID: {network_id}", "UNSUPPORTED_NETWORK")


class ServiceError(SafeFlowError):
    """Raised when the transaction service answers with a non-success status."""

    def __init__(self, status_code: int | None, url: str, reason: str = "") -> None:
        self.status_code = status_code
        self.url = url
        message = f"API error {status_code}" if status_code else "API request failed"
        if reason:
            message += f": {reason}"
        message += f" ({url})"
        super().__init__(message, "SERVICE_ERROR")


class RateLimitExhaustedError(SafeFlowError):
    """Raised when a request keeps being rate limited after all retries."""

    def __init__(self, url: str, attempts: int) -> None:
        self.url = url
        self.attempts = attempts
        super().__init__(
            f"Rate limited after {attempts} attempts: {url}", "RATE_LIMIT_EXHAUSTED"
        )


class MalformedRecordError(SafeFlowError):
    """Raised when a raw record matches no known transaction shape."""

    def __init__(self, message: str, record: object | None = None) -> None:
        self.record = record
        super().__init__(message, "MALFORMED_RECORD")
