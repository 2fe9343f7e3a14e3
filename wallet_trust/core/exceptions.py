"""Custom exceptions for wallet trust scoring."""


class WalletTrustError(Exception):
    """Base exception for all wallet trust errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(WalletTrustError):
    """Raised when caller input is malformed. Never retried."""

    def __init__(self, field: str, value: str, reason: str):
        message = f"Validation failed for {field}={value}: {reason}"
        super().__init__(message, {"field": field, "value": value, "reason": reason})
        self.field = field
        self.value = value
        self.reason = reason


class ProviderError(WalletTrustError):
    """Raised when a chain-data provider fails or returns invalid data."""

    def __init__(
        self,
        provider: str,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        retryable: bool = False,
    ):
        full_message = f"[{provider}] {message}"
        super().__init__(
            full_message,
            {
                "provider": provider,
                "endpoint": endpoint,
                "status_code": status_code,
                "retryable": retryable,
            },
        )
        self.provider = provider
        self.endpoint = endpoint
        self.status_code = status_code
        self.retryable = retryable


class RateLimitError(ProviderError):
    """Raised when a provider answers with HTTP 429 or a rate-limit message."""

    def __init__(
        self,
        provider: str,
        retry_after_seconds: float | None = None,
        endpoint: str | None = None,
    ):
        message = "Rate limit exceeded"
        if retry_after_seconds:
            message += f", retry after {retry_after_seconds}s"
        super().__init__(
            provider, message, endpoint=endpoint, status_code=429, retryable=True
        )
        self.retry_after_seconds = retry_after_seconds


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call exceeds its time budget."""

    def __init__(self, provider: str, timeout_seconds: float, operation: str):
        super().__init__(
            provider,
            f"{operation} timed out after {timeout_seconds:g}s",
            retryable=True,
        )
        self.timeout_seconds = timeout_seconds
        self.operation = operation


class ConfigurationError(WalletTrustError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, message: str):
        full_message = f"Configuration error [{config_key}]: {message}"
        super().__init__(full_message, {"config_key": config_key})
        self.config_key = config_key
