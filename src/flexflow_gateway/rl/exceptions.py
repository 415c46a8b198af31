"""Rate limiting exceptions."""

from typing import Optional


class RateLimitError(Exception):
    """Base exception for rate limiting errors."""
    
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "rate_limit_error"


class RateLimitExceededError(RateLimitError):
    """
    Raised when a tier rejects a request.
    
    This is an expected, user-facing outcome. Callers recover by waiting
    `retry_after` seconds and retrying.
    """
    
    def __init__(
        self,
        message: str,
        retry_after: float,
        policy: Optional[str] = None,
        key: Optional[str] = None
    ):
        super().__init__(message, "rate_limit_exceeded")
        self.retry_after = retry_after
        self.policy = policy
        self.key = key


class RateLimitConfigurationError(RateLimitError):
    """Exception raised when rate limiting configuration is invalid."""
    
    def __init__(self, message: str, config_error: Optional[str] = None):
        super().__init__(message, "rate_limit_configuration_error")
        self.config_error = config_error


class KeyExtractionError(RateLimitError):
    """Raised by a key extractor when the client attribute is missing or malformed."""
    
    def __init__(self, message: str, attribute: Optional[str] = None):
        super().__init__(message, "key_extraction_error")
        self.attribute = attribute


class CounterStoreError(RateLimitError):
    """
    Exception raised when the counter store fails.
    
    Store failures are system faults and must never be reported to the
    client as "too many requests".
    """
    
    def __init__(self, message: str, store_error: Optional[str] = None):
        super().__init__(message, "counter_store_error")
        self.store_error = store_error
