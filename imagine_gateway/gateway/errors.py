"""Exception taxonomy for the generation gateway.

Internal components raise these; ``ImageGateway`` catches every
``GatewayError`` at its boundary and converts it into a failed result.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""

    retryable: bool = False


class InvalidRequest(GatewayError):
    """Generic request failed validation before any provider was chosen."""


class RateLimitExceeded(GatewayError):
    """A rate-limit rule rejected the call. Never retried automatically."""

    def __init__(self, message: str, rule: str = "", reset_in: float = 0.0):
        super().__init__(message)
        self.rule = rule
        self.reset_in = reset_in


class ModelNotFound(GatewayError):
    """No registered provider exposes the requested model id."""

    def __init__(self, model_id: str):
        super().__init__(f"Model {model_id} not found in any provider")
        self.model_id = model_id


class CredentialMissing(GatewayError):
    """Provider requires auth but no key resolved."""

    def __init__(self, provider_id: str, provider_name: str = ""):
        super().__init__(f"API key required for provider {provider_name or provider_id}")
        self.provider_id = provider_id


class ProviderConflict(GatewayError):
    """Admin change rejected (preset id collision, preset removal)."""


class NetworkTimeout(GatewayError):
    """Deadline expired before the provider answered."""

    retryable = True

    def __init__(self, timeout: float, url: str = ""):
        super().__init__(f"Request timeout after {timeout:g}s")
        self.timeout = timeout
        self.url = url


class NetworkFailure(GatewayError):
    """Connection-level failure (DNS, refused, reset)."""

    retryable = True

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class ProviderHTTPError(GatewayError):
    """Provider answered with a non-2xx status."""

    MAX_BODY_CHARS = 500

    def __init__(self, status_code: int, body: str = "", operation: str = "API request"):
        self.status_code = status_code
        self.body = body[: self.MAX_BODY_CHARS]
        super().__init__(f"{operation} failed ({status_code}): {self.body}")

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        # 4xx is a caller/config problem; 429 and 5xx may succeed later
        return self.status_code == 429 or self.status_code >= 500


class ProviderResponseError(GatewayError):
    """2xx response whose body does not match the provider's declared shape."""


class QueueCleared(GatewayError):
    """A queued task was dropped by an administrative clear."""

    def __init__(self, message: str = "Queue cleared"):
        super().__init__(message)
