from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for every error the aggregator surfaces to callers."""

    code = "GATEWAY_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.details}


class UpstreamError(GatewayError):
    """Network failure, timeout, non-2xx status or unreadable body from a provider.

    Transient: the caller may retry the whole query later.
    """

    code = "UPSTREAM_ERROR"

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        super().__init__(
            message,
            {"provider": provider, "status_code": status_code, "url": url},
        )
        self.provider = provider
        self.status_code = status_code
        self.url = url


class NormalizationError(GatewayError):
    """Provider payload violated the shape we rely on (upstream contract change)."""

    code = "NORMALIZATION_ERROR"

    def __init__(self, message: str, provider: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message, {"provider": provider, "field": field})
        self.provider = provider
        self.field = field


class NotFoundError(GatewayError):
    """Well-formed request with no matching data."""

    code = "NOT_FOUND"


class InvalidQueryError(GatewayError):
    """Unknown query kind or parameters the kind cannot be executed with."""

    code = "VALIDATION_ERROR"
