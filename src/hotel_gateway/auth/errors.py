"""Errors raised by the provider token layer and the CRM client."""
from __future__ import annotations

from typing import Any, Optional


class GatewayError(RuntimeError):
    """Base class for upstream-facing failures."""


class UpstreamUnavailable(GatewayError):
    """Raised when the identity endpoint is unreachable or returns no usable token."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider} token fetch failed: {reason}")
        self.provider = provider
        self.reason = reason


class ProviderUnauthorized(GatewayError):
    """Raised when an upstream call is rejected because the token is stale or revoked.

    Covers transport-level 401s as well as 200 responses whose body reports an
    invalid token.
    """

    def __init__(
        self,
        message: str = "Provider token unauthorized",
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class UpstreamRequestFailed(GatewayError):
    """Raised for any other upstream failure (timeouts, validation, business rejections)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
