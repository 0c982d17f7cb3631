"""Provider credential lifecycle: refresh, cache, classify and retry."""

from .call import call_with_auth
from .classifier import is_unauthorized, raise_if_unauthorized_response
from .credentials import ProviderCredential, TokenRefresher, generate_nonce, sign_request
from .errors import (
    GatewayError,
    ProviderUnauthorized,
    UpstreamRequestFailed,
    UpstreamUnavailable,
)
from .token_cache import ProviderTokenCache

__all__ = [
    "GatewayError",
    "ProviderCredential",
    "ProviderTokenCache",
    "ProviderUnauthorized",
    "TokenRefresher",
    "UpstreamRequestFailed",
    "UpstreamUnavailable",
    "call_with_auth",
    "generate_nonce",
    "is_unauthorized",
    "raise_if_unauthorized_response",
    "sign_request",
]
