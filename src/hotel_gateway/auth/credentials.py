"""Signed credential requests against a provider's identity endpoint."""
from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import httpx

from .errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

NONCE_LENGTH = 32
DEFAULT_TOKEN_TTL_S = 7200
# Epoch values above this are milliseconds (10^11 seconds is year 5138).
_EPOCH_MS_THRESHOLD = 100_000_000_000


@dataclass(frozen=True, slots=True)
class ProviderCredential:
    """A cached upstream access token and the material used to obtain it."""

    provider: str
    token: str
    expires_at: float
    nonce: Optional[str] = None
    signature: Optional[str] = None
    generated_at: Optional[str] = None
    upstream_expire_time: Optional[str] = None

    def is_valid(self, now: float, skew: float = 0.0) -> bool:
        return bool(self.token) and now < self.expires_at - skew

    def to_dict(self) -> dict[str, object]:
        return {
            "provider": self.provider,
            "token": self.token,
            "expires_at": self.expires_at,
            "random": self.nonce,
            "sign": self.signature,
            "generate_time": self.generated_at,
            "expire_time": self.upstream_expire_time,
        }


RefreshFn = Callable[[], Awaitable[ProviderCredential]]


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    """Return ``length`` random decimal digits."""
    if length <= 0:
        raise ValueError("nonce length must be positive")
    return "".join(secrets.choice("0123456789") for _ in range(length))


def sign_request(app_key: str, nonce: str, app_secret: str) -> str:
    """Base64 SHA-256 over ``secret + key + nonce``."""
    digest = hashlib.sha256(f"{app_secret}{app_key}{nonce}".encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def _parse_absolute_expiry(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        try:
            number = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                logger.debug("Ignoring unparseable expireTime %r", value)
                return None
            if parsed.tzinfo is None:
                # Wall-clock time in an unknown zone.
                logger.debug("Ignoring expireTime without a UTC offset %r", value)
                return None
            return parsed.timestamp()
    if number <= 0:
        return None
    if number > _EPOCH_MS_THRESHOLD:
        return number / 1000.0
    return number


def _parse_ttl(value: Any) -> Optional[float]:
    try:
        ttl = float(value)
    except (TypeError, ValueError):
        return None
    return ttl if ttl > 0 else None


def resolve_expiry(payload: dict[str, Any], *, now: float, default_ttl_s: float) -> float:
    """Absolute expiry from ``expireTime``, else ``expireIn`` seconds, else the default TTL."""
    absolute = _parse_absolute_expiry(payload.get("expireTime"))
    if absolute is not None:
        return absolute
    ttl = _parse_ttl(payload.get("expireIn"))
    return now + (ttl if ttl is not None else default_ttl_s)


class TokenRefresher:
    """Issues a freshly signed token request each time it is awaited."""

    def __init__(
        self,
        *,
        provider: str,
        token_url: str,
        app_key: str,
        app_secret: str,
        default_ttl_s: float = DEFAULT_TOKEN_TTL_S,
        timeout_s: float = 15.0,
        verify_tls: bool = True,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not app_key or not app_secret:
            raise ValueError(f"{provider}: app key and secret must be provided")
        self.provider = provider
        self.token_url = token_url
        self.app_key = app_key
        self.app_secret = app_secret
        self.default_ttl_s = default_ttl_s
        self.timeout_s = timeout_s
        self.verify_tls = verify_tls
        self._client = client
        self._clock = clock

    async def __call__(self) -> ProviderCredential:
        return await self.refresh()

    async def refresh(self) -> ProviderCredential:
        nonce = generate_nonce()
        signature = sign_request(self.app_key, nonce, self.app_secret)
        form = {"appKey": self.app_key, "random": nonce, "sign": signature}
        logger.info("Requesting %s token", self.provider)

        if self._client is not None:
            payload = await self._post(self._client, form)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_s, verify=self.verify_tls) as client:
                payload = await self._post(client, form)

        token = payload.get("accessToken")
        if not token:
            logger.warning("%s token response carried no accessToken: %s", self.provider, str(payload)[:256])
            raise UpstreamUnavailable(self.provider, "response carried no accessToken")

        expires_at = resolve_expiry(payload, now=self._clock(), default_ttl_s=self.default_ttl_s)
        logger.info("Obtained %s token valid until %s", self.provider, _format_epoch(expires_at))
        return ProviderCredential(
            provider=self.provider,
            token=str(token),
            expires_at=expires_at,
            nonce=nonce,
            signature=signature,
            generated_at=_optional_str(payload.get("generateTime")),
            upstream_expire_time=_optional_str(payload.get("expireTime")),
        )

    async def _post(self, client: httpx.AsyncClient, form: dict[str, str]) -> dict[str, Any]:
        try:
            response = await client.post(self.token_url, data=form, timeout=self.timeout_s)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailable(self.provider, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(self.provider, f"{type(exc).__name__}: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(self.provider, "response was not JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamUnavailable(self.provider, "response was not a JSON object")
        return payload


def _optional_str(value: Any) -> Optional[str]:
    return None if value in (None, "") else str(value)


def _format_epoch(value: float) -> str:
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat(timespec="seconds")
