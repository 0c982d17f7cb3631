"""Client for the Metasphere CRM business endpoints."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING

import httpx

from hotel_gateway.auth.call import call_with_auth
from hotel_gateway.auth.classifier import raise_if_unauthorized_response
from hotel_gateway.auth.credentials import ProviderCredential, RefreshFn, TokenRefresher
from hotel_gateway.auth.errors import ProviderUnauthorized, UpstreamRequestFailed
from hotel_gateway.auth.token_cache import ProviderTokenCache
from hotel_gateway.availability.dates import DEFAULT_WINDOW_DAYS, split_into_windows
from hotel_gateway.config.providers import ProviderCatalog, ProviderConfig

if TYPE_CHECKING:  # pragma: no cover
    from hotel_gateway.config.settings import Settings

logger = logging.getLogger(__name__)

RATE_AND_STATUS = "GetRateAndStatus_Moblie"
RATE_AND_AVAILABILITY = "GetRateAndAvailability_Moblie"
PROPERTY_LIST = "GetPropertyList_Moblie"

_PLACEHOLDER_PROPERTY = "All"


class MetasphereClient:
    """Token-authenticated calls against one provider's CRM endpoints."""

    def __init__(
        self,
        provider: ProviderConfig,
        *,
        cache: ProviderTokenCache,
        refresh: Optional[RefreshFn] = None,
        timeout: float = 30.0,
        token_timeout: float = 15.0,
        token_ttl_s: float = 7200,
        verify_tls: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, verify=verify_tls)
        if refresh is None:
            if not provider.app_key or not provider.app_secret:
                raise ValueError(f"Provider '{provider.key}' has no app key/secret configured")
            refresh = TokenRefresher(
                provider=provider.key,
                token_url=provider.token_url,
                app_key=provider.app_key,
                app_secret=provider.app_secret,
                default_ttl_s=token_ttl_s,
                timeout_s=token_timeout,
                verify_tls=verify_tls,
                client=self._client,
            )
        self.refresh = refresh

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        cache: ProviderTokenCache,
        *,
        provider_key: Optional[str] = None,
        catalog: Optional[ProviderCatalog] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "MetasphereClient":
        catalog = catalog or ProviderCatalog.from_settings(settings)
        provider = catalog.get(provider_key or settings.default_provider)
        return cls(
            provider,
            cache=cache,
            timeout=settings.request_timeout_s,
            token_timeout=settings.token_timeout_s,
            token_ttl_s=settings.token_default_ttl_s,
            verify_tls=settings.verify_tls,
            client=client,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "MetasphereClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def credential(self) -> ProviderCredential:
        """The provider's current credential, refreshing it if needed."""
        return await self.cache.get_credential(self.provider.key, self.refresh)

    async def post(
        self,
        endpoint: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """POST to ``endpoint`` with the provider token and return the decoded JSON body."""
        url = self.provider.endpoint(endpoint)

        async def _do_request(token: str) -> Dict[str, Any]:
            query = {key: value for key, value in (params or {}).items() if value is not None}
            query["token"] = token
            try:
                response = await self._client.post(
                    url,
                    params=query,
                    data=dict(data) if data else None,
                    timeout=timeout or self.timeout,
                )
            except httpx.TimeoutException as exc:
                raise UpstreamRequestFailed(f"{endpoint} timed out") from exc
            except httpx.HTTPError as exc:
                raise UpstreamRequestFailed(f"{endpoint} request failed: {exc}") from exc
            return self._decode(endpoint, response)

        return await call_with_auth(self.cache, self.provider.key, self.refresh, _do_request)

    @staticmethod
    def _decode(endpoint: str, response: httpx.Response) -> Dict[str, Any]:
        payload: Any
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code == 401:
            raise ProviderUnauthorized(
                f"{endpoint} returned 401", status_code=response.status_code, payload=payload
            )
        if response.is_error:
            raise UpstreamRequestFailed(
                f"{endpoint} failed ({response.status_code}): {response.text[:512]}",
                status_code=response.status_code,
                payload=payload,
            )
        if not isinstance(payload, dict):
            raise UpstreamRequestFailed(
                f"{endpoint} returned a non-object body: {response.text[:128]}",
                status_code=response.status_code,
            )
        raise_if_unauthorized_response(payload, status_code=response.status_code)
        return payload

    @staticmethod
    def is_success(payload: Mapping[str, Any]) -> bool:
        return str(payload.get("flag")) == "0" and payload.get("result") == "success"

    @classmethod
    def extract_rows(cls, payload: Mapping[str, Any]) -> Optional[List[Any]]:
        """``data`` as a list for a success envelope; None when the envelope reports failure."""
        if not cls.is_success(payload):
            return None
        data = payload.get("data")
        if isinstance(data, list):
            return data
        if data:
            return [data]
        return []

    async def fetch_status_rows(
        self,
        hotel_id: str,
        start: date,
        end: date,
        *,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> List[Dict[str, Any]]:
        """Collect rate/status rows for ``[start, end)``, one upstream query per window."""
        rows: List[Dict[str, Any]] = []
        for window in split_into_windows(start, end, window_days):
            payload = await self.post(
                RATE_AND_STATUS,
                params={"hotelId": hotel_id, **window.to_params()},
            )
            window_rows = self.extract_rows(payload)
            if window_rows is None:
                logger.warning(
                    "%s window %s..%s rejected: flag=%s result=%s message=%s",
                    RATE_AND_STATUS,
                    window.start,
                    window.end,
                    payload.get("flag"),
                    payload.get("result"),
                    payload.get("message"),
                )
                continue
            rows.extend(window_rows)
        logger.info("Fetched %s status rows for %s (%s → %s)", len(rows), hotel_id, start, end)
        return rows

    async def fetch_rate_rows(
        self,
        hotel_id: str,
        start: date,
        end: date,
        *,
        adults: int = 1,
        children: int = 0,
        infants: int = 0,
        pet: str = "no",
        currency: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        payload = await self.post(
            RATE_AND_AVAILABILITY,
            params={
                "hotelId": hotel_id,
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "startTime": start.isoformat(),
                "endTime": end.isoformat(),
                "adults": adults,
                "children": children,
                "infaut": infants,  # upstream key spelling
                "pet": pet,
                "currency": currency,
            },
        )
        return self.extract_rows(payload) or []

    async def fetch_properties(self) -> List[Dict[str, str]]:
        payload = await self.post(PROPERTY_LIST)
        raw = payload.get("data")
        if not isinstance(raw, list):
            return []
        properties: List[Dict[str, str]] = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            hotel_id = entry.get("hotelId")
            name = entry.get("propertyName")
            if not hotel_id or not name or _PLACEHOLDER_PROPERTY in (hotel_id, name):
                continue
            properties.append(
                {
                    "hotelId": str(hotel_id),
                    "propertyName": str(name),
                    "address": str(entry.get("address") or ""),
                    "description": str(entry.get("description") or ""),
                }
            )
        return properties
