"""Per-provider access-token cache with single-flight refresh."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .credentials import ProviderCredential, RefreshFn
from .errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SKEW_S = 120.0


@dataclass(slots=True)
class _ProviderEntry:
    credential: Optional[ProviderCredential] = None
    expires_at: float = 0.0
    in_flight: Optional[asyncio.Task[ProviderCredential]] = None


class ProviderTokenCache:
    """Holds at most one credential per provider and refreshes it on demand.

    Concurrent callers that find the cache stale while a refresh is already
    running await that same refresh instead of starting another one. A failed
    refresh is raised to every waiter and leaves the entry empty, so the next
    caller starts over.
    """

    def __init__(
        self,
        *,
        skew_s: float = DEFAULT_EXPIRY_SKEW_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if skew_s < 0:
            raise ValueError("skew_s must not be negative")
        self.skew_s = skew_s
        self._clock = clock
        self._entries: dict[str, _ProviderEntry] = {}

    def _entry(self, provider: str) -> _ProviderEntry:
        entry = self._entries.get(provider)
        if entry is None:
            entry = _ProviderEntry()
            self._entries[provider] = entry
        return entry

    def _entry_valid(self, entry: _ProviderEntry) -> bool:
        return entry.credential is not None and self._clock() < entry.expires_at - self.skew_s

    def is_valid(self, provider: str) -> bool:
        entry = self._entries.get(provider)
        return entry is not None and self._entry_valid(entry)

    def peek(self, provider: str) -> Optional[ProviderCredential]:
        """Return the cached credential without refreshing, valid or not."""
        entry = self._entries.get(provider)
        return entry.credential if entry else None

    def refresh_in_progress(self, provider: str) -> bool:
        entry = self._entries.get(provider)
        return entry is not None and entry.in_flight is not None

    async def get_credential(self, provider: str, refresh: RefreshFn) -> ProviderCredential:
        entry = self._entry(provider)

        if self._entry_valid(entry):
            logger.debug("cache_hit provider=%s", provider)
            return entry.credential  # type: ignore[return-value]

        task = entry.in_flight
        if task is not None:
            logger.debug("refresh_join provider=%s", provider)
        else:
            logger.info("refresh_start provider=%s", provider)
            # No await between the check above and this assignment, so every
            # caller arriving later sees the same task.
            task = asyncio.ensure_future(self._run_refresh(provider, entry, refresh))
            entry.in_flight = task
        return await asyncio.shield(task)

    async def get_token(self, provider: str, refresh: RefreshFn) -> str:
        credential = await self.get_credential(provider, refresh)
        return credential.token

    async def _run_refresh(
        self, provider: str, entry: _ProviderEntry, refresh: RefreshFn
    ) -> ProviderCredential:
        try:
            credential = await refresh()
            if credential is None or not credential.token:
                raise UpstreamUnavailable(provider, "refresh did not return a token")
        except BaseException:
            entry.credential = None
            entry.expires_at = 0.0
            logger.warning("refresh_failed provider=%s", provider, exc_info=True)
            raise
        else:
            entry.credential = credential
            entry.expires_at = credential.expires_at
            logger.info("refresh_done provider=%s", provider)
            return credential
        finally:
            entry.in_flight = None

    def invalidate(self, provider: str, *, stale_token: Optional[str] = None) -> bool:
        """Force the next lookup to refresh.

        With ``stale_token``, only a cached credential carrying that token is
        dropped; a newer one stored by a concurrent refresh is kept. Returns
        whether anything was cleared.
        """
        entry = self._entry(provider)
        if (
            stale_token is not None
            and entry.credential is not None
            and entry.credential.token != stale_token
        ):
            logger.debug("invalidate_skipped provider=%s (token already replaced)", provider)
            return False
        entry.credential = None
        entry.expires_at = 0.0
        logger.info("invalidated provider=%s", provider)
        return True
