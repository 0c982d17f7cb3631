"""Run an upstream call with a cached provider token, retrying once on auth failure."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from .classifier import is_unauthorized
from .credentials import RefreshFn
from .token_cache import ProviderTokenCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_auth(
    cache: ProviderTokenCache,
    provider: str,
    refresh: RefreshFn,
    do_request: Callable[[str], Awaitable[T]],
    *,
    is_unauthorized_error: Callable[[BaseException], bool] = is_unauthorized,
) -> T:
    """Await ``do_request(token)``; on an auth failure invalidate, refresh and retry exactly once.

    The second attempt's outcome is returned or raised as-is. Errors that are
    not auth failures propagate from the first attempt untouched.
    """
    token = await cache.get_token(provider, refresh)
    try:
        return await do_request(token)
    except Exception as exc:
        if not is_unauthorized_error(exc):
            raise
        logger.warning("Upstream rejected %s token (%s); refreshing and retrying once", provider, exc)

    cache.invalidate(provider, stale_token=token)
    token = await cache.get_token(provider, refresh)
    return await do_request(token)
