"""
Bearer token caching for provider adapters.

Each adapter owns one TokenCache. The cache records the token together with its
expiry and asks the adapter for a new one shortly before that expiry, so a
long-running search never presents a token that lapses mid-session.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from artifact_downloader.constants import TOKEN_REFRESH_MARGIN_SECONDS
from artifact_downloader.log_utils import logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CachedToken:
    value: str
    expires_at: datetime


TokenFetcher = Callable[[], Awaitable[CachedToken]]


class TokenCache:
    """
    Lazily obtain and reuse a bearer token until it is about to expire.

    Parameters:
        fetch_token (TokenFetcher): Coroutine function producing a fresh CachedToken. Any error it raises propagates unchanged.
        refresh_margin (timedelta): How long before expiry a token is considered stale.
        clock (Callable[[], datetime]): Source of the current aware UTC time.
    """

    def __init__(
        self,
        fetch_token: TokenFetcher,
        refresh_margin: timedelta = timedelta(seconds=TOKEN_REFRESH_MARGIN_SECONDS),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._fetch_token = fetch_token
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._token: Optional[CachedToken] = None

    def is_fresh(self) -> bool:
        """Return True if a cached token exists and is outside the refresh margin."""
        if self._token is None:
            return False
        return self._clock() + self._refresh_margin < self._token.expires_at

    async def get_token(self) -> str:
        """Return a usable token, fetching a new one if none is cached or it is stale."""
        token = self._token
        if token is None or not self.is_fresh():
            token = await self._fetch_token()
            self._token = token
            logger.debug(f"Obtained new token valid until {token.expires_at}")
        return token.value

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a new one."""
        self._token = None
