from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from artifact_downloader.exceptions import AuthenticationError
from artifact_downloader.tokens import CachedToken, TokenCache

pytestmark = [pytest.mark.unit]

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.asyncio
class TestTokenCache:
    async def test_fetches_lazily_and_reuses(self):
        fetch = AsyncMock(return_value=CachedToken("t1", NOW + timedelta(minutes=20)))
        cache = TokenCache(fetch, clock=_Clock(NOW))

        fetch.assert_not_called()
        assert await cache.get_token() == "t1"
        assert await cache.get_token() == "t1"
        assert fetch.await_count == 1

    async def test_refreshes_within_margin_of_expiry(self):
        clock = _Clock(NOW)
        fetch = AsyncMock(
            side_effect=[
                CachedToken("t1", NOW + timedelta(minutes=20)),
                CachedToken("t2", NOW + timedelta(minutes=40)),
            ]
        )
        cache = TokenCache(fetch, clock=clock)
        await cache.get_token()

        clock.now = NOW + timedelta(minutes=18, seconds=30)
        assert cache.is_fresh() is True
        assert await cache.get_token() == "t1"

        clock.now = NOW + timedelta(minutes=19, seconds=1)
        assert cache.is_fresh() is False
        assert await cache.get_token() == "t2"
        assert fetch.await_count == 2

    async def test_invalidate_forces_new_token(self):
        fetch = AsyncMock(
            side_effect=[
                CachedToken("t1", NOW + timedelta(minutes=20)),
                CachedToken("t2", NOW + timedelta(minutes=20)),
            ]
        )
        cache = TokenCache(fetch, clock=_Clock(NOW))
        await cache.get_token()

        cache.invalidate()

        assert cache.is_fresh() is False
        assert await cache.get_token() == "t2"

    async def test_fetch_errors_propagate_and_nothing_is_cached(self):
        fetch = AsyncMock(side_effect=AuthenticationError("bad key"))
        cache = TokenCache(fetch, clock=_Clock(NOW))

        with pytest.raises(AuthenticationError, match="bad key"):
            await cache.get_token()
        assert cache.is_fresh() is False
