"""Tests for the traffic-shaping facade."""

from unittest.mock import AsyncMock, Mock

import pytest

from app.adapters.rate_limit.penalty_window import PenaltyWindowRateLimiter
from app.adapters.storage.in_memory import InMemoryKeyedStore
from app.adapters.storage.partitions import PartitionStoreFactory
from app.core.config import RateLimitPolicy, _default_rate_limit_policies
from app.core.errors import RateLimitExceededError, StorageAppError, ValidationAppError
from app.services.traffic_shaping import TrafficShaper, store_backed_limiter_factory
from tests.fakes import FakeClock


@pytest.fixture
def store() -> InMemoryKeyedStore:
    return InMemoryKeyedStore(max_entries=100)


@pytest.fixture
def shaper(store: InMemoryKeyedStore, fake_clock: FakeClock) -> TrafficShaper:
    policies = {
        "search": RateLimitPolicy(limit=2, window_seconds=60),
        "chat-turn": RateLimitPolicy(limit=1, window_seconds=60, block_seconds=30),
    }
    factory = store_backed_limiter_factory(PartitionStoreFactory(fallback=store), clock=fake_clock)
    return TrafficShaper(factory, policies, clock=fake_clock)


def _failing_limiter_factory() -> Mock:
    limiter = Mock(spec=PenaltyWindowRateLimiter)
    limiter.consume = AsyncMock(side_effect=StorageAppError(code="storage_unavailable", message="down"))
    return Mock(return_value=limiter)


def test_default_policies_cover_every_call_site() -> None:
    policies = _default_rate_limit_policies()

    assert policies["chat-turn"].block_seconds == 30
    assert policies["calendar-mutation"].fail_open is True
    assert policies["search"].block_seconds is None
    assert policies["crawl"].limit == 10
    assert policies["vectorize-seed"].window_seconds == 3600
    assert all(not p.fail_open for name, p in policies.items() if name != "calendar-mutation")


@pytest.mark.asyncio
async def test_soft_then_hard_denial(shaper: TrafficShaper) -> None:
    assert (await shaper.check("search", "1.2.3.4")).allowed
    assert (await shaper.check("search", "1.2.3.4")).allowed

    soft = await shaper.check("search", "1.2.3.4")
    hard = await shaper.check("search", "1.2.3.4")

    assert soft.allowed is False
    assert soft.kind == "soft"
    assert soft.retry_after_seconds == 30
    assert hard.kind == "hard"
    assert hard.to_payload() == {
        "error": "Rate limit exceeded",
        "bucket": "search",
        "retryAfter": 30,
        "reason": "penalty_active",
        "kind": "hard",
        "blocked": True,
    }


@pytest.mark.asyncio
async def test_counters_are_keyed_by_bucket_and_client(
    shaper: TrafficShaper, store: InMemoryKeyedStore
) -> None:
    await shaper.check("search", "1.2.3.4")

    assert await store.get("rl:search:1.2.3.4") is not None
    assert (await shaper.check("search", "5.6.7.8")).result.remaining == 1


@pytest.mark.asyncio
async def test_partitions_are_isolated(shaper: TrafficShaper, store: InMemoryKeyedStore) -> None:
    assert (await shaper.check("chat-turn", "1.2.3.4", partition="room:a")).allowed
    assert not (await shaper.check("chat-turn", "1.2.3.4", partition="room:a")).allowed

    assert (await shaper.check("chat-turn", "1.2.3.4", partition="room:b")).allowed
    assert await store.get("rl:room:a:chat-turn:1.2.3.4") is not None


@pytest.mark.asyncio
async def test_countdown_message_mentions_seconds(shaper: TrafficShaper) -> None:
    await shaper.check("chat-turn", "c")
    soft = await shaper.check("chat-turn", "c")
    hard = await shaper.check("chat-turn", "c")

    assert soft.countdown_message() == "Slow down! Try again in 30 seconds."
    assert "temporarily blocked" in hard.countdown_message()


@pytest.mark.asyncio
async def test_unknown_bucket_raises(shaper: TrafficShaper) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        await shaper.check("nope", "c")

    assert exc_info.value.code == "unknown_rate_limit_bucket"


@pytest.mark.asyncio
async def test_enforce_raises_on_denial(shaper: TrafficShaper) -> None:
    await shaper.enforce("chat-turn", "c")

    with pytest.raises(RateLimitExceededError) as exc_info:
        await shaper.enforce("chat-turn", "c")

    assert exc_info.value.bucket == "chat-turn"
    assert exc_info.value.result.retry_after_seconds == 30


@pytest.mark.asyncio
async def test_disabled_shaper_always_allows(store: InMemoryKeyedStore, fake_clock: FakeClock) -> None:
    factory = store_backed_limiter_factory(PartitionStoreFactory(fallback=store), clock=fake_clock)
    shaper = TrafficShaper(factory, {"search": RateLimitPolicy(limit=1, window_seconds=60)}, enabled=False)

    for _ in range(5):
        assert (await shaper.check("search", "c")).allowed

    assert len(store) == 0


@pytest.mark.asyncio
async def test_storage_failure_fails_open_when_policy_allows(fake_clock: FakeClock) -> None:
    policies = {"calendar-mutation": RateLimitPolicy(limit=1, window_seconds=60, fail_open=True)}
    shaper = TrafficShaper(_failing_limiter_factory(), policies, clock=fake_clock)

    decision = await shaper.check("calendar-mutation", "user-1", partition="session:user-1")

    assert decision.allowed is True
    assert decision.degraded is True


@pytest.mark.asyncio
async def test_storage_failure_fails_closed_by_default(fake_clock: FakeClock) -> None:
    policies = {"crawl": RateLimitPolicy(limit=1, window_seconds=60)}
    shaper = TrafficShaper(_failing_limiter_factory(), policies, clock=fake_clock)

    with pytest.raises(StorageAppError):
        await shaper.check("crawl", "c")
