"""Test fixtures and configuration."""

import random
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from schemefeed.dependencies import get_scheme_cache
from schemefeed.main import create_app
from schemefeed.routers.schemes import _force_update_limiter
from schemefeed.services.change_oracle import ChangeOracle
from schemefeed.services.fetch_pipeline import FetchPipeline, IdFactory
from schemefeed.services.scheme_cache import SchemeCache
from tests.fakes import FailingSource, FakeClock


@pytest.fixture(autouse=True)
def _clear_rate_limiter():
    """Clear the force-update rate limiter before every test."""
    _force_update_limiter.clear()
    yield
    _force_update_limiter.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def failing_source() -> FailingSource:
    return FailingSource()


@pytest.fixture
def make_cache(clock: FakeClock):
    """Factory for a SchemeCache with a quiet oracle unless told otherwise.

    The default interval is large and jitter is zero, so the oracle only
    signals when a test asks it to.
    """

    def _make(
        primary=None,
        *,
        interval: int = 1000,
        jitter: float = 0.0,
        seed: int = 7,
        ttl: float = 60,
        max_records: int = 6,
    ) -> SchemeCache:
        rng = random.Random(seed)
        oracle = ChangeOracle(
            interval=interval, jitter_probability=jitter, rng=rng, clock=clock
        )
        pipeline = FetchPipeline(
            primary=primary if primary is not None else FailingSource(),
            rng=rng,
            max_records=max_records,
            id_factory=IdFactory(start=1000),
            clock=clock,
        )
        return SchemeCache(oracle, pipeline, ttl_seconds=ttl, clock=clock)

    return _make


@pytest.fixture
def scheme_cache(make_cache) -> SchemeCache:
    return make_cache()


@pytest_asyncio.fixture
async def client(scheme_cache: SchemeCache) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client bound to the scheme_cache fixture."""
    app = create_app()
    app.dependency_overrides[get_scheme_cache] = lambda: scheme_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
