"""Scheme cache controller. Owns the authoritative snapshot and refreshes it lazily.

Refresh happens inside ``get`` when the snapshot is missing, older than
the TTL, forced, or the change oracle signals new upstream content. At
most one refresh runs at a time; concurrent callers await the in-flight
refresh instead of hitting the upstream again (thundering herd
protection). A caller whose oracle signals an update does not settle
for a quiet refresh already in flight: it waits for it and refreshes
again. No exception escapes ``get``: failures are answered with the last
good snapshot marked stale, or with the static baseline on a cold start.
"""

import asyncio
import enum
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from schemefeed.config import Settings
from schemefeed.schemas.scheme import Scheme
from schemefeed.services.catalog import BASE_SCHEMES
from schemefeed.services.change_oracle import ChangeOracle, RefreshState, utcnow
from schemefeed.services.fetch_pipeline import FetchPipeline
from schemefeed.services.generative_source import GenerativeSource
from schemefeed.services.scheme_diff import diff_schemes

logger = logging.getLogger(__name__)


class FeedSource(str, enum.Enum):
    """Provenance of the records handed to a caller."""

    GENERATIVE = "generative"
    SYNTHETIC = "synthetic"
    BASELINE = "baseline"
    CACHE = "cache"
    STALE_CACHE = "stale_cache"
    BASE_DATA = "base_data"


@dataclass(frozen=True)
class Snapshot:
    records: tuple[Scheme, ...]
    timestamp: datetime
    source: FeedSource
    new_records: tuple[Scheme, ...] = ()


@dataclass(frozen=True)
class CacheResult:
    records: tuple[Scheme, ...]
    cached: bool
    stale: bool
    new_records: tuple[Scheme, ...]
    source: FeedSource
    timestamp: datetime

    @property
    def fresh(self) -> bool:
        """True when the records come from a refresh committed by this call."""
        return not self.cached and self.source is not FeedSource.BASE_DATA


@dataclass(frozen=True)
class RefreshStatus:
    update_check_counter: int
    last_oracle_signal_at: datetime | None
    next_update_check: int
    cached_count: int
    has_pending_updates: bool
    snapshot_timestamp: datetime | None
    refresh_in_flight: bool


class SchemeCache:
    """In-memory scheme cache with TTL, oracle-driven and forced refresh."""

    def __init__(
        self,
        oracle: ChangeOracle,
        pipeline: FetchPipeline,
        ttl_seconds: float = 60,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.oracle = oracle
        self.pipeline = pipeline
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._current: Snapshot | None = None
        self._previous: Snapshot | None = None
        self._inflight: asyncio.Future | None = None
        self._inflight_signalled = False

    @property
    def current(self) -> Snapshot | None:
        return self._current

    @property
    def previous(self) -> Snapshot | None:
        return self._previous

    @property
    def state(self) -> RefreshState:
        return self.oracle.state

    def _is_expired(self, snapshot: Snapshot) -> bool:
        return self._clock() - snapshot.timestamp > self.ttl

    async def get(self, force: bool = False, check_updates: bool = False) -> CacheResult:
        """Return cached schemes, refreshing first when needed."""
        oracle_says_updated = self.oracle.should_refresh()
        if check_updates:
            logger.debug("Update check requested (oracle says updated: %s)", oracle_says_updated)

        snapshot = self._current
        needs_refresh = (
            oracle_says_updated
            or force
            or snapshot is None
            or self._is_expired(snapshot)
        )
        if not needs_refresh:
            return CacheResult(
                records=snapshot.records,
                cached=True,
                stale=False,
                new_records=(),
                source=FeedSource.CACHE,
                timestamp=snapshot.timestamp,
            )

        return await self._refresh_once(oracle_says_updated)

    async def _refresh_once(self, oracle_says_updated: bool) -> CacheResult:
        while True:
            flight = self._active_flight()
            if flight is None:
                flight = asyncio.ensure_future(self._refresh(oracle_says_updated))
                self._inflight = flight
                self._inflight_signalled = oracle_says_updated
                flight.add_done_callback(self._clear_inflight)
                break
            if oracle_says_updated and not self._inflight_signalled:
                # The quiet flight cannot carry this update; refresh again after it
                logger.info("Update signal arrived during a quiet refresh, queueing another")
                await asyncio.shield(flight)
                continue
            logger.debug("Joining in-flight scheme refresh")
            break
        # A cancelled caller must not cancel the refresh the others are awaiting
        return await asyncio.shield(flight)

    def _active_flight(self) -> asyncio.Future | None:
        flight = self._inflight
        if flight is None or flight.done():
            return None
        return flight

    def _clear_inflight(self, flight: asyncio.Future) -> None:
        if self._inflight is flight:
            self._inflight = None

    async def _refresh(self, oracle_says_updated: bool) -> CacheResult:
        logger.info("Refreshing schemes (oracle says updated: %s)", oracle_says_updated)
        try:
            result = await self.pipeline.fetch(oracle_says_updated)
        except Exception:
            logger.exception("Scheme refresh failed at every tier")
            return self._fallback()

        previous_records = self._current.records if self._current is not None else ()
        new_records = tuple(diff_schemes(previous_records, result.schemes))
        snapshot = Snapshot(
            records=result.schemes,
            timestamp=self._clock(),
            source=FeedSource(result.tier.value),
            new_records=new_records,
        )
        # Single reference swap; readers see either the old or the new snapshot
        self._previous, self._current = self._current, snapshot
        logger.info(
            "Committed %d schemes from %s tier (%d new)",
            len(snapshot.records),
            snapshot.source.value,
            len(new_records),
        )
        return CacheResult(
            records=snapshot.records,
            cached=False,
            stale=False,
            new_records=new_records,
            source=snapshot.source,
            timestamp=snapshot.timestamp,
        )

    def _fallback(self) -> CacheResult:
        snapshot = self._current
        if snapshot is not None:
            logger.warning("Serving stale schemes captured at %s", snapshot.timestamp.isoformat())
            return CacheResult(
                records=snapshot.records,
                cached=True,
                stale=True,
                new_records=(),
                source=FeedSource.STALE_CACHE,
                timestamp=snapshot.timestamp,
            )

        logger.warning("No snapshot available, serving baseline schemes without caching")
        return CacheResult(
            records=BASE_SCHEMES,
            cached=False,
            stale=False,
            new_records=(),
            source=FeedSource.BASE_DATA,
            timestamp=self._clock(),
        )

    def force_upstream_event(self) -> datetime:
        """Simulate an upstream release; the next ``get`` sees the oracle signal."""
        return self.oracle.force_signal()

    def status(self) -> RefreshStatus:
        next_check = self.oracle.calls_until_signal()
        snapshot = self._current
        return RefreshStatus(
            update_check_counter=self.state.update_check_counter,
            last_oracle_signal_at=self.state.last_oracle_signal_at,
            next_update_check=next_check,
            cached_count=len(snapshot.records) if snapshot is not None else 0,
            has_pending_updates=next_check == 1,
            snapshot_timestamp=snapshot.timestamp if snapshot is not None else None,
            refresh_in_flight=self._active_flight() is not None,
        )


def build_scheme_cache(settings: Settings) -> SchemeCache:
    """Wire a SchemeCache from application settings."""
    rng = random.Random(settings.random_seed)
    oracle = ChangeOracle(
        interval=settings.update_check_interval,
        jitter_probability=settings.update_jitter_probability,
        rng=rng,
    )
    pipeline = FetchPipeline(
        primary=GenerativeSource(settings),
        rng=rng,
        max_records=settings.scheme_max_records,
    )
    return SchemeCache(oracle, pipeline, ttl_seconds=settings.scheme_cache_ttl_seconds)
