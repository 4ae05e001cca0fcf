"""Scheme feed endpoints.

Every read answers 200 with the best data available; freshness is
reported through ``cached``/``stale``/``source`` rather than status codes.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from schemefeed.config import get_settings
from schemefeed.dependencies import get_scheme_cache
from schemefeed.schemas.feed import (
    ForceUpdateResponse,
    SchemeFeedResponse,
    UpdateStatusResponse,
)
from schemefeed.services.rate_limit import InMemoryRateLimiter
from schemefeed.services.scheme_cache import CacheResult, FeedSource, SchemeCache

router = APIRouter(prefix="/api/schemes", tags=["schemes"])

_force_update_limiter = InMemoryRateLimiter(
    max_requests=get_settings().force_update_rate_limit_per_minute,
    window_seconds=60,
)


def _check_rate_limit(request: Request) -> None:
    """Enforce per-IP rate limit on the force-update trigger."""
    client_ip = request.client.host if request.client else "unknown"
    if not _force_update_limiter.is_allowed(client_ip):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Try again later.",
        )


def _message(result: CacheResult) -> str:
    if result.stale:
        return "Using previous data - update service unavailable"
    if result.source is FeedSource.BASE_DATA:
        return "Using base scheme data"
    if result.cached:
        return "Returning cached schemes"
    if result.new_records:
        return f"Government has updated {len(result.new_records)} schemes!"
    return "Latest schemes loaded"


def _feed_response(result: CacheResult, cache: SchemeCache) -> SchemeFeedResponse:
    return SchemeFeedResponse(
        data=list(result.records),
        cached=result.cached,
        stale=result.stale,
        source=result.source.value,
        real_time=result.fresh,
        has_updates=bool(result.new_records),
        new_schemes_count=len(result.new_records),
        new_schemes=list(result.new_records),
        last_government_update=cache.state.last_oracle_signal_at,
        count=len(result.records),
        timestamp=result.timestamp,
        message=_message(result),
    )


@router.get("", response_model=SchemeFeedResponse)
async def get_schemes(
    force: bool = False,
    checkupdates: bool = False,
    cache: SchemeCache = Depends(get_scheme_cache),
) -> SchemeFeedResponse:
    """Current government schemes.

    ``force=true`` bypasses the TTL; ``checkupdates=true`` asks for an
    explicit update check.
    """
    result = await cache.get(force=force, check_updates=checkupdates)
    return _feed_response(result, cache)


@router.get("/force-update", response_model=ForceUpdateResponse)
async def force_update(
    request: Request,
    cache: SchemeCache = Depends(get_scheme_cache),
) -> ForceUpdateResponse:
    """Simulate a government release and refresh immediately."""
    _check_rate_limit(request)

    update_time = cache.force_upstream_event()
    result = await cache.get(force=True, check_updates=True)
    feed = _feed_response(result, cache)
    return ForceUpdateResponse(
        message="Government update simulation triggered",
        update_time=update_time,
        new_schemes=feed.new_schemes,
        data=feed,
    )


@router.get("/update-status", response_model=UpdateStatusResponse)
async def update_status(
    cache: SchemeCache = Depends(get_scheme_cache),
) -> UpdateStatusResponse:
    """Refresh bookkeeping. Read-only: never triggers a refresh."""
    refresh_status = cache.status()
    return UpdateStatusResponse(
        last_government_update=refresh_status.last_oracle_signal_at,
        update_check_counter=refresh_status.update_check_counter,
        next_update_check=refresh_status.next_update_check,
        cached_schemes_count=refresh_status.cached_count,
        has_pending_updates=refresh_status.has_pending_updates,
        snapshot_timestamp=refresh_status.snapshot_timestamp,
        refresh_in_flight=refresh_status.refresh_in_flight,
    )
