"""Schemas for the scheme feed endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from schemefeed.schemas.scheme import Scheme


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SchemeFeedResponse(_CamelModel):
    """Response for GET /api/schemes."""

    success: bool = True
    data: list[Scheme]
    cached: bool
    stale: bool = False
    source: str
    real_time: bool = False
    has_updates: bool = False
    new_schemes_count: int = 0
    new_schemes: list[Scheme] = []
    last_government_update: datetime | None = None
    count: int
    timestamp: datetime
    message: str


class ForceUpdateResponse(_CamelModel):
    """Response for GET /api/schemes/force-update."""

    success: bool = True
    message: str
    update_time: datetime
    new_schemes: list[Scheme]
    data: SchemeFeedResponse


class UpdateStatusResponse(_CamelModel):
    """Response for GET /api/schemes/update-status."""

    success: bool = True
    last_government_update: datetime | None = None
    update_check_counter: int
    next_update_check: int
    cached_schemes_count: int
    has_pending_updates: bool
    snapshot_timestamp: datetime | None = None
    refresh_in_flight: bool = False
