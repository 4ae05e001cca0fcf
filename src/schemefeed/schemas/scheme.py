"""Scheme record schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Scheme(BaseModel):
    """One government scheme as served to callers.

    Immutable so a committed snapshot can be shared between readers
    without copying.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: int | str
    title: str = Field(min_length=1)
    description: str = ""
    category: str = ""
    version: str = ""
    last_updated: datetime | None = None
    launch_date: date | None = None
    is_new: bool = False
    is_brand_new: bool = False
    is_updated: bool = False
    detected_as_new: bool = False


class GeneratedScheme(BaseModel):
    """A scheme as returned by the generative upstream.

    The upstream is free-form, so ids are optional and numeric versions
    are accepted and coerced to strings. Unknown keys are ignored.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    id: int | str | None = None
    title: str = Field(min_length=1)
    description: str = ""
    category: str = ""
    version: str = ""
