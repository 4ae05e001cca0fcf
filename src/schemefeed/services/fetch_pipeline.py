"""Fallback fetch pipeline: generative tier, then synthetic tier, then baseline.

Each tier is tried only when the previous one raised. The baseline tier
cannot fail, so ``fetch`` always returns a scheme list.
"""

import enum
import itertools
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from schemefeed.schemas.scheme import GeneratedScheme, Scheme
from schemefeed.services.catalog import (
    BASE_SCHEMES,
    BUDGETS,
    NEW_SCHEME_TEMPLATES,
    SECTORS,
    SUPPLEMENTARY_SCHEMES,
    UPDATED_SUFFIX,
)
from schemefeed.services.change_oracle import utcnow
from schemefeed.services.generative_source import SourceUnavailable

logger = logging.getLogger(__name__)


class SourceTier(str, enum.Enum):
    GENERATIVE = "generative"
    SYNTHETIC = "synthetic"
    BASELINE = "baseline"


class PipelineExhausted(Exception):
    """The synthetic tier failed; only the static baseline remains."""


class PrimarySource(Protocol):
    async def fetch(self, oracle_says_updated: bool) -> list[GeneratedScheme]: ...


@dataclass(frozen=True)
class FetchResult:
    schemes: tuple[Scheme, ...]
    tier: SourceTier


class IdFactory:
    """Monotonic ids seeded from the wall clock, unique for the process lifetime."""

    def __init__(self, start: int | None = None) -> None:
        self._counter = itertools.count(start if start is not None else int(time.time() * 1000))

    def __call__(self) -> int:
        return next(self._counter)


class SyntheticSource:
    """Deterministic local tier: the baseline dressed up to look updated."""

    def __init__(self, rng: random.Random, id_factory: IdFactory) -> None:
        self._rng = rng
        self._next_id = id_factory

    def fetch(self, oracle_says_updated: bool) -> list[Scheme]:
        schemes = []
        for base in BASE_SCHEMES:
            if oracle_says_updated:
                schemes.append(
                    base.model_copy(
                        update={
                            "description": f"{base.description} {UPDATED_SUFFIX}",
                            "version": f"2.{self._rng.randrange(3)}",
                        }
                    )
                )
            else:
                schemes.append(base)

        for extra in SUPPLEMENTARY_SCHEMES:
            schemes.append(
                Scheme(
                    id=self._next_id(),
                    title=extra.title,
                    description=(
                        extra.updated_description if oracle_says_updated else extra.description
                    ),
                    category=extra.category,
                    version=extra.updated_version if oracle_says_updated else extra.version,
                )
            )
        return schemes


def synthesize_new_schemes(
    rng: random.Random,
    id_factory: IdFactory,
    today: datetime,
) -> list[Scheme]:
    """Create 1-2 brand-new schemes from the template library.

    Sector and budget are drawn independently for every scheme.
    """
    count = rng.randint(1, 2)
    schemes = []
    for _ in range(count):
        template = rng.choice(NEW_SCHEME_TEMPLATES)
        sector = rng.choice(SECTORS)
        budget = rng.choice(BUDGETS)
        schemes.append(
            Scheme(
                id=id_factory(),
                title=template.title.replace("%SECTOR%", sector),
                description=(
                    template.description.replace("%SECTOR%", sector).replace("%BUDGET%", budget)
                ),
                category=template.category,
                version="1.0",
                is_new=True,
                is_brand_new=True,
                launch_date=today.date(),
            )
        )
    return schemes


class FetchPipeline:
    """Produces a candidate scheme set by walking the tier chain."""

    def __init__(
        self,
        primary: PrimarySource,
        rng: random.Random,
        max_records: int = 6,
        synthetic: SyntheticSource | None = None,
        id_factory: IdFactory | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.max_records = max_records
        self._primary = primary
        self._rng = rng
        self._next_id = id_factory or IdFactory()
        self._synthetic = synthetic or SyntheticSource(rng, self._next_id)
        self._clock = clock

    async def _fetch_tiers(self, oracle_says_updated: bool) -> tuple[list[Scheme], SourceTier]:
        try:
            generated = await self._primary.fetch(oracle_says_updated)
            return [self._adopt(g) for g in generated], SourceTier.GENERATIVE
        except SourceUnavailable as exc:
            logger.warning("Generative tier unavailable, using synthetic data: %s", exc)
        except Exception:
            logger.exception("Generative tier failed unexpectedly, using synthetic data")

        try:
            return self._fetch_synthetic(oracle_says_updated), SourceTier.SYNTHETIC
        except PipelineExhausted:
            logger.exception("Falling back to baseline schemes")
            return list(BASE_SCHEMES), SourceTier.BASELINE

    def _fetch_synthetic(self, oracle_says_updated: bool) -> list[Scheme]:
        try:
            return self._synthetic.fetch(oracle_says_updated)
        except Exception as exc:
            raise PipelineExhausted("synthetic tier failed") from exc

    def _adopt(self, generated: GeneratedScheme) -> Scheme:
        return Scheme(
            id=generated.id if generated.id is not None else self._next_id(),
            title=generated.title,
            description=generated.description,
            category=generated.category,
            version=generated.version,
        )

    async def fetch(self, oracle_says_updated: bool) -> FetchResult:
        schemes, tier = await self._fetch_tiers(oracle_says_updated)
        now = self._clock()

        if oracle_says_updated:
            fresh = synthesize_new_schemes(self._rng, self._next_id, now)[: self.max_records]
            keep = max(0, self.max_records - len(fresh))
            schemes = fresh + schemes[:keep]
            logger.info("Added %d new government schemes", len(fresh))

        stamped = tuple(
            scheme.model_copy(
                update={
                    "last_updated": now,
                    "version": f"2.{self._rng.randrange(5)}",
                    "is_updated": oracle_says_updated,
                    "is_new": oracle_says_updated and index < 2,
                }
            )
            for index, scheme in enumerate(schemes)
        )
        return FetchResult(schemes=stamped, tier=tier)
