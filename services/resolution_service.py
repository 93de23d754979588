# ============================================================================
# RESOLUTION SERVICE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Tiered lookup with coordinate cache
# PURPOSE: Walk the tier chain in rank order and return the first series found
# CREATED: 15 SEP 2026
# ============================================================================
"""
Resolution Service

Orchestrates the fallback chain:

    NSRDB (Tier 1) → NASA POWER (Tier 2) → local grid (Tier 3)

Per tier:
    1. covers() is False   → record out_of_coverage, never invoke the tier
    2. cache key exists    → cache hit returns immediately
    3. resolver.resolve()  → success is cached and returned
    4. typed failure       → recorded, next tier

Live tiers are cached without a version. Tier 3 is cached only when the
caller pins a version_id, since ad-hoc queries follow whatever version is
active. The cache is best effort: read or write failures are logged and
never fail the lookup.

Usage:
    service = ResolutionService(pool)
    result = await service.resolve(-15.05, -47.02)
    result = await service.resolve_tier(TierName.NASA_POWER, 40.0, -3.7)
"""

from typing import List, Optional, Sequence

import psycopg
from psycopg_pool import AsyncConnectionPool

from core.config import CacheDefaults
from core.contracts import FailureReason, TierName
from core.errors import (
    CoverageError,
    IrradianceError,
    NotFoundError,
    ResolutionExhaustedError,
    TierAttempt,
)
from core.geo import round_key, validate_coordinates
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models.cache_entry import CacheEntry, CacheKey
from core.models.resolution import ResolutionResult, TierResult
from repositories.cache_repo import CoordinateCacheRepository
from services.resolvers import (
    LocalGridResolver,
    NasaPowerResolver,
    NsrdbResolver,
    TierResolver,
)

logger = get_logger(__name__, ComponentType.SERVICE)


class ResolutionService:
    """
    Tiered irradiance lookup.

    Constructor injection of AsyncConnectionPool; the cache repository and
    the default tier chain are built in __init__. Tests pass their own
    resolvers.
    """

    def __init__(
        self,
        pool: AsyncConnectionPool,
        resolvers: Optional[Sequence[TierResolver]] = None,
        cache_config: Optional[CacheDefaults] = None,
    ):
        self.pool = pool
        self.cache_config = cache_config or CacheDefaults.from_env()
        self.cache_repo = CoordinateCacheRepository(pool)

        if resolvers is None:
            resolvers = [NsrdbResolver(), NasaPowerResolver(), LocalGridResolver(pool)]
        self.resolvers: List[TierResolver] = sorted(resolvers, key=lambda r: r.tier.rank)

    @property
    def tiers(self) -> List[TierName]:
        """Tier names in fallback order."""
        return [r.tier for r in self.resolvers]

    def resolver_for(self, tier: TierName) -> TierResolver:
        for resolver in self.resolvers:
            if resolver.tier == tier:
                return resolver
        raise NotFoundError(f"Tier '{tier.value}' is not configured")

    # =========================================================================
    # ORCHESTRATED LOOKUP
    # =========================================================================

    async def resolve(
        self,
        lat: float,
        lon: float,
        dataset_code: Optional[str] = None,
        version_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ResolutionResult:
        """
        Resolve a 12-month series, falling back tier by tier.

        Raises:
            ValidationError: coordinates out of range
            ResolutionExhaustedError: every tier failed
        """
        lat, lon = validate_coordinates(lat, lon)
        attempts: List[TierAttempt] = []

        with log_context(
            operation="irradiance.lookup",
            correlation_id=correlation_id,
            dataset_code=dataset_code,
            version_id=version_id,
        ):
            logger.info(f"[LOOKUP] Resolving ({lat}, {lon}) across {len(self.resolvers)} tiers")

            for resolver in self.resolvers:
                tier = resolver.tier
                with log_context(tier=tier.value):
                    if not resolver.covers(lat, lon):
                        logger.debug(f"[LOOKUP] {tier.value} skipped: out of coverage")
                        attempts.append(TierAttempt(
                            tier=tier.value,
                            reason=FailureReason.OUT_OF_COVERAGE,
                            message="Coordinates outside coverage area",
                        ))
                        continue

                    try:
                        result = await self._resolve_with_cache(
                            resolver, lat, lon, dataset_code, version_id
                        )
                    except CoverageError as e:
                        logger.debug(f"[LOOKUP] {tier.value} out of coverage: {e.message}")
                        attempts.append(TierAttempt(tier.value, FailureReason.OUT_OF_COVERAGE, e.message))
                    except IrradianceError as e:
                        logger.warning(f"[LOOKUP] {tier.value} failed: {e.message}")
                        attempts.append(TierAttempt(
                            tier.value, e.reason or FailureReason.UPSTREAM_ERROR, e.message
                        ))
                    except Exception as e:
                        logger.exception(f"[LOOKUP] {tier.value} raised unexpectedly: {e}")
                        attempts.append(TierAttempt(
                            tier.value, FailureReason.UPSTREAM_ERROR, f"Unexpected error: {e}"
                        ))
                    else:
                        log_checkpoint("lookup_resolved", {
                            "source": result.source,
                            "cache_hit": result.cache_hit,
                            "skipped": [a.tier for a in attempts],
                        }, logger=logger)
                        return result

            error = ResolutionExhaustedError(attempts)
            logger.error(f"[LOOKUP] Exhausted: {error.message}")
            log_checkpoint("lookup_exhausted", {
                "attempts": [a.to_dict() for a in attempts],
            }, logger=logger)
            raise error

    # =========================================================================
    # SINGLE TIER
    # =========================================================================

    async def resolve_tier(
        self,
        tier: TierName,
        lat: float,
        lon: float,
        dataset_code: Optional[str] = None,
        version_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ResolutionResult:
        """
        One tier, same cache rules, no fallback. The tier's typed error
        propagates to the caller.
        """
        lat, lon = validate_coordinates(lat, lon)
        resolver = self.resolver_for(tier)

        with log_context(
            operation=f"irradiance.lookup.{tier.value}",
            correlation_id=correlation_id,
            tier=tier.value,
            dataset_code=dataset_code,
            version_id=version_id,
        ):
            if not resolver.covers(lat, lon):
                raise CoverageError(f"Coordinates outside {tier.value} coverage area")
            return await self._resolve_with_cache(resolver, lat, lon, dataset_code, version_id)

    # =========================================================================
    # CACHE
    # =========================================================================

    async def _resolve_with_cache(
        self,
        resolver: TierResolver,
        lat: float,
        lon: float,
        dataset_code: Optional[str],
        version_id: Optional[str],
    ) -> ResolutionResult:
        key = self.cache_key(resolver.tier, lat, lon, version_id)

        if key is not None:
            cached = await self._cache_get(key, dataset_code)
            if cached is not None:
                logger.info(f"[LOOKUP] Cache hit for {resolver.tier.value}")
                return ResolutionResult.from_tier(self._entry_to_result(cached), cache_hit=True)

        result = await resolver.resolve(lat, lon, dataset_code=dataset_code, version_id=version_id)

        if key is not None:
            await self._cache_put(key, result)
        return ResolutionResult.from_tier(result, cache_hit=False)

    def cache_key(
        self,
        tier: TierName,
        lat: float,
        lon: float,
        version_id: Optional[str] = None,
    ) -> Optional[CacheKey]:
        """
        Cache key for a lookup, or None when the lookup is not cacheable.

        Live tiers never carry a version. Tier 3 is keyed by the pinned
        version and uncached without one.
        """
        if not self.cache_config.enabled:
            return None
        precision = self.cache_config.precision
        lat_key = round_key(lat, precision)
        lon_key = round_key(lon, precision)
        if tier.is_live:
            return CacheKey(lat_key, lon_key, tier)
        if version_id is None:
            return None
        return CacheKey(lat_key, lon_key, tier, version_id)

    async def _cache_get(self, key: CacheKey, dataset_code: Optional[str]) -> Optional[CacheEntry]:
        try:
            entry = await self.cache_repo.get(key)
        except (psycopg.Error, ValueError) as e:
            logger.warning(f"[CACHE] Read failed, treating as miss: {e}")
            return None

        if entry is None:
            return None
        # A pinned version from another dataset must go through the resolver
        if (
            key.version_id is not None
            and dataset_code
            and entry.dataset_code
            and entry.dataset_code != dataset_code.strip().upper()
        ):
            return None
        return entry

    async def _cache_put(self, key: CacheKey, result: TierResult) -> None:
        entry = CacheEntry(
            lat_key=key.lat_key,
            lon_key=key.lon_key,
            method=key.method,
            version_id=key.version_id,
            version_tag=result.version_tag if key.version_id else None,
            dataset_code=result.dataset_code if key.version_id else None,
            series=result.series,
            point_lat=result.point_lat,
            point_lon=result.point_lon,
            distance_km=result.distance_km,
        )
        try:
            await self.cache_repo.put(entry)
        except psycopg.Error as e:
            logger.warning(f"[CACHE] Write failed for {key.method.value}: {e}")

    @staticmethod
    def _entry_to_result(entry: CacheEntry) -> TierResult:
        return TierResult(
            tier=entry.method,
            series=entry.series,
            point_lat=entry.point_lat,
            point_lon=entry.point_lon,
            distance_km=entry.distance_km,
            version_id=entry.version_id,
            version_tag=entry.version_tag,
            dataset_code=entry.dataset_code,
        )


__all__ = ["ResolutionService"]
