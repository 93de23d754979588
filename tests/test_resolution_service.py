# ============================================================================
# RESOLUTION SERVICE TESTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tests - Tier fallback and coordinate cache rules
# PURPOSE: Verify ResolutionService with fake tiers and a mocked cache repo
# CREATED: 16 SEP 2026
# ============================================================================
"""
ResolutionService Tests

Fake resolvers stand in for the three tiers; the cache repository is
either an AsyncMock or a small in-memory double. No database, no network.

Run with:
    pytest tests/test_resolution_service.py -v
"""

import asyncio
import pytest
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import psycopg

from core.config import CacheDefaults
from core.contracts import FailureReason, TierName
from core.errors import (
    CoverageError,
    EmptyResultError,
    NotFoundError,
    ResolutionExhaustedError,
    UpstreamError,
    ValidationError,
)
from core.models.cache_entry import CacheKey
from core.models.resolution import TierResult
from core.models.series import MonthlySeries
from services.resolution_service import ResolutionService
from services.resolvers.base import TierResolver


# ============================================================================
# HELPERS
# ============================================================================

class FakeResolver(TierResolver):
    """Tier double: configurable coverage and outcome."""

    def __init__(self, tier, covers=True, result=None, error=None):
        self.tier = tier
        self._covers = covers
        self.calls = 0
        self._result = result
        self._error = error

    def covers(self, lat, lon):
        return self._covers

    async def resolve(self, lat, lon, dataset_code=None, version_id=None):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._result


class InMemoryCache:
    """Stands in for CoordinateCacheRepository."""

    def __init__(self):
        self.entries = {}

    async def get(self, key: CacheKey):
        return self.entries.get(key)

    async def put(self, entry):
        self.entries[entry.key] = entry


def _tier_result(tier, ghi=5.0, version_id=None, dataset_code=None, distance_km=0.0):
    return TierResult(
        tier=tier,
        series=MonthlySeries(ghi=[ghi] * 12, dhi=[1.5] * 12),
        point_lat=-15.05,
        point_lon=-47.02,
        distance_km=distance_km,
        version_id=version_id,
        version_tag="2017" if version_id else None,
        dataset_code=dataset_code,
    )


def _chain(nsrdb=None, power=None, local=None):
    return [
        nsrdb or FakeResolver(TierName.NSRDB, result=_tier_result(TierName.NSRDB, 5.8)),
        power or FakeResolver(TierName.NASA_POWER, result=_tier_result(TierName.NASA_POWER, 5.5)),
        local or FakeResolver(
            TierName.LOCAL_GRID,
            result=_tier_result(TierName.LOCAL_GRID, 5.2, "v-1", "INPE_2017_SUNDATA", 5.96),
        ),
    ]


def _build_service(resolvers, cache=None, enabled=True):
    svc = ResolutionService(MagicMock(), resolvers=resolvers,
                            cache_config=CacheDefaults(enabled=enabled))
    if cache is None:
        cache = AsyncMock()
        cache.get.return_value = None
    svc.cache_repo = cache
    return svc


# ============================================================================
# FALLBACK ORDER
# ============================================================================

class TestFallback:

    def test_tier1_success_short_circuits(self):
        resolvers = _chain()
        svc = _build_service(resolvers)

        result = asyncio.run(svc.resolve(-15.05, -47.02))

        assert result.source == "nsrdb"
        assert result.source_tier == 1
        assert result.cache_hit is False
        assert resolvers[1].calls == 0
        assert resolvers[2].calls == 0

    def test_resolvers_sorted_by_rank(self):
        resolvers = _chain()
        svc = _build_service(list(reversed(resolvers)))
        assert svc.tiers == [TierName.NSRDB, TierName.NASA_POWER, TierName.LOCAL_GRID]

    def test_out_of_coverage_tier_never_invoked(self):
        nsrdb = FakeResolver(TierName.NSRDB, covers=False)
        resolvers = _chain(nsrdb=nsrdb)
        svc = _build_service(resolvers)

        result = asyncio.run(svc.resolve(40.0, -3.7))

        assert result.source == "nasa_power_api"
        assert nsrdb.calls == 0
        assert resolvers[1].calls == 1

    def test_upstream_failure_falls_through(self):
        resolvers = _chain(
            nsrdb=FakeResolver(TierName.NSRDB, error=UpstreamError("503")),
            power=FakeResolver(TierName.NASA_POWER, error=EmptyResultError("no data")),
        )
        svc = _build_service(resolvers)

        result = asyncio.run(svc.resolve(-15.05, -47.02))

        assert result.source == "local_grid"
        assert result.distance_km == 5.96
        assert result.version_tag == "2017"

    def test_unexpected_exception_falls_through(self):
        resolvers = _chain(nsrdb=FakeResolver(TierName.NSRDB, error=RuntimeError("bug")))
        svc = _build_service(resolvers)
        result = asyncio.run(svc.resolve(-15.05, -47.02))
        assert result.source == "nasa_power_api"

    def test_all_tiers_fail(self):
        resolvers = _chain(
            nsrdb=FakeResolver(TierName.NSRDB, covers=False),
            power=FakeResolver(TierName.NASA_POWER, error=UpstreamError("timeout")),
            local=FakeResolver(TierName.LOCAL_GRID, error=NotFoundError("no active version")),
        )
        svc = _build_service(resolvers)

        with pytest.raises(ResolutionExhaustedError) as exc_info:
            asyncio.run(svc.resolve(40.0, -3.7))

        attempts = exc_info.value.attempts
        assert [a.tier for a in attempts] == ["nsrdb", "nasa_power_api", "local_grid"]
        assert [a.reason for a in attempts] == [
            FailureReason.OUT_OF_COVERAGE,
            FailureReason.UPSTREAM_ERROR,
            FailureReason.NOT_FOUND,
        ]

    def test_coverage_error_from_resolver_recorded(self):
        resolvers = _chain(
            nsrdb=FakeResolver(TierName.NSRDB, error=CoverageError("edge")),
            power=FakeResolver(TierName.NASA_POWER, error=UpstreamError("down")),
            local=FakeResolver(TierName.LOCAL_GRID, error=EmptyResultError("far")),
        )
        svc = _build_service(resolvers)
        with pytest.raises(ResolutionExhaustedError) as exc_info:
            asyncio.run(svc.resolve(-15.0, -47.0))
        reasons = [a.reason for a in exc_info.value.attempts]
        assert reasons[0] == FailureReason.OUT_OF_COVERAGE
        assert reasons[2] == FailureReason.EMPTY_RESULT

    def test_invalid_coordinates_rejected_before_any_tier(self):
        resolvers = _chain()
        svc = _build_service(resolvers)
        with pytest.raises(ValidationError):
            asyncio.run(svc.resolve(91.0, 0.0))
        assert all(r.calls == 0 for r in resolvers)

    def test_annual_average_same_on_every_path(self):
        for failing_tiers, source in ((0, "nsrdb"), (1, "nasa_power_api"), (2, "local_grid")):
            resolvers = _chain()
            for resolver in resolvers[:failing_tiers]:
                resolver._error = UpstreamError("down")
            svc = _build_service(resolvers)

            result = asyncio.run(svc.resolve(-15.05, -47.02))

            assert result.source == source
            assert result.annual_average == round(sum(result.series.values()) / 12, 4)


# ============================================================================
# CACHE
# ============================================================================

class TestCache:

    def test_second_lookup_is_cache_hit(self):
        resolvers = _chain()
        svc = _build_service(resolvers, cache=InMemoryCache())

        first = asyncio.run(svc.resolve(-15.05, -47.02))
        second = asyncio.run(svc.resolve(-15.050001, -47.020004))

        assert first.cache_hit is False
        assert second.cache_hit is True
        assert second.series == first.series
        assert second.dhi_series == first.dhi_series
        assert resolvers[0].calls == 1

    def test_live_tier_key_has_no_version(self):
        svc = _build_service(_chain())
        key = svc.cache_key(TierName.NASA_POWER, -15.05, -47.02, version_id="v-1")
        assert key == CacheKey(-150500, -470200, TierName.NASA_POWER, None)

    def test_local_grid_uncached_without_version(self):
        svc = _build_service(_chain())
        assert svc.cache_key(TierName.LOCAL_GRID, -15.05, -47.02) is None
        assert svc.cache_key(TierName.LOCAL_GRID, -15.05, -47.02, "v-1").version_id == "v-1"

    def test_disabled_cache(self):
        svc = _build_service(_chain(), enabled=False)
        assert svc.cache_key(TierName.NSRDB, -15.05, -47.02) is None
        asyncio.run(svc.resolve(-15.05, -47.02))
        svc.cache_repo.get.assert_not_called()
        svc.cache_repo.put.assert_not_called()

    def test_result_written_to_cache(self):
        svc = _build_service(_chain())
        asyncio.run(svc.resolve(-15.05, -47.02))

        entry = svc.cache_repo.put.call_args.args[0]
        assert entry.method == TierName.NSRDB
        assert (entry.lat_key, entry.lon_key) == (-150500, -470200)
        assert entry.version_id is None
        assert entry.series.ghi == [5.8] * 12

    def test_pinned_local_grid_hit_keeps_provenance(self):
        local = FakeResolver(
            TierName.LOCAL_GRID,
            result=_tier_result(TierName.LOCAL_GRID, 5.2, "v-1", "INPE_2017_SUNDATA", 5.96),
        )
        svc = _build_service([local], cache=InMemoryCache())

        asyncio.run(svc.resolve_tier(TierName.LOCAL_GRID, -15.05, -47.02, version_id="v-1"))
        hit = asyncio.run(svc.resolve_tier(TierName.LOCAL_GRID, -15.05, -47.02, version_id="v-1"))

        assert hit.cache_hit is True
        assert hit.version_tag == "2017"
        assert hit.dataset_code == "INPE_2017_SUNDATA"
        assert hit.distance_km == 5.96
        assert local.calls == 1

    def test_pinned_hit_for_other_dataset_is_a_miss(self):
        local = FakeResolver(
            TierName.LOCAL_GRID,
            result=_tier_result(TierName.LOCAL_GRID, 5.2, "v-1", "INPE_2017_SUNDATA"),
        )
        svc = _build_service([local], cache=InMemoryCache())

        asyncio.run(svc.resolve_tier(TierName.LOCAL_GRID, -15.0, -47.0, version_id="v-1"))
        asyncio.run(svc.resolve_tier(
            TierName.LOCAL_GRID, -15.0, -47.0,
            dataset_code="INPE_2009_10KM", version_id="v-1",
        ))
        assert local.calls == 2

    def test_cache_read_failure_is_a_miss(self):
        cache = AsyncMock()
        cache.get.side_effect = psycopg.OperationalError("connection lost")
        resolvers = _chain()
        svc = _build_service(resolvers, cache=cache)

        result = asyncio.run(svc.resolve(-15.05, -47.02))

        assert result.source == "nsrdb"
        assert result.cache_hit is False
        assert resolvers[0].calls == 1

    def test_cache_write_failure_does_not_fail_lookup(self):
        cache = AsyncMock()
        cache.get.return_value = None
        cache.put.side_effect = psycopg.OperationalError("read-only")
        svc = _build_service(_chain(), cache=cache)

        result = asyncio.run(svc.resolve(-15.05, -47.02))
        assert result.source == "nsrdb"


# ============================================================================
# SINGLE TIER
# ============================================================================

class TestResolveTier:

    def test_single_tier_no_fallback(self):
        resolvers = _chain(nsrdb=FakeResolver(TierName.NSRDB, error=UpstreamError("503")))
        svc = _build_service(resolvers)

        with pytest.raises(UpstreamError):
            asyncio.run(svc.resolve_tier(TierName.NSRDB, -15.05, -47.02))
        assert resolvers[1].calls == 0

    def test_out_of_coverage_raises(self):
        nsrdb = FakeResolver(TierName.NSRDB, covers=False)
        svc = _build_service(_chain(nsrdb=nsrdb))
        with pytest.raises(CoverageError):
            asyncio.run(svc.resolve_tier(TierName.NSRDB, 40.0, -3.7))
        assert nsrdb.calls == 0

    def test_requested_tier_used(self):
        svc = _build_service(_chain())
        result = asyncio.run(svc.resolve_tier(TierName.NASA_POWER, 40.0, -3.7))
        assert result.source == "nasa_power_api"
        assert result.method == "nasa_power_api"

    def test_unconfigured_tier(self):
        svc = _build_service([FakeResolver(TierName.NASA_POWER)])
        with pytest.raises(NotFoundError):
            svc.resolver_for(TierName.LOCAL_GRID)
