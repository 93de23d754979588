# ============================================================================
# COORDINATE CACHE REPOSITORY TESTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tests - Cache write rules for pinned versions
# PURPOSE: Verify pinned cache entries are only written for active versions
# CREATED: 18 SEP 2026
# ============================================================================
"""
CoordinateCacheRepository Tests

A recording connection double replaces the pool; statements are rendered
with psycopg.sql so the assertions read the SQL that would be sent.

Run with:
    pytest tests/test_cache_repo.py -v
"""

import asyncio
from contextlib import asynccontextmanager

from core.contracts import TierName
from core.models.cache_entry import CacheEntry
from core.models.series import MonthlySeries
from repositories.cache_repo import CoordinateCacheRepository


class _Result:
    def __init__(self, row):
        self._row = row

    async def fetchone(self):
        return self._row


class _RecordingConnection:
    """Answers the version status check with `active`; records every statement."""

    def __init__(self, active):
        self.active = active
        self.statements = []
        self.transactions = 0

    async def execute(self, query, params=None):
        text = query.as_string(None)
        self.statements.append((text, params))
        if "FOR SHARE" in text:
            return _Result((1,) if self.active else None)
        return _Result(None)

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield


class _Pool:
    def __init__(self, conn):
        self.conn = conn

    @asynccontextmanager
    async def connection(self):
        yield self.conn


def _entry(version_id=None):
    return CacheEntry(
        lat_key=-150500,
        lon_key=-470200,
        method=TierName.LOCAL_GRID if version_id else TierName.NASA_POWER,
        version_id=version_id,
        version_tag="2017" if version_id else None,
        dataset_code="INPE_2017_SUNDATA" if version_id else None,
        series=MonthlySeries.from_monthly({m: 5.0 for m in range(1, 13)}),
        point_lat=-15.0,
        point_lon=-47.0,
        distance_km=5.96,
    )


def _inserts(conn):
    return [text for text, _ in conn.statements if "INSERT INTO" in text]


class TestPut:

    def test_live_entry_written_without_version_check(self):
        conn = _RecordingConnection(active=False)
        repo = CoordinateCacheRepository(_Pool(conn))

        assert asyncio.run(repo.put(_entry())) is True
        assert len(conn.statements) == 1
        assert len(_inserts(conn)) == 1

    def test_pinned_entry_written_while_version_active(self):
        conn = _RecordingConnection(active=True)
        repo = CoordinateCacheRepository(_Pool(conn))

        assert asyncio.run(repo.put(_entry("v-1"))) is True

        check, params = conn.statements[0]
        assert "FOR SHARE" in check
        assert params == ("v-1", "active")
        assert len(_inserts(conn)) == 1
        assert conn.transactions == 1

    def test_pinned_entry_skipped_after_version_demoted(self):
        # Lookup resolved against v1, then a promotion demoted v1 before the write
        conn = _RecordingConnection(active=False)
        repo = CoordinateCacheRepository(_Pool(conn))

        assert asyncio.run(repo.put(_entry("v-1"))) is False
        assert _inserts(conn) == []
