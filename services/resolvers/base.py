# ============================================================================
# TIER RESOLVER BASE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Abstract tier contract and shared HTTP plumbing
# PURPOSE: One interface for every irradiance source in the fallback chain
# CREATED: 15 SEP 2026
# ============================================================================
"""
Tier Resolver Base

Every tier implements:

    covers(lat, lon) -> bool          cheap, no I/O
    resolve(lat, lon, ...) -> TierResult or raises an IrradianceError

The orchestrator holds an ordered list of resolvers and never needs to know
which source is behind each one.

LiveTierResolver adds a single GET helper around httpx.AsyncClient that
turns transport failures, timeouts and non-2xx responses into UpstreamError.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional

import httpx

from core.config import TierDefaults
from core.contracts import TierName
from core.errors import UpstreamError
from core.logging import ComponentType, get_logger
from core.models.resolution import TierResult

logger = get_logger(__name__, ComponentType.RESOLVER)


class TierResolver(ABC):
    """Abstract irradiance source."""

    tier: ClassVar[TierName]

    def covers(self, lat: float, lon: float) -> bool:
        """Whether this tier can answer for the coordinate at all."""
        return True

    @abstractmethod
    async def resolve(
        self,
        lat: float,
        lon: float,
        dataset_code: Optional[str] = None,
        version_id: Optional[str] = None,
    ) -> TierResult:
        """
        Produce a 12-month series for the coordinate.

        Raises:
            CoverageError, UpstreamError, EmptyResultError,
            NotFoundError, ValidationError
        """


class LiveTierResolver(TierResolver):
    """Tier backed by an external HTTP API."""

    def __init__(self, config: Optional[TierDefaults] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            config: tier settings, from the environment by default
            client: shared AsyncClient for bulk callers; without one each
                request opens and closes its own
        """
        self.config = config or TierDefaults.from_env()
        self.client = client
        self._timeout = httpx.Timeout(
            self.config.request_timeout_seconds,
            connect=self.config.connect_timeout_seconds,
        )

    async def _get(
        self,
        url: str,
        params: Dict[str, Any],
        accept: str = "application/json",
    ) -> httpx.Response:
        """
        Issue one GET and return the 2xx response.

        Raises:
            UpstreamError: timeout, transport failure, or non-2xx status
        """
        tag = self.tier.value.upper()
        headers = {"Accept": accept, "User-Agent": self.config.user_agent}
        started = time.monotonic()

        try:
            if self.client is not None:
                resp = await self.client.get(
                    url, params=params, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"[{tag}] Upstream timeout after {self.config.request_timeout_seconds}s: {e}")
            raise UpstreamError(f"{self.tier.value} request timed out")
        except httpx.HTTPError as e:
            logger.warning(f"[{tag}] Upstream unreachable: {e}")
            raise UpstreamError(f"{self.tier.value} request failed: {e}")

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"[{tag}] Upstream response {resp.status_code} ({elapsed_ms}ms)")

        if not resp.is_success:
            logger.error(f"[{tag}] Upstream error {resp.status_code}: {resp.text[:500]}")
            raise UpstreamError(
                f"{self.tier.value} API error: {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp
