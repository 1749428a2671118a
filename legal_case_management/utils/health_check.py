"""
Health check utilities for production monitoring.

Provides async health checks for the store and the optional SMS gateway.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from legal_case_management.config import get_settings
from legal_case_management.utils.dates import utc_now

logger = logging.getLogger(__name__)


class DependencyStatus:
    """Status of a single dependency."""

    def __init__(
        self,
        status: str,
        response_time_ms: float | None = None,
        error: str | None = None,
    ):
        self.status = status  # "up", "down", "degraded"
        self.response_time_ms = response_time_ms
        self.error = error
        self.last_checked = utc_now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "response_time_ms": self.response_time_ms,
            "error": self.error,
            "last_checked": self.last_checked.isoformat(),
        }


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def check_arangodb(store) -> DependencyStatus:
    """Run ``RETURN 1`` against the store."""
    start = time.perf_counter()
    try:
        await asyncio.wait_for(
            asyncio.to_thread(store.ping), timeout=get_settings().health_check_timeout_seconds
        )
        return DependencyStatus(status="up", response_time_ms=_elapsed_ms(start))
    except Exception as e:
        logger.error(f"ArangoDB health check failed: {e}", exc_info=True)
        return DependencyStatus(status="down", response_time_ms=_elapsed_ms(start), error=str(e))


async def check_sms_gateway(gateway) -> DependencyStatus:
    """The SMS gateway is optional, so problems only degrade overall health."""
    start = time.perf_counter()
    if gateway is None:
        return DependencyStatus(
            status="degraded", response_time_ms=_elapsed_ms(start), error="SMS gateway not configured"
        )
    try:
        reachable = await asyncio.wait_for(
            gateway.ping(), timeout=get_settings().health_check_timeout_seconds
        )
        if not reachable:
            return DependencyStatus(
                status="degraded", response_time_ms=_elapsed_ms(start), error="Gateway returned a server error"
            )
        return DependencyStatus(status="up", response_time_ms=_elapsed_ms(start))
    except Exception as e:
        logger.warning(f"SMS gateway health check failed: {e}")
        return DependencyStatus(status="degraded", response_time_ms=_elapsed_ms(start), error=str(e))


async def check_all_dependencies(store, sms_gateway=None) -> dict[str, DependencyStatus]:
    """Check all dependencies concurrently."""
    results = await asyncio.gather(
        check_arangodb(store),
        check_sms_gateway(sms_gateway),
        return_exceptions=True,
    )

    return {
        "arangodb": (
            results[0]
            if isinstance(results[0], DependencyStatus)
            else DependencyStatus("down", error=str(results[0]))
        ),
        "sms_gateway": (
            results[1]
            if isinstance(results[1], DependencyStatus)
            else DependencyStatus("degraded", error=str(results[1]))
        ),
    }


def calculate_overall_status(dependencies: dict[str, DependencyStatus]) -> str:
    """Calculate overall health status from dependency statuses."""
    statuses = [dep.status for dep in dependencies.values()]

    if "down" in statuses:
        return "unhealthy"
    elif "degraded" in statuses:
        return "degraded"
    else:
        return "healthy"
