"""Carrier health monitor — per-carrier call statistics.

Every carrier call attempt logged by the API client is also recorded here.
The counters back the carrier status report: success rate, mean latency,
last successful call and last error, plus a coarse operational status.

Attributes of :class:`CarrierStatus`:
    operational_status: ``up`` when the success rate is at least 95% (or the
        carrier has not been called yet), ``degraded`` at 50% or more,
        otherwise ``down``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from pydantic import Field

from matchedcover.carriers.models import WireModel

logger = logging.getLogger("matchedcover.monitoring")

_UP_THRESHOLD = 95.0
_DEGRADED_THRESHOLD = 50.0

OperationalStatus = Literal["up", "degraded", "down"]


class CarrierStatus(WireModel):
    """Point-in-time health summary for one carrier."""

    carrier_id: str
    operational_status: OperationalStatus
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    fallbacks: int = 0
    success_rate_percent: float = Field(default=100.0, ge=0.0, le=100.0)
    avg_response_time_ms: float = 0.0
    last_successful_call: datetime | None = None
    last_error: str | None = None
    calls_by_endpoint: dict[str, int] = Field(default_factory=dict)


@dataclass
class _Counters:
    total: int = 0
    successes: int = 0
    failures: int = 0
    fallbacks: int = 0
    total_latency_ms: float = 0.0
    last_success_at: datetime | None = None
    last_error: str | None = None
    by_endpoint: dict[str, int] = field(default_factory=dict)


class CarrierHealthMonitor:
    """Accumulates call outcomes per carrier for the lifetime of the service."""

    def __init__(self) -> None:
        self._counters: dict[str, _Counters] = {}

    def record_call(
        self,
        carrier_id: str,
        endpoint: str,
        success: bool,
        latency_ms: float,
        error: str | None = None,
    ) -> None:
        counters = self._counters.setdefault(carrier_id, _Counters())
        counters.total += 1
        counters.total_latency_ms += latency_ms
        counters.by_endpoint[endpoint] = counters.by_endpoint.get(endpoint, 0) + 1
        if success:
            counters.successes += 1
            counters.last_success_at = datetime.now(timezone.utc)
        else:
            counters.failures += 1
            counters.last_error = error

    def record_fallback(self, carrier_id: str) -> None:
        self._counters.setdefault(carrier_id, _Counters()).fallbacks += 1

    def status(self, carrier_id: str) -> CarrierStatus:
        counters = self._counters.get(carrier_id)
        if counters is None or counters.total == 0:
            return CarrierStatus(
                carrier_id=carrier_id,
                operational_status="up",
                fallbacks=counters.fallbacks if counters else 0,
            )

        rate = round(counters.successes / counters.total * 100, 1)
        if rate >= _UP_THRESHOLD:
            op_status: OperationalStatus = "up"
        elif rate >= _DEGRADED_THRESHOLD:
            op_status = "degraded"
        else:
            op_status = "down"

        return CarrierStatus(
            carrier_id=carrier_id,
            operational_status=op_status,
            total_calls=counters.total,
            successful_calls=counters.successes,
            failed_calls=counters.failures,
            fallbacks=counters.fallbacks,
            success_rate_percent=rate,
            avg_response_time_ms=round(counters.total_latency_ms / counters.total, 1),
            last_successful_call=counters.last_success_at,
            last_error=counters.last_error,
            calls_by_endpoint=dict(counters.by_endpoint),
        )
