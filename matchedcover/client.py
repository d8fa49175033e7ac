"""Carrier API client — one authenticated HTTP call to one carrier endpoint.

Wraps a shared ``httpx.AsyncClient`` with:
  - Per-carrier base URL, bearer auth, partner id and extra headers.
  - A per-carrier timeout enforced by httpx.
  - Failure classification into :class:`~matchedcover.errors.CarrierApiError`.
  - A single fixed-delay retry of transient failures via tenacity.
  - Schema validation of the 2xx body against the endpoint's response model.
  - An optional fallback callable used once retries are exhausted.

Every attempt, successful or not, is logged and recorded with the
:class:`~matchedcover.monitoring.CarrierHealthMonitor`.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from matchedcover.carriers.api_config import CarrierApiConfigStore
from matchedcover.carriers.models import CarrierApiConfig, CarrierConfig
from matchedcover.config import Settings, settings as default_settings
from matchedcover.errors import CarrierApiError, CarrierConfigurationError
from matchedcover.monitoring import CarrierHealthMonitor

logger = logging.getLogger("matchedcover.client")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, CarrierApiError) and exc.retryable


def generate_request_id() -> str:
    """Return a process-unique request id for the ``X-Request-ID`` header."""
    return f"MCG_{uuid.uuid4().hex}"


class CarrierApiClient:
    """Performs ``POST {base}/{endpoint}`` calls against carrier APIs.

    Parameters
    ----------
    config_store:
        Source of per-carrier :class:`CarrierApiConfig`.
    config:
        Settings supplying partner id, source tag and retry tunables.
    http_client:
        Optional pre-built ``httpx.AsyncClient``.  When omitted one is created
        lazily and closed by :meth:`aclose`.
    monitor:
        Health monitor receiving every attempt outcome.
    max_attempts:
        Total attempts per call, overriding ``config.carrier_max_attempts``.
    retry_delay:
        Fixed wait between attempts in seconds, overriding
        ``config.carrier_retry_delay_seconds``.
    """

    def __init__(
        self,
        config_store: CarrierApiConfigStore,
        config: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        monitor: CarrierHealthMonitor | None = None,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        cfg = config or default_settings
        self._store = config_store
        self._settings = cfg
        self._http = http_client
        self._owns_http = http_client is None
        self.monitor = monitor or CarrierHealthMonitor()
        self.max_attempts = max_attempts if max_attempts is not None else cfg.carrier_max_attempts
        self.retry_delay = retry_delay if retry_delay is not None else cfg.carrier_retry_delay_seconds
        self._last_call_at: dict[str, float] = {}
        self._throttle_locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None
            logger.info("Carrier HTTP client closed")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def call(
        self,
        carrier: CarrierConfig,
        endpoint: str,
        payload: dict[str, Any],
        response_model: type[ModelT],
        fallback: Callable[[], ModelT] | None = None,
    ) -> ModelT:
        """Call *endpoint* on *carrier* and return the validated response.

        Parameters
        ----------
        carrier:
            Target carrier.
        endpoint:
            ``"quote"``, ``"bind"`` or ``"claim"``.
        payload:
            Normalized camelCase request body; ``timestamp`` and ``source``
            are added here.
        response_model:
            Model the 2xx body must validate against.
        fallback:
            Called to produce the result when the call fails after retries.
            When ``None`` the final :class:`CarrierApiError` propagates.

        Raises
        ------
        CarrierConfigurationError
            No API configuration exists for the carrier.  Never retried.
        CarrierApiError
            The call failed and no fallback was supplied.
        """
        api_config = self._store.get_config(carrier.carrier_id)
        if api_config is None:
            logger.error("No API configuration for carrier=%s endpoint=%s", carrier.carrier_id, endpoint)
            raise CarrierConfigurationError(carrier.carrier_id)

        url = f"{api_config.api_base_url.rstrip('/')}/{endpoint}"
        result: ModelT | None = None
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_retryable),
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_fixed(self.retry_delay),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    result = await self._attempt(
                        carrier,
                        api_config,
                        endpoint,
                        url,
                        payload,
                        response_model,
                        attempt.retry_state.attempt_number,
                    )
        except CarrierApiError as exc:
            if fallback is None:
                raise
            logger.warning(
                "Carrier %s %s failed (%s: %s); returning fallback",
                carrier.carrier_id,
                endpoint,
                exc.code,
                exc.message,
            )
            self.monitor.record_fallback(carrier.carrier_id)
            return fallback()
        return result

    # ------------------------------------------------------------------
    # Single attempt
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        carrier: CarrierConfig,
        api_config: CarrierApiConfig,
        endpoint: str,
        url: str,
        payload: dict[str, Any],
        response_model: type[ModelT],
        attempt_number: int,
    ) -> ModelT:
        await self._throttle(carrier.carrier_id, api_config)

        body = {
            **payload,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": self._settings.platform_source,
        }
        logger.debug("Calling %s API: %s (attempt %d)", carrier.name, endpoint, attempt_number)

        start = time.monotonic()
        try:
            response = await self._get_http().post(
                url,
                json=body,
                headers=self._headers(api_config),
                timeout=api_config.timeout,
            )
        except httpx.TimeoutException as exc:
            error = CarrierApiError(
                "TIMEOUT",
                f"Request timed out after {api_config.timeout:g}s",
                retryable=True,
            )
            self._log_call(carrier.carrier_id, endpoint, attempt_number, False, 0, start, error.message)
            raise error from exc
        except httpx.RequestError as exc:
            error = CarrierApiError("NETWORK_ERROR", f"{type(exc).__name__}: {exc}", retryable=True)
            self._log_call(carrier.carrier_id, endpoint, attempt_number, False, 0, start, error.message)
            raise error from exc

        status = response.status_code
        if not response.is_success:
            error = CarrierApiError.from_status(status, response.reason_phrase)
            self._log_call(carrier.carrier_id, endpoint, attempt_number, False, status, start, error.message)
            raise error

        try:
            result = response_model.model_validate(response.json())
        except ValidationError as exc:
            error = CarrierApiError(
                "INVALID_RESPONSE",
                f"Carrier {endpoint} response failed validation",
                status=status,
                details=[f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()],
            )
            self._log_call(carrier.carrier_id, endpoint, attempt_number, False, status, start, error.message)
            raise error from exc
        except ValueError as exc:
            error = CarrierApiError("INVALID_RESPONSE", f"Carrier {endpoint} response is not JSON", status=status)
            self._log_call(carrier.carrier_id, endpoint, attempt_number, False, status, start, error.message)
            raise error from exc

        self._log_call(carrier.carrier_id, endpoint, attempt_number, True, status, start)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _headers(self, api_config: CarrierApiConfig) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_config.api_key}",
            "X-Partner-ID": api_config.partner_id or self._settings.partner_id,
            "X-Request-ID": generate_request_id(),
            **api_config.headers,
        }

    async def _throttle(self, carrier_id: str, api_config: CarrierApiConfig) -> None:
        """Space consecutive calls to one carrier by ``min_interval_seconds``."""
        interval = api_config.min_interval_seconds
        if interval <= 0:
            return
        lock = self._throttle_locks.setdefault(carrier_id, asyncio.Lock())
        async with lock:
            last = self._last_call_at.get(carrier_id)
            if last is not None:
                wait = interval - (time.monotonic() - last)
                if wait > 0:
                    logger.debug("Throttling carrier=%s for %.2fs", carrier_id, wait)
                    await asyncio.sleep(wait)
            self._last_call_at[carrier_id] = time.monotonic()

    def _log_call(
        self,
        carrier_id: str,
        endpoint: str,
        attempt_number: int,
        success: bool,
        status: int,
        start: float,
        error: str | None = None,
    ) -> None:
        latency_ms = (time.monotonic() - start) * 1000
        self.monitor.record_call(carrier_id, endpoint, success, latency_ms, error)
        log = logger.info if success else logger.warning
        log(
            "Carrier API call carrier=%s endpoint=%s attempt=%d success=%s status=%d latency=%.1fms error=%s",
            carrier_id,
            endpoint,
            attempt_number,
            success,
            status,
            latency_ms,
            error,
        )
