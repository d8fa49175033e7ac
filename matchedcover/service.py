"""Carrier integration service — the single entry point for quoting, binding
and claims across all carriers.

:class:`CarrierIntegrationService` owns the registry, config store, cache,
API client, estimator and health monitor.  Construct it once at application
start-up and pass it by reference to every caller::

    service = CarrierIntegrationService()
    quotes = await service.get_multi_carrier_quotes(request)
    await service.close()

Quote failures are absorbed into fallback estimates so that aggregation
callers only ever see quotes (or an empty list).  Bind and claim failures
always propagate: a policy or claim confirmation is never synthesized.
"""

from __future__ import annotations

import asyncio
import logging

from matchedcover.carriers.api_config import CarrierApiConfigStore
from matchedcover.carriers.models import CarrierConfig
from matchedcover.carriers.registry import CarrierRegistry
from matchedcover.client import CarrierApiClient
from matchedcover.config import Settings, settings as default_settings
from matchedcover.errors import (
    CarrierCapabilityError,
    CarrierConfigurationError,
    CarrierError,
)
from matchedcover.monitoring import CarrierHealthMonitor, CarrierStatus
from matchedcover.quotes.cache import ResponseCache
from matchedcover.quotes.estimator import PremiumEstimator
from matchedcover.quotes.normalizer import (
    bind_payload,
    cache_key,
    claim_payload,
    quote_payload,
)
from matchedcover.quotes.schemas import (
    ClaimRequest,
    ClaimResponse,
    PolicyBindRequest,
    PolicyBindResponse,
    QuoteRequest,
    QuoteResponse,
)

logger = logging.getLogger("matchedcover.service")


class CarrierIntegrationService:
    """Multi-carrier quote aggregation, binding and claims.

    Every collaborator may be injected; omitted ones are built from
    *config*.

    Parameters
    ----------
    config:
        Settings used to build default collaborators.
    registry:
        Known carriers.
    config_store:
        Per-carrier API connection settings.
    cache:
        Response cache for quote, bind and claim results.
    client:
        Carrier API client.
    estimator:
        Premium estimator used for fallback quotes.
    monitor:
        Carrier health monitor; shared with the default client.
    """

    def __init__(
        self,
        config: Settings | None = None,
        registry: CarrierRegistry | None = None,
        config_store: CarrierApiConfigStore | None = None,
        cache: ResponseCache | None = None,
        client: CarrierApiClient | None = None,
        estimator: PremiumEstimator | None = None,
        monitor: CarrierHealthMonitor | None = None,
    ) -> None:
        cfg = config or default_settings
        # Registry and cache define __len__, so test against None explicitly
        self.registry = registry if registry is not None else CarrierRegistry.default(cfg)
        self.config_store = config_store if config_store is not None else CarrierApiConfigStore.default(cfg)
        self.cache = cache if cache is not None else ResponseCache(
            ttl_seconds=cfg.quote_cache_ttl_seconds,
            max_entries=cfg.quote_cache_max_entries,
        )
        if monitor is None:
            monitor = client.monitor if client is not None else CarrierHealthMonitor()
        self.monitor = monitor
        self.client = client if client is not None else CarrierApiClient(self.config_store, cfg, monitor=monitor)
        self.estimator = estimator or PremiumEstimator()
        logger.info("CarrierIntegrationService initialised (%d carriers)", len(self.registry))

    async def close(self) -> None:
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def get_available_carriers(self, product_type: str, state: str) -> list[CarrierConfig]:
        return self.registry.get_available_carriers(product_type, state)

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    async def get_multi_carrier_quotes(self, request: QuoteRequest) -> list[QuoteResponse]:
        """Quote every eligible carrier concurrently and return the results
        sorted by annual premium, lowest first.

        A carrier whose call raises is logged and left out; the other
        carriers' quotes are still returned.  An empty list is a valid
        outcome.
        """
        carriers = self.get_available_carriers(
            request.product_type, request.applicant.address.state
        )
        logger.info(
            "Quoting %d carriers for product=%s state=%s customer=%s",
            len(carriers),
            request.product_type,
            request.applicant.address.state,
            request.customer_id,
        )
        if not carriers:
            return []

        results = await asyncio.gather(
            *(self.get_carrier_quote(c.carrier_id, request) for c in carriers),
            return_exceptions=True,
        )

        quotes: list[QuoteResponse] = []
        for carrier, result in zip(carriers, results):
            if isinstance(result, Exception):
                logger.error(
                    "Quote from carrier=%s discarded: %s: %s",
                    carrier.carrier_id,
                    type(result).__name__,
                    result,
                )
                continue
            if isinstance(result, BaseException):
                raise result
            quotes.append(result)

        quotes.sort(key=lambda q: q.premium.annual)
        logger.info(
            "Multi-carrier quote complete: %d/%d carriers returned quotes (%d fallback)",
            len(quotes),
            len(carriers),
            sum(1 for q in quotes if q.is_fallback),
        )
        return quotes

    async def get_carrier_quote(self, carrier_id: str, request: QuoteRequest) -> QuoteResponse:
        """Return one carrier's quote, from cache when fresh.

        Raises
        ------
        UnknownCarrierError
            *carrier_id* is not registered.
        CarrierConfigurationError
            The carrier has no API configuration.
        """
        carrier = self.registry.require(carrier_id)

        key = cache_key(carrier_id, "quote", request)
        cached = self.cache.get(key)
        if isinstance(cached, QuoteResponse):
            logger.debug("Quote cache hit for carrier=%s", carrier_id)
            return cached

        try:
            quote = await self.client.call(
                carrier,
                "quote",
                quote_payload(request),
                QuoteResponse,
                fallback=lambda: self.estimator.fallback_quote(carrier, request),
            )
        except CarrierConfigurationError:
            raise
        except CarrierError as exc:
            logger.warning("Quote from carrier=%s failed (%s); using fallback", carrier_id, exc)
            self.monitor.record_fallback(carrier_id)
            return self.estimator.fallback_quote(carrier, request)

        if not quote.is_fallback:
            if not quote.premium.installments_consistent():
                logger.warning(
                    "Quote %s from carrier=%s has monthly=%s inconsistent with annual=%s",
                    quote.quote_id,
                    carrier_id,
                    quote.premium.monthly,
                    quote.premium.annual,
                )
            self.cache.set(key, quote)
        return quote

    # ------------------------------------------------------------------
    # Binding and claims
    # ------------------------------------------------------------------

    async def bind_policy(self, carrier_id: str, request: PolicyBindRequest) -> PolicyBindResponse:
        """Bind a previously returned quote into a policy.

        Raises
        ------
        UnknownCarrierError
            *carrier_id* is not registered.
        CarrierCapabilityError
            The carrier does not support online binding.
        CarrierConfigurationError
            The carrier has no API configuration.
        CarrierApiError
            The carrier call failed after retries.
        """
        carrier = self.registry.require(carrier_id)
        if not carrier.binding_capabilities:
            raise CarrierCapabilityError(carrier_id, "binding")

        key = cache_key(carrier_id, "bind", request)
        cached = self.cache.get(key)
        if isinstance(cached, PolicyBindResponse):
            logger.debug("Bind cache hit for carrier=%s quote=%s", carrier_id, request.quote_id)
            return cached

        try:
            response = await self.client.call(
                carrier, "bind", bind_payload(request), PolicyBindResponse
            )
        except CarrierError:
            logger.exception("Error binding quote=%s with carrier=%s", request.quote_id, carrier_id)
            raise

        # Declines are not cached so a resubmission reaches the carrier
        if response.success:
            self.cache.set(key, response)
        return response

    async def submit_claim(self, carrier_id: str, request: ClaimRequest) -> ClaimResponse:
        """Submit a claim against an existing policy.

        Raises
        ------
        UnknownCarrierError
            *carrier_id* is not registered.
        CarrierCapabilityError
            The carrier does not support online claims.
        CarrierConfigurationError
            The carrier has no API configuration.
        CarrierApiError
            The carrier call failed after retries.
        """
        carrier = self.registry.require(carrier_id)
        if not carrier.claims_support:
            raise CarrierCapabilityError(carrier_id, "claims")

        key = cache_key(carrier_id, "claim", request)
        cached = self.cache.get(key)
        if isinstance(cached, ClaimResponse):
            logger.debug("Claim cache hit for carrier=%s policy=%s", carrier_id, request.policy_number)
            return cached

        try:
            response = await self.client.call(
                carrier, "claim", claim_payload(request), ClaimResponse
            )
        except CarrierError:
            logger.exception(
                "Error submitting claim for policy=%s to carrier=%s",
                request.policy_number,
                carrier_id,
            )
            raise

        self.cache.set(key, response)
        return response

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def carrier_status(self, carrier_id: str) -> CarrierStatus:
        self.registry.require(carrier_id)
        return self.monitor.status(carrier_id)
