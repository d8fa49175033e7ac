"""Pytest fixtures for carrier integration tests.

Carrier HTTP traffic is served by ``httpx.MockTransport`` handlers; nothing
leaves the process.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest

from matchedcover.carriers import CarrierApiConfigStore, CarrierRegistry
from matchedcover.client import CarrierApiClient
from matchedcover.config import Settings
from matchedcover.monitoring import CarrierHealthMonitor
from matchedcover.quotes.cache import ResponseCache
from matchedcover.quotes.estimator import PremiumEstimator
from matchedcover.quotes.schemas import QuoteRequest
from matchedcover.service import CarrierIntegrationService

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

CARRIER_URLS = {
    "progressive": "https://progressive.test/v1",
    "geico": "https://geico.test/v2",
    "state_farm": "https://statefarm.test/partner/v1",
    "allstate": "https://allstate.test/api/v1",
}

HOST_TO_CARRIER = {httpx.URL(url).host: cid for cid, url in CARRIER_URLS.items()}


def carrier_for(request: httpx.Request) -> str:
    return HOST_TO_CARRIER[request.url.host]


def quote_body(carrier_id: str, annual: float, **overrides: Any) -> dict[str, Any]:
    """A well-formed carrier quote response body."""
    body = {
        "quoteId": f"{carrier_id.upper()}-Q-1",
        "carrierId": carrier_id,
        "carrierName": carrier_id.replace("_", " ").title(),
        "productType": "auto",
        "premium": {
            "annual": annual,
            "semiAnnual": round(annual * 0.52),
            "quarterly": round(annual / 4),
            "monthly": round(annual / 12),
        },
        "fees": {"policyFee": 25, "installmentFee": 5, "downPayment": round(annual / 4)},
        "coverage": {
            "liability": {"limit": "100000/300000/50000", "premium": 350},
            "collision": {"limit": "Actual Cash Value", "deductible": 500, "premium": 200},
        },
        "discounts": [{"code": "safe_driver", "name": "Safe Driver", "amount": 40}],
        "bindableUntil": (NOW + timedelta(days=30)).isoformat(),
        "validUntil": (NOW + timedelta(days=7)).isoformat(),
    }
    body.update(overrides)
    return body


def bind_body(**overrides: Any) -> dict[str, Any]:
    body = {
        "success": True,
        "policyNumber": "POL-123",
        "effectiveDate": "2026-02-01",
        "confirmationNumber": "CONF-9",
        "documents": [{"type": "policy", "name": "Policy", "url": "https://docs.test/p.pdf"}],
    }
    body.update(overrides)
    return body


@pytest.fixture
def settings() -> Settings:
    return Settings(
        progressive_api_endpoint=CARRIER_URLS["progressive"],
        progressive_api_key="progressive-key",
        geico_api_endpoint=CARRIER_URLS["geico"],
        geico_api_key="geico-key",
        state_farm_api_endpoint=CARRIER_URLS["state_farm"],
        state_farm_api_key="state-farm-key",
        allstate_api_endpoint=CARRIER_URLS["allstate"],
        allstate_api_key="allstate-key",
        carrier_max_attempts=2,
        carrier_retry_delay_seconds=0.0,
        matchedcover_api_key="test-key",
    )


@pytest.fixture
def registry(settings: Settings) -> CarrierRegistry:
    return CarrierRegistry.default(settings)


@pytest.fixture
def config_store(settings: Settings) -> CarrierApiConfigStore:
    return CarrierApiConfigStore.default(settings)


@pytest.fixture
def estimator() -> PremiumEstimator:
    return PremiumEstimator(clock=lambda: NOW)


@pytest.fixture
def quote_request() -> QuoteRequest:
    """Ohio auto request: applicant aged 30, vehicle 5 years old in 2026."""
    return QuoteRequest.model_validate(
        {
            "customerId": "cust-42",
            "productType": "auto",
            "applicant": {
                "firstName": "Dana",
                "lastName": "Reyes",
                "dateOfBirth": "1996-05-01",
                "address": {
                    "street": "1 High St",
                    "city": "Columbus",
                    "state": "oh",
                    "zipCode": "43215",
                },
                "email": "dana@example.com",
            },
            "vehicle": {"year": 2021, "make": "Honda", "model": "Civic", "vin": "1HGCV1F1XMA000001"},
            "coverage": {
                "liability": {
                    "bodilyInjuryPerPerson": 100000,
                    "bodilyInjuryPerAccident": 300000,
                    "propertyDamage": 50000,
                },
                "collision": {"deductible": 500},
                "dwelling": 250000,
            },
            "effectiveDate": "2026-02-01",
        }
    )


@pytest.fixture
def bind_request_body() -> dict[str, Any]:
    return {
        "quoteId": "PROGRESSIVE-Q-1",
        "paymentInfo": {"method": "ach", "amount": 180, "bankAccount": {
            "routingNumber": "021000021",
            "accountNumber": "000123456789",
            "accountType": "checking",
        }},
        "effectiveDate": "2026-02-01",
    }


class MockCarriers:
    """Records requests and delegates responses to a handler."""

    def __init__(self, handler: Callable[[httpx.Request], Any]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response

    def calls_to(self, carrier_id: str) -> int:
        return sum(1 for r in self.requests if carrier_for(r) == carrier_id)


@pytest.fixture
def make_service(settings, registry, config_store, estimator):
    """Build a service whose carrier traffic is served by *handler*."""

    def _make(
        handler: Callable[[httpx.Request], Any],
        *,
        store: CarrierApiConfigStore | None = None,
        cache: ResponseCache | None = None,
        carriers: CarrierRegistry | None = None,
    ) -> tuple[CarrierIntegrationService, MockCarriers]:
        mock = MockCarriers(handler)
        monitor = CarrierHealthMonitor()
        client = CarrierApiClient(
            store if store is not None else config_store,
            settings,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(mock)),
            monitor=monitor,
        )
        service = CarrierIntegrationService(
            settings,
            registry=carriers if carriers is not None else registry,
            config_store=store if store is not None else config_store,
            cache=cache,
            client=client,
            estimator=estimator,
            monitor=monitor,
        )
        return service, mock

    return _make
