"""Carrier registry — the fixed set of carriers known to the service.

:class:`CarrierRegistry` answers the eligibility question used by the
aggregator: which carriers write a given product in a given state.  The
carrier set is fixed at construction; there is no registration API.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from matchedcover.carriers.models import (
    CarrierConfig,
    CoverageLimits,
    DeductibleOptions,
    InsuranceProduct,
    LiabilityMinimum,
)
from matchedcover.config import Settings, settings as default_settings
from matchedcover.errors import UnknownCarrierError

logger = logging.getLogger("matchedcover.carriers.registry")


class CarrierRegistry:
    """In-memory, read-only collection of :class:`CarrierConfig` keyed by id.

    Parameters
    ----------
    carriers:
        Carrier descriptors.  Later duplicates of the same ``carrier_id``
        replace earlier ones.
    """

    def __init__(self, carriers: Iterable[CarrierConfig]) -> None:
        self._carriers: dict[str, CarrierConfig] = {}
        for carrier in carriers:
            self._carriers[carrier.carrier_id] = carrier
        logger.info("CarrierRegistry initialised with %d carriers", len(self._carriers))

    @classmethod
    def default(cls, config: Settings | None = None) -> "CarrierRegistry":
        """Build the registry of reference carriers from *config*."""
        return cls(default_carriers(config or default_settings))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_available_carriers(self, product_type: str, state: str) -> list[CarrierConfig]:
        """Return every carrier offering *product_type* in *state*.

        Registration order is preserved.  An empty list is returned when no
        carrier matches; this method never raises.
        """
        state_code = (state or "").strip().upper()
        return [c for c in self._carriers.values() if c.offers(product_type, state_code)]

    def get(self, carrier_id: str) -> CarrierConfig | None:
        return self._carriers.get(carrier_id)

    def require(self, carrier_id: str) -> CarrierConfig:
        """Return the carrier or raise :class:`UnknownCarrierError`."""
        carrier = self._carriers.get(carrier_id)
        if carrier is None:
            raise UnknownCarrierError(carrier_id)
        return carrier

    def all(self) -> list[CarrierConfig]:
        return list(self._carriers.values())

    def __contains__(self, carrier_id: object) -> bool:
        return carrier_id in self._carriers

    def __iter__(self) -> Iterator[CarrierConfig]:
        return iter(self._carriers.values())

    def __len__(self) -> int:
        return len(self._carriers)


# ---------------------------------------------------------------------------
# Reference carriers
# ---------------------------------------------------------------------------


def default_carriers(config: Settings) -> list[CarrierConfig]:
    """Return the reference carrier set, wired to *config* credentials."""
    env = config.insurance_environment
    standard_liability = LiabilityMinimum(bodily_injury=25000, property_damage=25000)

    return [
        CarrierConfig(
            carrier_id="progressive",
            name="Progressive",
            api_endpoint=config.progressive_api_endpoint,
            api_key=config.progressive_api_key,
            environment=env,
            supported_products=(
                InsuranceProduct(
                    type="auto",
                    available_states=("OH", "FL", "TX", "CA", "NY", "IL"),
                    minimum_limits=CoverageLimits(
                        liability=standard_liability,
                        collision=DeductibleOptions(deductible=(250, 500, 1000)),
                        comprehensive=DeductibleOptions(deductible=(250, 500, 1000)),
                    ),
                    discounts_available=("multi_policy", "safe_driver", "homeowner", "auto_pay"),
                ),
            ),
            rating_factors=("age", "driving_record", "credit_score", "vehicle_safety", "annual_mileage"),
            binding_capabilities=True,
            claims_support=True,
            premium_multiplier=0.90,
        ),
        CarrierConfig(
            carrier_id="geico",
            name="GEICO",
            api_endpoint=config.geico_api_endpoint,
            api_key=config.geico_api_key,
            environment=env,
            supported_products=(
                InsuranceProduct(
                    type="auto",
                    available_states=("MD", "VA", "DC", "NJ", "PA", "DE"),
                    minimum_limits=CoverageLimits(
                        liability=LiabilityMinimum(bodily_injury=30000, property_damage=25000),
                    ),
                    discounts_available=("military", "federal_employee", "good_student", "multi_policy"),
                ),
            ),
            rating_factors=("age", "driving_record", "location", "vehicle_type"),
            binding_capabilities=True,
            claims_support=True,
            premium_multiplier=0.85,
        ),
        CarrierConfig(
            carrier_id="state_farm",
            name="State Farm",
            api_endpoint=config.state_farm_api_endpoint,
            api_key=config.state_farm_api_key,
            environment=env,
            supported_products=(
                InsuranceProduct(
                    type="auto",
                    available_states=("IL", "TX", "CA", "FL", "GA", "OH"),
                    minimum_limits=CoverageLimits(liability=standard_liability),
                    discounts_available=("drive_safe", "good_student", "multi_line", "steer_clear"),
                ),
                InsuranceProduct(
                    type="home",
                    available_states=("IL", "TX", "CA", "FL", "GA", "OH"),
                    minimum_limits=CoverageLimits(dwelling=100000, personal_property=50000),
                    discounts_available=("multi_line", "protective_device", "home_security"),
                ),
            ),
            rating_factors=("credit_score", "claims_history", "location", "coverage_amount"),
            binding_capabilities=True,
            claims_support=True,
            premium_multiplier=1.0,
        ),
        CarrierConfig(
            carrier_id="allstate",
            name="Allstate",
            api_endpoint=config.allstate_api_endpoint,
            api_key=config.allstate_api_key,
            environment=env,
            supported_products=(
                InsuranceProduct(
                    type="auto",
                    available_states=("IL", "CA", "TX", "FL", "NY", "OH"),
                    minimum_limits=CoverageLimits(liability=standard_liability),
                    discounts_available=("drivewise", "multi_policy", "safe_driver", "new_car"),
                ),
            ),
            rating_factors=("driving_behavior", "vehicle_safety", "bundling", "loyalty"),
            binding_capabilities=True,
            claims_support=True,
            premium_multiplier=1.05,
        ),
    ]
