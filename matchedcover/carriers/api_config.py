"""Carrier API config store — per-carrier connection settings."""

from __future__ import annotations

import logging
from typing import Mapping

from matchedcover.carriers.models import CarrierApiConfig
from matchedcover.config import Settings, settings as default_settings

logger = logging.getLogger("matchedcover.carriers.api_config")


class CarrierApiConfigStore:
    """Read-only mapping of carrier id to :class:`CarrierApiConfig`.

    A missing entry is not an error here; the API client turns it into a
    :class:`~matchedcover.errors.CarrierConfigurationError` at call time.
    """

    def __init__(self, configs: Mapping[str, CarrierApiConfig]) -> None:
        self._configs: dict[str, CarrierApiConfig] = dict(configs)

    @classmethod
    def default(cls, config: Settings | None = None) -> "CarrierApiConfigStore":
        cfg = config or default_settings
        partner_id = cfg.partner_id
        store = cls(
            {
                "progressive": CarrierApiConfig(
                    api_base_url=cfg.progressive_api_endpoint,
                    api_key=cfg.progressive_api_key,
                    partner_id=partner_id,
                    timeout=30.0,
                    headers={"X-Partner-Version": "1.0", "X-API-Version": "2024-01"},
                ),
                "geico": CarrierApiConfig(
                    api_base_url=cfg.geico_api_endpoint,
                    api_key=cfg.geico_api_key,
                    partner_id=partner_id,
                    timeout=25.0,
                ),
                "state_farm": CarrierApiConfig(
                    api_base_url=cfg.state_farm_api_endpoint,
                    api_key=cfg.state_farm_api_key,
                    partner_id=partner_id,
                    timeout=35.0,
                ),
                "allstate": CarrierApiConfig(
                    api_base_url=cfg.allstate_api_endpoint,
                    api_key=cfg.allstate_api_key,
                    partner_id=partner_id,
                    timeout=30.0,
                ),
            }
        )
        missing = [cid for cid, c in store._configs.items() if not c.api_key]
        if missing:
            logger.warning("No API key configured for carriers: %s", ", ".join(missing))
        return store

    def get_config(self, carrier_id: str) -> CarrierApiConfig | None:
        return self._configs.get(carrier_id)

    def __contains__(self, carrier_id: object) -> bool:
        return carrier_id in self._configs
