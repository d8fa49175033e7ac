"""Carrier integration errors.

Every failure on a carrier call path is raised as a :class:`CarrierError`
subclass so that callers can tell a deployment fault (missing configuration,
unknown carrier) from a carrier misbehaving at runtime
(:class:`CarrierApiError`).
"""

from __future__ import annotations

from typing import Literal

CarrierErrorCode = Literal[
    "NETWORK_ERROR",
    "TIMEOUT",
    "AUTH_ERROR",
    "VALIDATION_ERROR",
    "RATE_LIMIT",
    "SERVER_ERROR",
    "INVALID_RESPONSE",
]


class CarrierError(Exception):
    """Base class for all carrier integration errors."""


class UnknownCarrierError(CarrierError):
    """The carrier id is not present in the registry."""

    def __init__(self, carrier_id: str) -> None:
        super().__init__(f"Carrier {carrier_id} not found")
        self.carrier_id = carrier_id


class CarrierConfigurationError(CarrierError):
    """No API configuration exists for a registered carrier."""

    def __init__(self, carrier_id: str) -> None:
        super().__init__(f"No configuration found for carrier: {carrier_id}")
        self.carrier_id = carrier_id


class CarrierCapabilityError(CarrierError):
    """The carrier does not support the requested online operation."""

    def __init__(self, carrier_id: str, capability: str) -> None:
        super().__init__(f"Carrier {carrier_id} does not support online {capability}")
        self.carrier_id = carrier_id
        self.capability = capability


class CarrierApiError(CarrierError):
    """A carrier API call failed.

    Attributes
    ----------
    code:
        Failure classification, see :data:`CarrierErrorCode`.
    status:
        HTTP status returned by the carrier, or ``0`` when no response was
        received.
    retryable:
        Whether a single fixed-delay retry may succeed.
    details:
        Additional detail strings (e.g. schema validation messages).
    """

    def __init__(
        self,
        code: CarrierErrorCode,
        message: str,
        *,
        status: int = 0,
        retryable: bool = False,
        details: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.retryable = retryable
        self.details = details or []

    @classmethod
    def from_status(cls, status: int, reason: str = "") -> "CarrierApiError":
        """Classify a non-2xx HTTP status."""
        message = f"API call failed: {status} {reason}".rstrip()
        if status in (401, 403):
            return cls("AUTH_ERROR", message, status=status, retryable=False)
        if status == 429:
            return cls("RATE_LIMIT", message, status=status, retryable=True)
        if 500 <= status < 600:
            return cls("SERVER_ERROR", message, status=status, retryable=True)
        return cls("VALIDATION_ERROR", message, status=status, retryable=False)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "status": self.status,
            "retryable": self.retryable,
            "details": list(self.details),
        }
