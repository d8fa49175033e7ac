"""Quote request normalizer — shapes caller requests into carrier payloads.

The normalized payload is the camelCase JSON body sent to every carrier for
an endpoint.  Only the risk object (vehicle or property) and the coverage
fields that apply to the requested product are forwarded.
"""

from __future__ import annotations

import json
from typing import Any

from matchedcover.quotes.schemas import (
    ClaimRequest,
    CoverageRequest,
    PolicyBindRequest,
    QuoteRequest,
)
from matchedcover.carriers.models import WireModel

# Coverage fields (python names) forwarded per product type
_COVERAGE_FIELDS: dict[str, tuple[str, ...]] = {
    "auto": (
        "liability",
        "collision",
        "comprehensive",
        "uninsured_motorist",
        "underinsured_motorist",
        "medical_payments",
        "pip",
    ),
    "home": ("dwelling", "personal_property", "liability_home", "medical_payments_home"),
    "renters": ("personal_property", "liability_home", "medical_payments_home"),
    "life": ("face_amount", "beneficiaries"),
    "umbrella": ("liability", "liability_home"),
}


def _dump(model: WireModel, **kwargs: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True, **kwargs)


def coverage_payload(product_type: str, coverage: CoverageRequest) -> dict[str, Any]:
    """Return the camelCase coverage dict restricted to *product_type*.

    Commercial requests forward every populated coverage field.
    """
    fields = _COVERAGE_FIELDS.get(product_type)
    if fields is None:
        return _dump(coverage)
    return _dump(coverage, include=set(fields))


def quote_payload(request: QuoteRequest) -> dict[str, Any]:
    """Normalize a :class:`QuoteRequest` into a carrier ``quote`` body."""
    payload: dict[str, Any] = {
        "customerId": request.customer_id,
        "productType": request.product_type,
        "applicant": _dump(request.applicant),
        "coverage": coverage_payload(request.product_type, request.coverage),
        "effectiveDate": request.effective_date.isoformat(),
    }
    if request.vehicle is not None:
        payload["vehicle"] = _dump(request.vehicle)
    if request.property is not None:
        payload["property"] = _dump(request.property)
    if request.quote_id:
        payload["quoteId"] = request.quote_id
    return payload


def bind_payload(request: PolicyBindRequest) -> dict[str, Any]:
    return _dump(request)


def claim_payload(request: ClaimRequest) -> dict[str, Any]:
    return _dump(request)


def cache_key(carrier_id: str, endpoint: str, request: WireModel) -> str:
    """Composite cache key ``<carrier>:<endpoint>:<serialized request>``.

    Keys are sorted so that equal requests always serialize identically.
    """
    body = json.dumps(_dump(request), sort_keys=True, separators=(",", ":"))
    return f"{carrier_id}:{endpoint}:{body}"
