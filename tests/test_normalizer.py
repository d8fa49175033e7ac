import pytest
from pydantic import ValidationError

from matchedcover.quotes.normalizer import cache_key, coverage_payload, quote_payload
from matchedcover.quotes.schemas import CoverageRequest, QuoteRequest


def test_auto_payload_forwards_vehicle_and_auto_coverage(quote_request):
    payload = quote_payload(quote_request)

    assert payload["customerId"] == "cust-42"
    assert payload["productType"] == "auto"
    assert payload["effectiveDate"] == "2026-02-01"
    assert payload["vehicle"]["make"] == "Honda"
    assert "property" not in payload
    assert payload["applicant"]["dateOfBirth"] == "1996-05-01"
    assert payload["applicant"]["address"]["state"] == "OH"
    assert payload["coverage"] == {
        "liability": {
            "bodilyInjuryPerPerson": 100000,
            "bodilyInjuryPerAccident": 300000,
            "propertyDamage": 50000,
        },
        "collision": {"deductible": 500},
    }


def test_home_coverage_drops_auto_fields():
    coverage = CoverageRequest(
        dwelling=300000,
        personal_property=100000,
        collision={"deductible": 500},
    )

    assert coverage_payload("home", coverage) == {"dwelling": 300000, "personalProperty": 100000}


def test_commercial_coverage_forwards_everything():
    coverage = CoverageRequest(dwelling=1, pip=2)

    assert coverage_payload("commercial", coverage) == {"dwelling": 1, "pip": 2}


def test_property_request_for_home(quote_request):
    data = quote_request.model_dump(by_alias=True, mode="json", exclude={"vehicle"})
    data["productType"] = "home"
    data["property"] = {
        "propertyType": "single_family",
        "yearBuilt": 1998,
        "squareFootage": 2100,
    }

    payload = quote_payload(QuoteRequest.model_validate(data))

    assert payload["property"]["yearBuilt"] == 1998
    assert "vehicle" not in payload
    assert payload["coverage"] == {"dwelling": 250000}


def test_vehicle_on_home_request_is_rejected(quote_request):
    data = quote_request.model_dump(by_alias=True, mode="json")
    data["productType"] = "home"

    with pytest.raises(ValidationError, match="vehicle is not applicable"):
        QuoteRequest.model_validate(data)


def test_vehicle_and_property_together_are_rejected(quote_request):
    data = quote_request.model_dump(by_alias=True, mode="json")
    data["productType"] = "commercial"
    data["property"] = {"propertyType": "condo", "yearBuilt": 2001, "squareFootage": 900}

    with pytest.raises(ValidationError, match="either a vehicle or a property"):
        QuoteRequest.model_validate(data)


def test_cache_key_is_stable_for_equal_requests(quote_request):
    clone = QuoteRequest.model_validate(quote_request.model_dump(by_alias=True, mode="json"))

    key = cache_key("geico", "quote", quote_request)

    assert key.startswith("geico:quote:")
    assert key == cache_key("geico", "quote", clone)
    assert key != cache_key("progressive", "quote", quote_request)
    assert key != cache_key("geico", "bind", quote_request)
