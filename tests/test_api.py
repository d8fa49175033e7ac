import httpx
import pytest
from fastapi.testclient import TestClient

from matchedcover.api import create_app
from matchedcover.carriers import CarrierApiConfigStore, CarrierRegistry
from matchedcover.carriers.models import CarrierConfig
from tests.conftest import bind_body, carrier_for, quote_body

HEADERS = {"X-API-Key": "test-key"}

PREMIUMS = {"progressive": 910.0, "geico": 680.0, "state_farm": 640.0, "allstate": 775.0}


def carrier_api(request):
    endpoint = request.url.path.rsplit("/", 1)[-1]
    carrier_id = carrier_for(request)
    if endpoint == "quote":
        return httpx.Response(200, json=quote_body(carrier_id, PREMIUMS[carrier_id]))
    if endpoint == "bind":
        if carrier_id == "geico":
            return httpx.Response(400)
        return httpx.Response(200, json=bind_body())
    return httpx.Response(200, json={"claimNumber": "CLM-7", "status": "received"})


@pytest.fixture
def api(make_service, settings):
    service, _ = make_service(carrier_api)
    with TestClient(create_app(service=service, config=settings)) as client:
        yield client


@pytest.fixture
def quote_json(quote_request):
    return quote_request.model_dump(mode="json", by_alias=True, exclude_none=True)


def test_wrong_api_key_is_forbidden(api):
    response = api.get("/v1/health", headers={"X-API-Key": "nope"})

    assert response.status_code == 403


def test_missing_api_key_is_rejected(api):
    assert api.get("/v1/health").status_code == 422


def test_list_carriers(api):
    response = api.get("/v1/carriers", params={"productType": "auto", "state": "oh"}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "OH"
    assert [c["carrierId"] for c in body["carriers"]] == ["progressive", "state_farm", "allstate"]
    assert "apiKey" not in response.text
    assert "progressive-key" not in response.text


def test_multi_carrier_quotes_with_analysis(api, quote_json):
    response = api.post("/v1/quotes", json=quote_json, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["requestId"] == "cust-42"
    assert [q["carrierId"] for q in body["quotes"]] == ["state_farm", "allstate", "progressive"]
    assert all(q["isFallback"] is False for q in body["quotes"])
    assert body["analysis"]["lowestPremium"]["carrierId"] == "state_farm"
    assert body["analysis"]["potentialSavings"] == 270


def test_quotes_without_eligible_carriers(api, quote_json):
    quote_json["applicant"]["address"]["state"] = "AK"

    body = api.post("/v1/quotes", json=quote_json, headers=HEADERS).json()

    assert body["quotes"] == []
    assert body["analysis"] is None


def test_invalid_quote_request_is_422(api, quote_json):
    quote_json["productType"] = "home"

    assert api.post("/v1/quotes", json=quote_json, headers=HEADERS).status_code == 422


def test_single_carrier_quote(api, quote_json):
    response = api.post("/v1/quotes/geico", json=quote_json, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["premium"]["annual"] == 680.0


def test_unknown_carrier_is_404(api, quote_json):
    response = api.post("/v1/quotes/acme", json=quote_json, headers=HEADERS)

    assert response.status_code == 404
    assert "acme" in response.json()["detail"]


def test_bind_policy(api, bind_request_body):
    response = api.post("/v1/policies/progressive/bind", json=bind_request_body, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["policyNumber"] == "POL-123"


def test_carrier_api_error_is_502(api, bind_request_body):
    response = api.post("/v1/policies/geico/bind", json=bind_request_body, headers=HEADERS)

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert response.json()["error"]["status"] == 400


def test_submit_claim(api, quote_request):
    claim = {
        "policyNumber": "POL-123",
        "claimType": "collision",
        "dateOfLoss": "2026-01-10",
        "description": "Hail damage",
        "claimant": quote_request.applicant.model_dump(mode="json", by_alias=True, exclude_none=True),
    }

    response = api.post("/v1/claims/allstate", json=claim, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["claimNumber"] == "CLM-7"


def test_unconfigured_carrier_is_503(make_service, settings, bind_request_body):
    service, _ = make_service(carrier_api, store=CarrierApiConfigStore({}))

    with TestClient(create_app(service=service, config=settings)) as client:
        response = client.post("/v1/policies/progressive/bind", json=bind_request_body, headers=HEADERS)

    assert response.status_code == 503


def test_capability_error_is_409(make_service, settings, bind_request_body):
    no_bind = CarrierConfig(carrier_id="nobind", name="No Bind", api_endpoint="https://nobind.test")
    service, _ = make_service(carrier_api, carriers=CarrierRegistry([no_bind]))

    with TestClient(create_app(service=service, config=settings)) as client:
        response = client.post("/v1/policies/nobind/bind", json=bind_request_body, headers=HEADERS)

    assert response.status_code == 409


def test_carrier_status_and_health(api, quote_json):
    api.post("/v1/quotes/geico", json=quote_json, headers=HEADERS)

    status = api.get("/v1/carriers/geico/status", headers=HEADERS).json()
    assert status["operationalStatus"] == "up"
    assert status["totalCalls"] == 1

    health = api.get("/v1/health", headers=HEADERS).json()
    assert health["status"] == "ok"
    assert health["carriersLoaded"] == 4
    assert health["carriers"]["geico"] == "up"
    assert health["cachedResponses"] == 1
    assert health["environment"] == "sandbox"
