import asyncio

import httpx
import pytest

from matchedcover.carriers import CarrierApiConfigStore, CarrierRegistry
from matchedcover.carriers.models import CarrierConfig, InsuranceProduct
from matchedcover.errors import (
    CarrierApiError,
    CarrierCapabilityError,
    CarrierConfigurationError,
    UnknownCarrierError,
)
from matchedcover.quotes.cache import ResponseCache
from matchedcover.quotes.schemas import ClaimRequest, PolicyBindRequest
from tests.conftest import bind_body, carrier_for, quote_body

LIVE_PREMIUMS = {"progressive": 910.0, "state_farm": 640.0, "allstate": 775.0}


def live_quotes(request):
    carrier_id = carrier_for(request)
    return httpx.Response(200, json=quote_body(carrier_id, LIVE_PREMIUMS[carrier_id]))


@pytest.fixture
def claim_request(quote_request):
    return ClaimRequest(
        policy_number="POL-123",
        claim_type="collision",
        date_of_loss="2026-01-10",
        description="Rear-ended at a stop light",
        claimant=quote_request.applicant,
    )


@pytest.mark.asyncio
async def test_multi_carrier_quotes_sorted_by_annual_premium(make_service, quote_request):
    service, mock = make_service(live_quotes)

    quotes = await service.get_multi_carrier_quotes(quote_request)

    assert [q.carrier_id for q in quotes] == ["state_farm", "allstate", "progressive"]
    assert [q.premium.annual for q in quotes] == [640.0, 775.0, 910.0]
    assert not any(q.is_fallback for q in quotes)
    assert len(mock.requests) == 3


@pytest.mark.asyncio
async def test_no_eligible_carriers_returns_empty_list(make_service, quote_request):
    service, mock = make_service(live_quotes)
    request = quote_request.model_copy(
        update={"applicant": quote_request.applicant.model_copy(
            update={"address": quote_request.applicant.address.model_copy(update={"state": "AK"})}
        )}
    )

    assert await service.get_multi_carrier_quotes(request) == []
    assert mock.requests == []


@pytest.mark.asyncio
async def test_failing_carrier_is_replaced_by_fallback(make_service, quote_request):
    def handler(request):
        if carrier_for(request) == "allstate":
            return httpx.Response(500)
        return live_quotes(request)

    service, mock = make_service(handler)

    quotes = await service.get_multi_carrier_quotes(quote_request)

    by_carrier = {q.carrier_id: q for q in quotes}
    assert set(by_carrier) == {"progressive", "state_farm", "allstate"}
    fallback = by_carrier["allstate"]
    assert fallback.is_fallback
    assert fallback.quote_id.startswith("FALLBACK_allstate_")
    assert fallback.premium.annual == 840
    assert [q.premium.annual for q in quotes] == sorted(q.premium.annual for q in quotes)
    assert mock.calls_to("allstate") == 2


@pytest.mark.asyncio
async def test_unconfigured_carrier_is_left_out(make_service, quote_request, config_store):
    store = CarrierApiConfigStore(
        {cid: config_store.get_config(cid) for cid in ("progressive", "state_farm")}
    )
    service, mock = make_service(live_quotes, store=store)

    quotes = await service.get_multi_carrier_quotes(quote_request)

    assert [q.carrier_id for q in quotes] == ["state_farm", "progressive"]
    assert mock.calls_to("allstate") == 0


@pytest.mark.asyncio
async def test_single_quote_for_unconfigured_carrier_raises(make_service, quote_request):
    service, _ = make_service(live_quotes, store=CarrierApiConfigStore({}))

    with pytest.raises(CarrierConfigurationError):
        await service.get_carrier_quote("progressive", quote_request)


@pytest.mark.asyncio
async def test_unknown_carrier_raises(make_service, quote_request):
    service, mock = make_service(live_quotes)

    with pytest.raises(UnknownCarrierError):
        await service.get_carrier_quote("acme", quote_request)
    assert mock.requests == []


@pytest.mark.asyncio
async def test_repeat_quote_within_ttl_is_served_from_cache(make_service, quote_request):
    service, mock = make_service(live_quotes)

    first = await service.get_carrier_quote("state_farm", quote_request)
    second = await service.get_carrier_quote("state_farm", quote_request)

    assert first == second
    assert mock.calls_to("state_farm") == 1


@pytest.mark.asyncio
async def test_expired_cache_entry_triggers_new_call(make_service, quote_request):
    now = [0.0]
    cache = ResponseCache(ttl_seconds=300, clock=lambda: now[0])
    service, mock = make_service(live_quotes, cache=cache)

    await service.get_carrier_quote("state_farm", quote_request)
    now[0] = 301.0
    await service.get_carrier_quote("state_farm", quote_request)

    assert mock.calls_to("state_farm") == 2


@pytest.mark.asyncio
async def test_fallback_quotes_are_not_cached(make_service, quote_request):
    service, mock = make_service(lambda r: httpx.Response(503))

    first = await service.get_carrier_quote("progressive", quote_request)
    second = await service.get_carrier_quote("progressive", quote_request)

    assert first.is_fallback and second.is_fallback
    assert first.quote_id != second.quote_id
    assert len(service.cache) == 0
    assert mock.calls_to("progressive") == 4


@pytest.mark.asyncio
async def test_live_quote_with_inconsistent_monthly_is_kept_and_logged(make_service, quote_request, caplog):
    body = quote_body("state_farm", 640.0)
    body["premium"]["monthly"] = 58
    service, _ = make_service(lambda r: httpx.Response(200, json=body))

    with caplog.at_level("WARNING", logger="matchedcover.service"):
        quote = await service.get_carrier_quote("state_farm", quote_request)

    assert quote.is_fallback is False
    assert quote.premium.monthly == 58
    assert "inconsistent with annual" in caplog.text


@pytest.mark.asyncio
async def test_consistent_live_quote_logs_no_warning(make_service, quote_request, caplog):
    service, _ = make_service(live_quotes)

    with caplog.at_level("WARNING", logger="matchedcover.service"):
        await service.get_carrier_quote("state_farm", quote_request)

    assert "inconsistent" not in caplog.text


@pytest.mark.asyncio
async def test_carriers_are_quoted_concurrently(make_service, quote_request):
    in_flight = 0
    peak = 0

    async def handler(request):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return live_quotes(request)

    service, _ = make_service(handler)

    quotes = await service.get_multi_carrier_quotes(quote_request)

    assert len(quotes) == 3
    assert peak == 3


@pytest.mark.asyncio
async def test_bind_policy_success_is_cached(make_service, bind_request_body):
    service, mock = make_service(lambda r: httpx.Response(200, json=bind_body()))
    request = PolicyBindRequest.model_validate(bind_request_body)

    first = await service.bind_policy("progressive", request)
    second = await service.bind_policy("progressive", request)

    assert first.policy_number == "POL-123"
    assert second == first
    assert len(mock.requests) == 1
    assert mock.requests[0].url.path.endswith("/bind")


@pytest.mark.asyncio
async def test_bind_failure_propagates(make_service, bind_request_body):
    service, mock = make_service(lambda r: httpx.Response(500))
    request = PolicyBindRequest.model_validate(bind_request_body)

    with pytest.raises(CarrierApiError) as info:
        await service.bind_policy("geico", request)

    assert info.value.code == "SERVER_ERROR"
    assert len(mock.requests) == 2
    assert len(service.cache) == 0


@pytest.mark.asyncio
async def test_declined_bind_is_returned_not_raised(make_service, bind_request_body):
    declined = {"success": False, "error": {"code": "PAYMENT_DECLINED", "message": "Card declined"}}
    responses = iter([httpx.Response(200, json=declined), httpx.Response(200, json=bind_body())])
    service, mock = make_service(lambda r: next(responses))
    request = PolicyBindRequest.model_validate(bind_request_body)

    first = await service.bind_policy("geico", request)

    assert first.success is False
    assert first.error.code == "PAYMENT_DECLINED"
    assert len(service.cache) == 0

    second = await service.bind_policy("geico", request)

    assert second.success is True
    assert second.policy_number == "POL-123"
    assert len(mock.requests) == 2


@pytest.mark.asyncio
async def test_submit_claim(make_service, claim_request):
    service, mock = make_service(
        lambda r: httpx.Response(200, json={"claimNumber": "CLM-1", "status": "submitted", "estimatedSettlement": 2400})
    )

    response = await service.submit_claim("state_farm", claim_request)

    assert response.claim_number == "CLM-1"
    assert response.estimated_settlement == 2400
    assert mock.requests[0].url.path.endswith("/claim")


@pytest.mark.asyncio
async def test_claim_failure_propagates(make_service, claim_request):
    service, _ = make_service(lambda r: httpx.Response(401))

    with pytest.raises(CarrierApiError) as info:
        await service.submit_claim("state_farm", claim_request)

    assert info.value.code == "AUTH_ERROR"


@pytest.mark.asyncio
async def test_capabilities_are_checked_before_calling(make_service, bind_request_body, claim_request):
    quote_only = CarrierConfig(
        carrier_id="quote_only",
        name="Quote Only Mutual",
        api_endpoint="https://quoteonly.test",
        supported_products=(InsuranceProduct(type="auto", available_states=("OH",)),),
        binding_capabilities=False,
        claims_support=False,
    )
    service, mock = make_service(lambda r: httpx.Response(200), carriers=CarrierRegistry([quote_only]))

    with pytest.raises(CarrierCapabilityError, match="binding"):
        await service.bind_policy("quote_only", PolicyBindRequest.model_validate(bind_request_body))
    with pytest.raises(CarrierCapabilityError, match="claims"):
        await service.submit_claim("quote_only", claim_request)

    assert mock.requests == []


@pytest.mark.asyncio
async def test_carrier_status_reflects_calls(make_service, quote_request):
    service, _ = make_service(lambda r: httpx.Response(500))

    await service.get_carrier_quote("progressive", quote_request)
    status = service.carrier_status("progressive")

    assert status.operational_status == "down"
    assert status.total_calls == 2
    assert status.fallbacks == 1
    assert service.carrier_status("geico").operational_status == "up"
    with pytest.raises(UnknownCarrierError):
        service.carrier_status("acme")
