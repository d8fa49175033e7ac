"""MatchedCover FastAPI application — multi-carrier quoting, binding and claims.

Endpoints
---------
GET   /v1/carriers                      — carriers writing a product in a state
GET   /v1/carriers/{carrier_id}/status  — carrier health statistics
POST  /v1/quotes                        — quotes from every eligible carrier
POST  /v1/quotes/{carrier_id}           — quote from one carrier
POST  /v1/policies/{carrier_id}/bind    — bind a quote into a policy
POST  /v1/claims/{carrier_id}           — submit a claim
GET   /v1/health                        — service health check

Authentication is via the ``X-API-Key`` header.  The
:class:`CarrierIntegrationService` is created by the lifespan handler and
kept on ``app.state``; pass one to :func:`create_app` to supply your own.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from matchedcover import __version__
from matchedcover.api.schemas import (
    CarrierListResponse,
    CarrierSummary,
    HealthResponse,
    MultiQuoteResponse,
)
from matchedcover.config import Settings, settings as default_settings
from matchedcover.errors import (
    CarrierApiError,
    CarrierCapabilityError,
    CarrierConfigurationError,
    UnknownCarrierError,
)
from matchedcover.monitoring import CarrierStatus
from matchedcover.quotes.analysis import analyze_quotes
from matchedcover.quotes.schemas import (
    ClaimRequest,
    ClaimResponse,
    PolicyBindRequest,
    PolicyBindResponse,
    QuoteRequest,
    QuoteResponse,
)
from matchedcover.service import CarrierIntegrationService

logger = logging.getLogger("matchedcover.api")

router = APIRouter(prefix="/v1")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def require_api_key(
    request: Request,
    x_api_key: str = Header(..., alias="X-API-Key"),
) -> str:
    """Validate the ``X-API-Key`` header.

    Raises
    ------
    HTTPException
        403 if the key is invalid.
    """
    if x_api_key != request.app.state.config.matchedcover_api_key:
        logger.warning("Invalid API key attempt: %s...", x_api_key[:6])
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key.",
        )
    return x_api_key


def get_service(request: Request) -> CarrierIntegrationService:
    """Return the application-level service or raise 503."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Carrier integration service not initialised.",
        )
    return service


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/carriers",
    response_model=CarrierListResponse,
    summary="List carriers writing a product in a state",
    tags=["Carriers"],
)
async def list_carriers(
    product_type: str = Query(..., alias="productType", description="Product type, e.g. auto"),
    state: str = Query(..., min_length=2, max_length=2, description="Two-letter state code"),
    _key: str = Depends(require_api_key),
    service: CarrierIntegrationService = Depends(get_service),
) -> CarrierListResponse:
    carriers = service.get_available_carriers(product_type, state)
    return CarrierListResponse(
        product_type=product_type,
        state=state.upper(),
        carriers=[CarrierSummary.from_config(c) for c in carriers],
    )


@router.get(
    "/carriers/{carrier_id}/status",
    response_model=CarrierStatus,
    summary="Carrier health statistics",
    tags=["Carriers"],
)
async def get_carrier_status(
    carrier_id: str,
    _key: str = Depends(require_api_key),
    service: CarrierIntegrationService = Depends(get_service),
) -> CarrierStatus:
    return service.carrier_status(carrier_id)


@router.post(
    "/quotes",
    response_model=MultiQuoteResponse,
    summary="Quote every eligible carrier",
    tags=["Quotes"],
)
async def create_quotes(
    body: QuoteRequest,
    _key: str = Depends(require_api_key),
    service: CarrierIntegrationService = Depends(get_service),
) -> MultiQuoteResponse:
    """Quote all carriers writing the product in the applicant's state.

    Quotes are sorted by annual premium, lowest first.  Quotes flagged
    ``isFallback`` are estimates made while the carrier was unreachable.
    """
    t0 = time.monotonic()
    quotes = await service.get_multi_carrier_quotes(body)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 1)

    return MultiQuoteResponse(
        request_id=body.customer_id,
        quotes=quotes,
        analysis=analyze_quotes(quotes) if quotes else None,
        quote_time_ms=elapsed_ms,
        timestamp=datetime.now(timezone.utc),
    )


@router.post(
    "/quotes/{carrier_id}",
    response_model=QuoteResponse,
    summary="Quote a single carrier",
    tags=["Quotes"],
)
async def create_carrier_quote(
    carrier_id: str,
    body: QuoteRequest,
    _key: str = Depends(require_api_key),
    service: CarrierIntegrationService = Depends(get_service),
) -> QuoteResponse:
    return await service.get_carrier_quote(carrier_id, body)


@router.post(
    "/policies/{carrier_id}/bind",
    response_model=PolicyBindResponse,
    summary="Bind a quote into a policy",
    tags=["Policies"],
)
async def bind_policy(
    carrier_id: str,
    body: PolicyBindRequest,
    _key: str = Depends(require_api_key),
    service: CarrierIntegrationService = Depends(get_service),
) -> PolicyBindResponse:
    return await service.bind_policy(carrier_id, body)


@router.post(
    "/claims/{carrier_id}",
    response_model=ClaimResponse,
    summary="Submit a claim",
    tags=["Claims"],
)
async def submit_claim(
    carrier_id: str,
    body: ClaimRequest,
    _key: str = Depends(require_api_key),
    service: CarrierIntegrationService = Depends(get_service),
) -> ClaimResponse:
    return await service.submit_claim(carrier_id, body)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    tags=["System"],
)
async def health_check(
    request: Request,
    _key: str = Depends(require_api_key),
    service: CarrierIntegrationService = Depends(get_service),
) -> HealthResponse:
    carriers = {
        carrier.carrier_id: service.carrier_status(carrier.carrier_id).operational_status
        for carrier in service.registry
    }
    overall = "ok" if all(s == "up" for s in carriers.values()) else "degraded"
    return HealthResponse(
        status=overall,
        version=__version__,
        environment=request.app.state.config.insurance_environment,
        carriers_loaded=len(carriers),
        carriers=carriers,
        cached_responses=len(service.cache),
        timestamp=datetime.now(timezone.utc),
    )


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


async def _unknown_carrier(request: Request, exc: UnknownCarrierError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _capability(request: Request, exc: CarrierCapabilityError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


async def _configuration(request: Request, exc: CarrierConfigurationError) -> JSONResponse:
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


async def _carrier_api(request: Request, exc: CarrierApiError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": exc.message, "error": exc.to_dict()},
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    service: CarrierIntegrationService | None = None,
    config: Settings | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Parameters
    ----------
    service:
        Pre-built service.  When omitted the lifespan handler creates one on
        startup and closes it on shutdown.
    config:
        Settings for the API key and default service.
    """
    cfg = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("MatchedCover API starting up (version=%s)", __version__)
        owns_service = service is None
        app.state.service = service or CarrierIntegrationService(cfg)
        logger.info("CarrierIntegrationService ready")

        yield

        logger.info("MatchedCover API shutting down")
        if owns_service:
            await app.state.service.close()
        app.state.service = None

    app = FastAPI(
        title="MatchedCover Carrier Integration API",
        description="Multi-carrier insurance quoting, policy binding and claims submission.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.config = cfg
    app.state.service = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every inbound request with timing."""
        start = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    app.add_exception_handler(UnknownCarrierError, _unknown_carrier)
    app.add_exception_handler(CarrierCapabilityError, _capability)
    app.add_exception_handler(CarrierConfigurationError, _configuration)
    app.add_exception_handler(CarrierApiError, _carrier_api)
    app.include_router(router)
    return app
