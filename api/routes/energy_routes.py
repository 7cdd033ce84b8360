"""
API routes for Hold-to-Earn Energy Analytics

Endpoints:
- GET /api/v1/energy/{contract_id} - System stats and rates
- GET /api/v1/energy/{contract_id}/user - Stats for one address
- GET /api/v1/energy/{contract_id}/history - Stored rate snapshots
- OPTIONS on each of the above - CORS preflight, 204 with no body

Query parameters:
- refresh=true bypasses the result cache; the fresh result still
  overwrites the cache entry
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from api.logging_config import get_logger
from api.models.energy_models import (
    ErrorResponse,
    RateHistoryResponse,
    SystemEnergyResponse,
    UserEnergyResponse,
)
from hold_to_earn.analytics_service import EnergyAnalyticsService
from hold_to_earn.config.settings import EnergySettings, get_settings
from hold_to_earn.errors import InvalidRequestError, UpstreamFetchError

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/energy", tags=["energy"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

GENERIC_ERROR = "Failed to fetch energy analytics"


def get_energy_service(request: Request) -> EnergyAnalyticsService:
    """Service created in the app lifespan."""
    return request.app.state.energy_service


def get_api_settings() -> EnergySettings:
    return get_settings()


def _error_response(
    status_code: int, error: str, exc: Exception, settings: EnergySettings
) -> JSONResponse:
    payload = ErrorResponse(
        error=error,
        message=None if settings.is_production else str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content=payload.model_dump(exclude_none=True),
        headers=CORS_HEADERS,
    )


def _preflight() -> Response:
    return Response(status_code=204, headers=CORS_HEADERS)


@router.get(
    "/{contract_id}",
    response_model=SystemEnergyResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_system_energy(
    contract_id: str,
    refresh: Annotated[bool, Query(description="Bypass the result cache")] = False,
    service: EnergyAnalyticsService = Depends(get_energy_service),
    settings: EnergySettings = Depends(get_api_settings),
):
    """System-wide energy statistics and accrual rates for a contract."""
    logger.info("energy_analytics_request", contract_id=contract_id, refresh=refresh)

    try:
        result = await service.get_system_energy(contract_id, refresh=refresh)
        return SystemEnergyResponse.model_validate(
            {"data": result.data, "fromCache": result.from_cache}
        )
    except InvalidRequestError as e:
        return _error_response(400, str(e), e, settings)
    except UpstreamFetchError as e:
        logger.error("energy_upstream_failed", contract_id=contract_id, error=str(e))
        return _error_response(500, GENERIC_ERROR, e, settings)
    except Exception as e:
        logger.exception("energy_analytics_failed", contract_id=contract_id)
        return _error_response(500, GENERIC_ERROR, e, settings)


@router.get(
    "/{contract_id}/user",
    response_model=UserEnergyResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_user_energy(
    contract_id: str,
    address: Annotated[Optional[str], Query(description="Harvester address")] = None,
    refresh: Annotated[bool, Query(description="Bypass the result cache")] = False,
    service: EnergyAnalyticsService = Depends(get_energy_service),
    settings: EnergySettings = Depends(get_api_settings),
):
    """Energy statistics for one address; hasData=false if it never harvested."""
    logger.info(
        "user_energy_request", contract_id=contract_id, address=address, refresh=refresh
    )

    try:
        result = await service.get_user_energy(contract_id, address, refresh=refresh)
        return UserEnergyResponse.model_validate(
            {"data": result.data, "fromCache": result.from_cache}
        )
    except InvalidRequestError as e:
        return _error_response(400, str(e), e, settings)
    except UpstreamFetchError as e:
        logger.error("user_energy_upstream_failed", contract_id=contract_id, error=str(e))
        return _error_response(500, GENERIC_ERROR, e, settings)
    except Exception as e:
        logger.exception("user_energy_failed", contract_id=contract_id, address=address)
        return _error_response(500, GENERIC_ERROR, e, settings)


@router.get(
    "/{contract_id}/history",
    response_model=RateHistoryResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_rate_history(
    contract_id: str,
    service: EnergyAnalyticsService = Depends(get_energy_service),
    settings: EnergySettings = Depends(get_api_settings),
):
    """Overall-rate snapshots recorded by previous system passes, newest first."""
    try:
        snapshots = await service.get_rate_history(contract_id)
        return RateHistoryResponse.model_validate(
            {"data": [snapshot.to_dict() for snapshot in snapshots]}
        )
    except InvalidRequestError as e:
        return _error_response(400, str(e), e, settings)
    except Exception as e:
        logger.exception("rate_history_failed", contract_id=contract_id)
        return _error_response(500, GENERIC_ERROR, e, settings)


@router.options("/{contract_id}", include_in_schema=False)
async def system_energy_preflight():
    return _preflight()


@router.options("/{contract_id}/user", include_in_schema=False)
async def user_energy_preflight():
    return _preflight()


@router.options("/{contract_id}/history", include_in_schema=False)
async def rate_history_preflight():
    return _preflight()
