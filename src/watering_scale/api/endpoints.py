"""API endpoints for the watering scale service."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi_cache.decorator import cache

from watering_scale.adjustment.factory import decode
from watering_scale.adjustment.manual import Manual
from watering_scale.api.formatting import format_query_string
from watering_scale.config import WEATHER_DATA_CACHE_SECONDS
from watering_scale.dependencies import get_watering_service
from watering_scale.errors import (
    CodedError, ErrorCode, InvalidAdjustmentMethod, NoLocationFound, make_coded_error
)
from watering_scale.eto.baseline import BaselineEToError
from watering_scale.models import WateringDataResponse
from watering_scale.watering.service import WateringService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_remote_address(request: Request) -> Optional[str]:
    """Address of the requesting controller, honouring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for") or request.headers.get("cf-connecting-ip")
    if forwarded:
        # X-Forwarded-For may hold a chain of addresses; the first is the client
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def send_watering_data(data: WateringDataResponse, use_json: bool = False) -> Response:
    """Send watering data in JSON or the legacy query string format."""
    body = data.model_dump(by_alias=True, exclude_none=True)
    if use_json:
        return JSONResponse(content=body)
    return PlainTextResponse(format_query_string(body))


def send_watering_error(error: CodedError, reset_scale: bool = True, use_json: bool = False) -> Response:
    """
    Send an error code to the firmware.

    Args:
        error: Error to report
        reset_scale: Whether to include a scale of 100. Older firmware applies
            the scale even when an error is reported, so it is reset to 100%
            unless the controller uses manual adjustments.
        use_json: Whether to format the response as JSON

    Returns:
        Response with a 200 status, which the firmware expects even on error
    """
    if error.err_code == ErrorCode.UNEXPECTED_ERROR:
        logger.error(f"An unexpected error occurred: {error}")
    else:
        logger.warning(f"Watering data request failed with error code {int(error.err_code)}: {error}")

    return send_watering_data(
        WateringDataResponse(err_code=error.err_code, scale=100 if reset_scale else None),
        use_json
    )


@router.get("/health", tags=["health"])
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Health status response
    """
    return {"status": "healthy", "service": "watering-scale"}


@router.get("/weatherData", tags=["weather"])
@cache(expire=WEATHER_DATA_CACHE_SECONDS)
async def get_weather_data(
    loc: str = Query("", description="Location name or 'lat,lon' pair"),
    service: WateringService = Depends(get_watering_service)
) -> dict:
    """Current conditions and daily forecast for a location.

    Raises:
        HTTPException: If the location cannot be resolved or the weather cannot be retrieved
    """
    try:
        coordinates = await service.resolve_coordinates(loc)
    except Exception as e:
        logger.error(f"Error resolving location '{loc}': {e}")
        raise HTTPException(status_code=400, detail=f"Error: Unable to resolve location ({make_coded_error(e)})")

    try:
        return await service.get_weather_data(coordinates)
    except Exception as e:
        logger.error(f"Error getting weather data for {coordinates}: {e}")
        raise HTTPException(status_code=400, detail=f"Error: {make_coded_error(e)}")


@router.get("/baselineETo", tags=["eto"])
async def get_baseline_eto(
    loc: str = Query("", description="Location name or 'lat,lon' pair"),
    service: WateringService = Depends(get_watering_service)
) -> dict:
    """Average daily baseline ETo for a location.

    Raises:
        HTTPException: If the data file, the location or the pixel cannot be read
    """
    try:
        reader = await service.load_baseline_reader()
    except BaselineEToError as e:
        logger.error(f"Error reading the baseline ETo data file header: {e}")
        raise HTTPException(status_code=503, detail="Baseline ETo calculation is currently unavailable.")

    try:
        coordinates = await service.resolve_coordinates(loc)
    except CodedError as e:
        logger.warning(f"Could not resolve coordinates for '{loc}': {e}")
        status_code = 404 if isinstance(e, NoLocationFound) else 500
        raise HTTPException(status_code=status_code, detail="Could not resolve coordinates for location.")

    try:
        eto = await service.get_baseline_eto(reader, coordinates)
    except BaselineEToError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return {"eto": eto}


@router.get("/{method}", tags=["watering"])
async def get_watering_data(
    request: Request,
    method: str,
    loc: str = Query("", description="Location name or 'lat,lon' pair"),
    wto: str = Query("", description="Adjustment options without the enclosing braces"),
    format: str = Query("", description="'json' for a JSON response"),
    service: WateringService = Depends(get_watering_service)
) -> Response:
    """Watering scale for the controller firmware.

    The path parameter is the method byte set by the firmware: the low 7 bits
    select the adjustment method and the high bit enables watering restrictions.
    Errors are reported with an error code in a 200 response.
    """
    use_json = format == "json"
    try:
        method_byte = int(method)
        if not 0 <= method_byte <= 255:
            raise ValueError(method)
    except ValueError:
        return send_watering_error(InvalidAdjustmentMethod(), use_json=use_json)

    reset_scale = decode(method_byte).adjustment_method_id != Manual.method_id
    try:
        data = await service.get_watering_data(method_byte, loc, wto, get_remote_address(request))
    except InvalidAdjustmentMethod as e:
        return send_watering_error(e, use_json=use_json)
    except Exception as e:
        if not isinstance(e, CodedError):
            logger.exception(f"Unhandled error calculating watering scale for method {method_byte}")
        return send_watering_error(make_coded_error(e), reset_scale, use_json)

    logger.info(f"Watering scale for method {method_byte} at '{loc}': {data.scale}")
    return send_watering_data(data, use_json)
