from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Mapping, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .database import SnowflakeExecutor
from .dates import parse_iso_date
from .errors import ExecutionError, ValidationError
from .filters import DateRange, FilterRequest, NumericRange, parse_filter_request_json
from .geo import GeoPoint
from .pagination import PageRequest
from .regions import RegionRegistry
from .service import QueryService
from .validation import _assert_range, _parse_float, _parse_int, _cap_limit

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ARGO Float Search Service", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

REGIONS = RegionRegistry()


@app.on_event("startup")
def _startup():
    REGIONS.load()
    app.state.service = QueryService(SnowflakeExecutor.from_config())


def get_service(request: Request) -> QueryService:
    return request.app.state.service


def get_regions() -> RegionRegistry:
    return REGIONS


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "validation", "field": exc.field, "message": exc.message},
    )


@app.exception_handler(ExecutionError)
async def _execution_error(request: Request, exc: ExecutionError):
    logger.error("warehouse failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "error": "execution",
            "operation": exc.operation,
            "message": exc.message,
            "query": exc.query,
            "retryable": True,
        },
    )


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def _page(params: Mapping[str, Any], limits: tuple[int, int]) -> PageRequest:
    default, maximum = limits
    return PageRequest.from_params(
        params.get("page"), params.get("limit"), default_limit=default, max_limit=maximum
    )


def _date_range(params: Mapping[str, Any], start_key: str, end_key: str) -> Optional[DateRange]:
    start = (params.get(start_key) or "").strip()
    end = (params.get(end_key) or "").strip()
    if not start and not end:
        return None
    rng = DateRange(
        start=parse_iso_date(start, start_key) if start else None,
        end=parse_iso_date(end, end_key) if end else None,
    )
    rng.validate()
    return rng


def _platform(platform_number: str) -> str:
    value = platform_number.strip()
    if not value or value in ("undefined", "null"):
        raise ValidationError("id", "Invalid platform number provided")
    return value


@app.get("/healthz")
def health(regions: RegionRegistry = Depends(get_regions)):
    return {"ok": True, "regions": regions.keys()}


@app.get("/floats")
async def list_floats(request: Request, service: QueryService = Depends(get_service)):
    params = request.query_params
    filters = FilterRequest.from_query_params(params)
    page = _page(params, config.FLOATS_PAGE_LIMITS)

    result, statistics = await service.search_with_statistics(filters, page)
    return {
        "floats": [f.to_dict() for f in result.items],
        "statistics": statistics.to_dict(),
        "pagination": result.pagination_dict(),
        "total": result.total,
        "lastUpdated": _now(),
    }


@app.post("/floats/search")
async def search_floats(
    payload: dict = Body(..., description="{filters, page, limit}"),
    service: QueryService = Depends(get_service),
):
    filters = parse_filter_request_json(payload.get("filters") or {})
    page = _page(payload, config.FLOATS_PAGE_LIMITS)

    result = await service.search(filters, page)
    return {
        "floats": [f.to_dict() for f in result.items],
        "pagination": result.pagination_dict(),
        "filters": filters.to_dict(),
        "lastUpdated": _now(),
    }


@app.get("/floats/nearest")
async def nearest_floats(request: Request, service: QueryService = Depends(get_service)):
    params = request.query_params
    lat, lon = params.get("lat"), params.get("lon")
    if not lat or not lon:
        raise ValidationError("lat" if not lat else "lon", "Latitude and longitude are required")

    center = GeoPoint(_parse_float("lat", lat), _parse_float("lon", lon))
    max_distance = _parse_float("maxDistance", params.get("maxDistance") or str(config.NEAREST_DEFAULT_DISTANCE_KM))
    default, maximum = config.NEAREST_LIMITS
    limit = _cap_limit(_parse_int("limit", params.get("limit") or str(default)), default, maximum)

    floats = await service.nearest_floats(center, max_distance, limit)
    return {
        "searchLocation": {"latitude": center.latitude, "longitude": center.longitude},
        "maxDistance": max_distance,
        "floatsFound": len(floats),
        "floats": [f.to_dict() for f in floats],
        "lastUpdated": _now(),
    }


@app.get("/floats/{platform_number}/profile")
async def float_profile(platform_number: str, service: QueryService = Depends(get_service)):
    profile = await service.float_profile(_platform(platform_number))
    return {**profile.to_dict(), "lastUpdated": _now()}


@app.get("/floats/{platform_number}/timeseries")
async def float_timeseries(platform_number: str, request: Request, service: QueryService = Depends(get_service)):
    date_range = _date_range(request.query_params, "start", "end")
    points = await service.float_timeseries(_platform(platform_number), date_range)
    return {
        "floatId": platform_number,
        "timeSeries": [p.to_dict() for p in points],
        "dataPoints": len(points),
        "dateRange": date_range.to_dict() if date_range else None,
        "lastUpdated": _now(),
    }


@app.get("/floats/{platform_number}/trajectory")
async def float_trajectory(platform_number: str, request: Request, service: QueryService = Depends(get_service)):
    date_range = _date_range(request.query_params, "start", "end")
    points = await service.float_trajectory(_platform(platform_number), date_range)
    body = {
        "floatId": platform_number,
        "trajectory": [p.to_dict() for p in points],
        "dataPoints": len(points),
        "dateRange": date_range.to_dict() if date_range else None,
        "lastUpdated": _now(),
    }
    if not points:
        body["message"] = "No trajectory data available for this float"
    return body


@app.get("/profiles")
async def list_profiles(request: Request, service: QueryService = Depends(get_service)):
    params = request.query_params
    filters = FilterRequest.from_query_params(params)
    page = _page(params, config.PROFILES_PAGE_LIMITS)

    result = await service.list_profiles(filters, page)
    return {
        "profiles": [p.to_dict() for p in result.page.items],
        "pagination": result.page.pagination_dict(),
        "statistics": {
            "totalProfiles": result.page.total,
            "totalMeasurements": result.total_measurements,
        },
        "lastUpdated": _now(),
    }


@app.get("/profiles/{profile_id}/measurements")
async def profile_measurements(profile_id: int, request: Request, service: QueryService = Depends(get_service)):
    params = request.query_params
    filters = FilterRequest.from_query_params(params)
    page = _page(params, config.MEASUREMENTS_PAGE_LIMITS)

    result = await service.profile_measurements(profile_id, page, filters)
    if result is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {
        "profile": result.profile.to_dict(),
        "measurements": [m.to_dict() for m in result.page.items],
        "pagination": result.page.pagination_dict(),
        "lastUpdated": _now(),
    }


def _depth_range(raw: str) -> NumericRange:
    lo, sep, hi = raw.partition("-")
    if not sep:
        raise ValidationError("depthRange", f"expected MIN-MAX, got {raw!r}")
    rng = NumericRange(_parse_float("depthRange.min", lo), _parse_float("depthRange.max", hi))
    _assert_range("depthRange", rng.min, rng.max)
    return rng


@app.get("/compare/regions")
async def compare_regions(
    request: Request,
    service: QueryService = Depends(get_service),
    registry: RegionRegistry = Depends(get_regions),
):
    params = request.query_params
    keys = [k for k in (params.get("regions") or "").split(",") if k.strip()]
    date_range = _date_range(params, "startDate", "endDate")
    depth_range = _depth_range(params.get("depthRange") or "0-100")

    comparisons = await service.compare_regions(registry.resolve(keys), date_range, depth_range)
    return {
        "regions": [c.to_dict() for c in comparisons],
        "dateRange": date_range.to_dict() if date_range else {"start": None, "end": None},
        "depthRange": depth_range.to_dict(),
        "comparisonDate": _now(),
    }


@app.get("/quality-control-stats")
async def quality_control_stats(request: Request, service: QueryService = Depends(get_service)):
    filters = FilterRequest.from_query_params(request.query_params)
    stats = await service.quality_control_stats(filters)
    return {
        "qualityStats": stats,
        "filters": filters.to_dict(),
        "lastUpdated": _now(),
    }
