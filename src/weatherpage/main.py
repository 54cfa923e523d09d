from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from fastapi import APIRouter, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .adapters.weather import OpenWeatherAdapter, WeatherAdapter
from .domain.conditions import icon_name
from .domain.models import (
    CityName,
    Coordinates,
    Failure,
    FallbackReason,
    GeoPermissionState,
    GeoProbeResult,
    LocationQuery,
    NotFound,
    PostalCode,
    ResolutionOutcome,
    Success,
)
from .domain.units import kelvin_to_fahrenheit
from .location.resolver import LocationWeatherResolver
from .scheduler import build_scheduler
from .settings import AppSettings, load_settings
from .storage.sessions import DisplayState, DisplayStateStore

LOGGER = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
WEB_DIR = BASE_DIR / "web"
TEMPLATES_DIR = WEB_DIR / "templates"
STATIC_DIR = WEB_DIR / "static"

SESSION_HEADER = "X-Weatherpage-Session"

SEARCH_PLACEHOLDERS = {
    "city": "Enter city (e.g. London)",
    "zip": "Enter ZIP code (e.g. 10001)",
}

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter()


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _get_resolver(request: Request) -> LocationWeatherResolver:
    return request.app.state.resolver


def _get_store(request: Request) -> DisplayStateStore:
    return request.app.state.display_store


def _new_session_id() -> str:
    return uuid.uuid4().hex


def _session_id(raw_value: str | None) -> str:
    text = (raw_value or "").strip()
    return text or _new_session_id()


def build_weather_adapter(settings: AppSettings) -> OpenWeatherAdapter:
    return OpenWeatherAdapter(
        api_key=settings.env.weather_api_key,
        base_url=settings.yaml.weather.base_url,
        timeout_seconds=settings.yaml.weather.timeout_seconds,
    )


def build_resolver(settings: AppSettings, adapter: WeatherAdapter) -> LocationWeatherResolver:
    return LocationWeatherResolver(
        adapter,
        default_location=settings.yaml.location.default_city,
        zip_country=settings.yaml.location.zip_country,
    )


def build_search_query(search_type: Literal["city", "zip"], raw_query: str) -> LocationQuery:
    text = raw_query.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Search query must not be empty")
    if search_type == "zip":
        return PostalCode(code=text)
    return CityName(name=text)


def _failure_message(outcome: ResolutionOutcome | None, settings: AppSettings) -> str | None:
    if not isinstance(outcome, Failure):
        return None
    if isinstance(outcome.error, NotFound):
        return settings.yaml.messages.not_found_message(outcome.error.scope)
    return settings.yaml.messages.fallback_notice(FallbackReason.COORDINATES_FAILED)


def _notice_message(state: DisplayState, settings: AppSettings) -> str | None:
    if state.fallback_reason is None:
        return None
    return settings.yaml.messages.fallback_notice(state.fallback_reason)


def _loading_label(permission: GeoPermissionState) -> str:
    if permission is GeoPermissionState.UNREQUESTED:
        return "Detecting your location..."
    return "Loading weather data..."


def _format_reading(value: float) -> str:
    return f"{value:g}" if value else ""


def _build_weather_context(state: DisplayState, settings: AppSettings) -> dict[str, Any]:
    ui = settings.yaml.ui
    context: dict[str, Any] = {
        "weather_generation": state.generation,
        "weather_loading": state.loading,
        "weather_loading_label": _loading_label(state.permission),
        "weather_permission": state.permission.value,
        "weather_error": None,
        "weather_notice": None,
        "weather_available": False,
        "weather_location_label": None,
        "weather_show_location_badge": False,
        "weather_description": "",
        "weather_temp_display": None,
        "weather_feels_like_display": None,
        "weather_wind_display": "",
        "weather_humidity_display": "",
        "weather_icon_name": icon_name(None),
        "weather_icon_class": None,
        "weather_icon_color": ui.icon_color,
        "weather_icon_size": ui.icon_size,
    }
    if state.loading:
        return context

    outcome = state.outcome
    context["weather_notice"] = _notice_message(state, settings)
    context["weather_error"] = _failure_message(outcome, settings)
    if not isinstance(outcome, Success):
        return context

    snapshot = outcome.snapshot
    location_parts = [part for part in (snapshot.name, snapshot.country) if part]
    context.update(
        {
            "weather_available": True,
            "weather_location_label": ", ".join(location_parts) or None,
            "weather_show_location_badge": (
                state.permission is GeoPermissionState.GRANTED and state.from_coordinates
            ),
            "weather_description": snapshot.description,
            "weather_temp_display": kelvin_to_fahrenheit(snapshot.temp_kelvin),
            "weather_feels_like_display": kelvin_to_fahrenheit(snapshot.feels_like_kelvin),
            "weather_wind_display": _format_reading(snapshot.wind_speed),
            "weather_humidity_display": _format_reading(snapshot.humidity),
            "weather_icon_name": icon_name(snapshot.condition),
            "weather_icon_class": snapshot.condition.value,
        }
    )
    return context


def _weather_partial(request: Request, state: DisplayState, session_id: str) -> HTMLResponse:
    settings = _get_settings(request)
    response = templates.TemplateResponse(
        request,
        "components/weather.html",
        _build_weather_context(state, settings),
    )
    response.headers[SESSION_HEADER] = session_id
    return response


@router.get("/", response_class=HTMLResponse)
async def weather_page(request: Request) -> HTMLResponse:
    settings = _get_settings(request)
    session_id = _new_session_id()
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": settings.yaml.ui.title,
            "header_phrases": settings.yaml.ui.header_phrases,
            "type_speed_ms": settings.yaml.ui.type_speed_ms,
            "session_id": session_id,
            "session_header": SESSION_HEADER,
            "search_placeholders": SEARCH_PLACEHOLDERS,
            "default_search_type": "city",
            **_build_weather_context(DisplayState(), settings),
        },
    )


@router.post("/partials/weather/startup", response_class=HTMLResponse)
def partial_weather_startup(
    request: Request,
    probe: GeoProbeResult,
    session: str | None = Header(default=None, alias=SESSION_HEADER),
) -> HTMLResponse:
    store = _get_store(request)
    session_id = _session_id(session)
    if not store.claim_startup(session_id):
        LOGGER.info("Startup probe for session %s already ran; ignoring repeat", session_id)
        return _weather_partial(request, store.get(session_id), session_id)

    token = store.begin(session_id)
    result = _get_resolver(request).startup(probe)
    store.set_permission(session_id, result.permission)
    applied = store.complete(
        session_id,
        token,
        result.outcome,
        fallback_reason=result.fallback_reason,
        from_coordinates=result.from_coordinates,
    )
    if not applied:
        LOGGER.info("Startup result for session %s superseded by a newer search", session_id)
    return _weather_partial(request, store.get(session_id), session_id)


@router.get("/partials/weather", response_class=HTMLResponse)
def partial_weather_search(
    request: Request,
    query: str = Query(default=""),
    search_type: Literal["city", "zip"] = Query(default="city"),
    session: str | None = Header(default=None, alias=SESSION_HEADER),
) -> HTMLResponse:
    location_query = build_search_query(search_type, query)
    store = _get_store(request)
    session_id = _session_id(session)

    token = store.begin(session_id)
    run = _get_resolver(request).run(location_query)
    applied = store.complete(
        session_id,
        token,
        run.outcome,
        fallback_reason=run.fallback_reason,
        from_coordinates=False,
    )
    if not applied:
        LOGGER.info("Discarded stale weather result for session %s (token %d)", session_id, token)
    return _weather_partial(request, store.get(session_id), session_id)


@router.get("/partials/weather/current", response_class=HTMLResponse)
async def partial_weather_current(
    request: Request,
    session: str | None = Header(default=None, alias=SESSION_HEADER),
) -> HTMLResponse:
    session_id = _session_id(session)
    return _weather_partial(request, _get_store(request).get(session_id), session_id)


@router.get("/api/weather", response_class=JSONResponse)
def api_weather(
    request: Request,
    city: str | None = Query(default=None),
    zip_code: str | None = Query(default=None, alias="zip"),
    lat: float | None = Query(default=None, ge=-90, le=90),
    lon: float | None = Query(default=None, ge=-180, le=180),
) -> JSONResponse:
    selectors = [city is not None, zip_code is not None, lat is not None or lon is not None]
    if sum(selectors) != 1:
        raise HTTPException(status_code=422, detail="Provide exactly one of city, zip, or lat/lon")

    location_query: LocationQuery
    if city is not None:
        location_query = build_search_query("city", city)
    elif zip_code is not None:
        location_query = build_search_query("zip", zip_code)
    else:
        if lat is None or lon is None:
            raise HTTPException(status_code=422, detail="Both lat and lon are required")
        location_query = Coordinates(lat=lat, lon=lon)

    settings = _get_settings(request)
    run = _get_resolver(request).run(location_query)
    state = DisplayState(loading=False, outcome=run.outcome, fallback_reason=run.fallback_reason)
    return JSONResponse(
        {
            "query": location_query.model_dump(mode="json"),
            "outcome": run.outcome.model_dump(mode="json"),
            "message": _failure_message(run.outcome, settings),
            "notice": _notice_message(state, settings),
        }
    )


@router.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    settings = _get_settings(request)
    return JSONResponse(
        {
            "status": "ok",
            "service": "weatherpage",
            "environment": settings.env.weatherpage_env,
            "default_location": settings.yaml.location.default_city,
            "scheduler_running": request.app.state.scheduler.running,
            "active_sessions": len(_get_store(request).session_ids()),
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )


def create_app(
    settings: AppSettings | None = None,
    *,
    weather_adapter: WeatherAdapter | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(application: FastAPI):
        app_settings = settings or load_settings()
        logging.basicConfig(level=app_settings.env.weatherpage_log_level)
        adapter = weather_adapter or build_weather_adapter(app_settings)
        store = DisplayStateStore()
        scheduler = build_scheduler(app_settings, store)
        scheduler.start()

        application.state.settings = app_settings
        application.state.resolver = build_resolver(app_settings, adapter)
        application.state.display_store = store
        application.state.scheduler = scheduler
        application.state.started_at_utc = datetime.now(timezone.utc)
        LOGGER.info(
            "Weather page started (env=%s, default location '%s')",
            app_settings.env.weatherpage_env,
            app_settings.yaml.location.default_city,
        )

        try:
            yield
        finally:
            if scheduler.running:
                scheduler.shutdown(wait=False)

    application = FastAPI(title="Weather Page", version="0.1.0", lifespan=lifespan)
    application.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    application.include_router(router)
    return application


app = create_app()
