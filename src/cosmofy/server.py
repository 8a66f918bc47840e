"""
HTTP and WebSocket service exposing the dashboard views.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .api.explainer import SpaceExplainer
from .api.local_info import TimeZoneClient, WeatherClient
from .config import Settings, configure_logging
from .data.astronomy_client import AstronomyAdapter
from .data.cache_manager import LocationCache
from .data.n2yo_client import MAX_PASS_DAYS, N2YOAdapter
from .data.static_events import StaticEventSource
from .errors import ConfigurationError, InputValidationError, SourceError
from .models import FetchWindow, Observer
from .views.navigation import ALL_GROUP
from .views.presets import PRESETS, build_view
from .views.state import EventView

logger = logging.getLogger(__name__)


class ObserverModel(BaseModel):
    latitude: float
    longitude: float
    altitude: float = 0.0


class RefreshRequest(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None
    observer: Optional[ObserverModel] = None


class ExplainRequest(BaseModel):
    question: str


class ExplainResponse(BaseModel):
    answer: str


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(settings: Optional[Settings] = None,
               views: Optional[Dict[str, EventView]] = None) -> FastAPI:
    """
    Build the service.

    Args:
        settings: Credentials and tunables (read from the environment if omitted)
        views: Prebuilt views by name (one per preset if omitted)
    """
    settings = settings or Settings.from_env()
    if views is None:
        views = {name: build_view(name, settings) for name in PRESETS}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        for view in app.state.views.values():
            await view.close()
        await app.state.n2yo.disconnect()
        await app.state.astronomy.disconnect()
        logger.info("Closed upstream sessions")

    app = FastAPI(title="Cosmofy", lifespan=lifespan)
    app.state.settings = settings
    app.state.views = views
    app.state.location_cache = LocationCache(settings.cache_dir, settings.location_max_age_minutes)
    app.state.n2yo = N2YOAdapter(settings.n2yo_api_key, timeout=settings.request_timeout)
    app.state.astronomy = AstronomyAdapter(settings.astronomy_app_id, settings.astronomy_app_secret,
                                           timeout=settings.request_timeout)
    app.state.calendar = StaticEventSource()
    app.state.explainer = SpaceExplainer(settings.openrouter_api_key)
    app.state.weather = WeatherClient(settings.openweather_api_key, timeout=settings.request_timeout)
    app.state.timezone = TimeZoneClient(settings.timezonedb_api_key, timeout=settings.request_timeout)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InputValidationError)
    async def invalid_input(request: Request, exc: InputValidationError):
        return JSONResponse(status_code=422, content={'error': str(exc)})

    @app.exception_handler(ConfigurationError)
    async def misconfigured(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error: {exc}")
        return JSONResponse(status_code=500, content={'error': 'Server configuration error'})

    @app.exception_handler(SourceError)
    async def upstream_failed(request: Request, exc: SourceError):
        return JSONResponse(status_code=502, content={'error': str(exc)})

    def get_view(name: str) -> EventView:
        view = app.state.views.get(name)
        if view is None:
            raise HTTPException(status_code=404, detail=f"Unknown view {name!r}")
        return view

    async def resolve_window(view_name: str, start: Optional[date], end: Optional[date],
                             observer: Optional[ObserverModel]) -> FetchWindow:
        cache: LocationCache = app.state.location_cache
        if observer is not None:
            location = Observer(observer.latitude, observer.longitude, observer.altitude)
        else:
            location = await cache.get_location()

        if start is None:
            preset = PRESETS.get(view_name)
            if preset is None:
                raise InputValidationError("start date is required for this view")
            window = preset.default_window(datetime.now(timezone.utc).date(), location)
        else:
            window = FetchWindow(start, end or start, location)

        # only a location from an accepted request is remembered
        if observer is not None:
            await cache.save_location(location)
        return window

    async def lookup_observer(lat: Optional[float], lng: Optional[float],
                              alt: float = 0.0) -> Optional[Observer]:
        if lat is not None and lng is not None:
            return Observer(lat, lng, alt)
        return await app.state.location_cache.get_location()

    @app.get("/api/health")
    async def health():
        return {'status': 'ok', 'timestamp': _timestamp()}

    @app.get("/api/views")
    async def list_views():
        return [
            {'name': view.name, 'title': view.title, 'description': view.description}
            for view in app.state.views.values()
        ]

    @app.get("/api/views/{view_name}")
    async def view_state(view_name: str):
        return get_view(view_name).state.to_dict()

    @app.post("/api/views/{view_name}/refresh")
    async def refresh_view(view_name: str, request: RefreshRequest):
        view = get_view(view_name)
        window = await resolve_window(view_name, request.start, request.end, request.observer)
        applied = await view.refresh(window)
        return {'applied': applied, **view.state.to_dict()}

    @app.post("/api/views/{view_name}/cursors/{group}/{direction}")
    async def move_cursor(view_name: str, group: str, direction: str):
        view = get_view(view_name)
        if direction not in ('next', 'previous'):
            raise HTTPException(status_code=404, detail=f"Unknown direction {direction!r}")
        getattr(view.state, direction)(group)
        return view.state.group_state(group)

    @app.get("/api/location")
    async def cached_location():
        cache: LocationCache = app.state.location_cache
        observer = await cache.get_location()
        return {
            'observer': observer.to_dict() if observer else None,
            **cache.get_cache_info(),
        }

    @app.post("/api/location")
    async def save_location(observer: ObserverModel):
        location = Observer(observer.latitude, observer.longitude, observer.altitude)
        await app.state.location_cache.save_location(location)
        return {'observer': location.to_dict()}

    @app.get("/api/satellites/{norad_id}/tle")
    async def satellite_tle(norad_id: str):
        elements = await app.state.n2yo.get_tle(norad_id)
        return elements.to_dict()

    @app.get("/api/satellites/{norad_id}/positions")
    async def satellite_positions(norad_id: str, lat: Optional[float] = Query(None),
                                  lng: Optional[float] = Query(None), alt: float = 0.0,
                                  seconds: int = 1):
        observer = await lookup_observer(lat, lng, alt)
        if observer is None:
            return JSONResponse(status_code=400, content={'error': 'Latitude and longitude are required'})
        positions = await app.state.n2yo.get_positions(norad_id, observer, seconds)
        return [position.to_dict() for position in positions]

    @app.get("/api/satellites/{norad_id}/passes")
    async def satellite_passes(norad_id: str, lat: Optional[float] = Query(None),
                               lng: Optional[float] = Query(None), alt: float = 0.0,
                               days: int = MAX_PASS_DAYS):
        observer = await lookup_observer(lat, lng, alt)
        if observer is None:
            return JSONResponse(status_code=400, content={'error': 'Latitude and longitude are required'})
        events = await app.state.n2yo.get_passes(norad_id, observer, days)
        return [event.to_dict() for event in events]

    @app.get("/api/moon-phase")
    async def moon_phase(day: Optional[date] = Query(None, alias="date"),
                         lat: Optional[float] = Query(None), lng: Optional[float] = Query(None)):
        observer = await lookup_observer(lat, lng)
        if observer is None:
            return JSONResponse(status_code=400, content={'error': 'Latitude and longitude are required'})
        window = FetchWindow.single_day(day or datetime.now(timezone.utc).date(), observer)
        image_url = await app.state.astronomy.get_moon_phase(window)
        return {'date': window.start.isoformat(), 'image_url': image_url}

    @app.get("/api/calendar/markers")
    async def calendar_markers():
        return {'dates': app.state.calendar.event_days()}

    @app.post("/api/explain", response_model=ExplainResponse)
    async def explain(request: ExplainRequest):
        answer = await app.state.explainer.explain(request.question)
        return ExplainResponse(answer=answer)

    @app.get("/api/weather")
    async def weather(lat: Optional[float] = Query(None), lng: Optional[float] = Query(None)):
        if lat is None or lng is None:
            return JSONResponse(status_code=400, content={'error': 'Latitude and longitude are required'})
        report = await app.state.weather.current(Observer(lat, lng))
        return report.to_dict()

    @app.get("/api/timezone")
    async def time_zone(lat: Optional[float] = Query(None), lng: Optional[float] = Query(None)):
        if lat is None or lng is None:
            return JSONResponse(status_code=400, content={'error': 'Latitude and longitude are required'})
        info = await app.state.timezone.lookup(Observer(lat, lng))
        return info.to_dict()

    @app.websocket("/ws/{view_name}")
    async def websocket_endpoint(websocket: WebSocket, view_name: str):
        logger.info(f"New WebSocket connection for {view_name}")
        await websocket.accept()

        view = app.state.views.get(view_name)
        if view is None:
            await websocket.send_json({
                'type': 'error',
                'message': f"Unknown view {view_name!r}",
                'timestamp': _timestamp()
            })
            await websocket.close()
            return

        await websocket.send_json({'type': 'update', 'data': view.state.to_dict(), 'timestamp': _timestamp()})
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    message = json.loads(raw)
                    if not isinstance(message, dict):
                        raise InputValidationError("messages must be JSON objects")
                    action = message.get('action')
                    if action == 'refresh':
                        observer = message.get('observer')
                        window = await resolve_window(
                            view_name,
                            date.fromisoformat(message['start']) if message.get('start') else None,
                            date.fromisoformat(message['end']) if message.get('end') else None,
                            ObserverModel(**observer) if observer else None,
                        )
                        await view.refresh(window)
                    elif action in ('next', 'previous'):
                        getattr(view.state, action)(message.get('group') or ALL_GROUP)
                    else:
                        raise InputValidationError(f"Unknown action {action!r}")
                except (ValueError, TypeError) as e:
                    # InputValidationError and pydantic's ValidationError are ValueErrors
                    await websocket.send_json({'type': 'error', 'message': str(e), 'timestamp': _timestamp()})
                    continue

                await websocket.send_json({
                    'type': 'update',
                    'data': view.state.to_dict(),
                    'timestamp': _timestamp()
                })
        except WebSocketDisconnect:
            logger.info("WebSocket disconnected normally")

    return app


def main():
    settings = Settings.from_env()
    configure_logging(settings)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
