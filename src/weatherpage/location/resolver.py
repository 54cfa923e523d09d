from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..adapters.weather import WeatherAdapter, WeatherAdapterError
from ..domain.models import (
    CityName,
    Coordinates,
    Failure,
    FallbackReason,
    GeoPermissionState,
    GeoProbeResult,
    LocalUnavailable,
    LocationQuery,
    NotFound,
    PostalCode,
    ResolutionOutcome,
    Success,
    WeatherSnapshot,
)

LOGGER = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    PROBING_LOCATION = "probing_location"
    RESOLVING_BY_QUERY = "resolving_by_query"
    RESOLVING_BY_COORDINATES = "resolving_by_coordinates"
    RESOLVING_BY_DEFAULT = "resolving_by_default"
    RESOLVED = "resolved"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ResolutionState.RESOLVED, ResolutionState.FAILED})

_PERMISSION_BY_PROBE_STATUS = {
    "granted": GeoPermissionState.GRANTED,
    "denied": GeoPermissionState.DENIED,
    "unsupported": GeoPermissionState.UNREQUESTED,
}


@dataclass(slots=True)
class ResolutionRun:
    state: ResolutionState
    query: LocationQuery | None = None
    probe: GeoProbeResult | None = None
    permission: GeoPermissionState = GeoPermissionState.UNREQUESTED
    fallback_reason: FallbackReason | None = None
    outcome: ResolutionOutcome | None = None
    history: list[ResolutionState] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.history.append(self.state)

    def advance(self, next_state: ResolutionState) -> None:
        LOGGER.debug("Resolution moved from %s to %s", self.state.value, next_state.value)
        self.state = next_state
        self.history.append(next_state)

    @property
    def from_coordinates(self) -> bool:
        return (
            isinstance(self.query, Coordinates)
            and self.fallback_reason is None
            and isinstance(self.outcome, Success)
        )


@dataclass(slots=True)
class StartupResult:
    permission: GeoPermissionState
    outcome: ResolutionOutcome
    fallback_reason: FallbackReason | None = None
    from_coordinates: bool = False


class LocationWeatherResolver:
    """Turns a location request into exactly one ResolutionOutcome.

    Coordinate lookups that fail, and startup probes that report no usable
    position, both end in the single default-location state; the reason is
    carried along so the caller can pick the matching notice.
    """

    def __init__(
        self,
        adapter: WeatherAdapter,
        *,
        default_location: str,
        zip_country: str = "us",
    ) -> None:
        self._adapter = adapter
        self._default_query = CityName(name=default_location)
        self._zip_country = zip_country
        self._steps: dict[ResolutionState, Callable[[ResolutionRun], ResolutionState]] = {
            ResolutionState.PROBING_LOCATION: self._probe_location,
            ResolutionState.RESOLVING_BY_QUERY: self._resolve_by_query,
            ResolutionState.RESOLVING_BY_COORDINATES: self._resolve_by_coordinates,
            ResolutionState.RESOLVING_BY_DEFAULT: self._resolve_by_default,
        }

    @property
    def default_query(self) -> CityName:
        return self._default_query

    def resolve(self, query: LocationQuery) -> ResolutionOutcome:
        return self.run(query).outcome

    def run(self, query: LocationQuery) -> ResolutionRun:
        if isinstance(query, Coordinates):
            initial_state = ResolutionState.RESOLVING_BY_COORDINATES
        else:
            initial_state = ResolutionState.RESOLVING_BY_QUERY
        return self._drive(ResolutionRun(state=initial_state, query=query))

    def startup(self, probe: GeoProbeResult) -> StartupResult:
        run = self._drive(ResolutionRun(state=ResolutionState.PROBING_LOCATION, probe=probe))
        return StartupResult(
            permission=run.permission,
            outcome=run.outcome,
            fallback_reason=run.fallback_reason,
            from_coordinates=run.from_coordinates,
        )

    def _drive(self, run: ResolutionRun) -> ResolutionRun:
        while run.state not in TERMINAL_STATES:
            step = self._steps[run.state]
            run.advance(step(run))
        return run

    def _lookup(self, fetch: Callable[[], WeatherSnapshot], label: str) -> WeatherSnapshot | None:
        try:
            return fetch()
        except WeatherAdapterError as exc:
            LOGGER.warning("Weather lookup for %s failed: %s", label, exc)
        except Exception:
            LOGGER.exception("Weather lookup for %s failed", label)
        return None

    def _probe_location(self, run: ResolutionRun) -> ResolutionState:
        probe = run.probe
        if probe is None:
            raise ValueError("probing_location requires a geolocation probe result")

        run.permission = _PERMISSION_BY_PROBE_STATUS[probe.status]
        if probe.status == "granted" and probe.lat is not None and probe.lon is not None:
            run.query = Coordinates(lat=probe.lat, lon=probe.lon)
            return ResolutionState.RESOLVING_BY_COORDINATES

        LOGGER.info("Geolocation %s; using default location '%s'", probe.status, self._default_query.name)
        run.fallback_reason = FallbackReason.GEOLOCATION_UNAVAILABLE
        return ResolutionState.RESOLVING_BY_DEFAULT

    def _resolve_by_query(self, run: ResolutionRun) -> ResolutionState:
        query = run.query
        if isinstance(query, PostalCode):
            snapshot = self._lookup(
                lambda: self._adapter.get_weather_by_zip(query.code, self._zip_country),
                f"zip code '{query.code}'",
            )
            scope = "zip code"
        elif isinstance(query, CityName):
            snapshot = self._lookup(
                lambda: self._adapter.get_weather_by_city(query.name),
                f"city '{query.name}'",
            )
            scope = "city"
        else:
            raise TypeError(f"Unsupported location query: {query!r}")

        if snapshot is None:
            run.outcome = Failure(error=NotFound(scope=scope))
            return ResolutionState.FAILED
        run.outcome = Success(snapshot=snapshot)
        return ResolutionState.RESOLVED

    def _resolve_by_coordinates(self, run: ResolutionRun) -> ResolutionState:
        query = run.query
        if not isinstance(query, Coordinates):
            raise TypeError(f"Expected coordinates, got {query!r}")

        snapshot = self._lookup(
            lambda: self._adapter.get_weather_by_coordinates(query.lat, query.lon),
            f"coordinates {query.lat:.3f}, {query.lon:.3f}",
        )
        if snapshot is None:
            run.fallback_reason = FallbackReason.COORDINATES_FAILED
            return ResolutionState.RESOLVING_BY_DEFAULT
        run.outcome = Success(snapshot=snapshot)
        return ResolutionState.RESOLVED

    def _resolve_by_default(self, run: ResolutionRun) -> ResolutionState:
        default_name = self._default_query.name
        notice = LocalUnavailable() if run.fallback_reason is FallbackReason.COORDINATES_FAILED else None
        snapshot = self._lookup(
            lambda: self._adapter.get_weather_by_city(default_name),
            f"default location '{default_name}'",
        )
        if snapshot is None:
            run.outcome = Failure(error=NotFound(scope="city"), notice=notice)
            return ResolutionState.FAILED
        run.outcome = Success(snapshot=snapshot, notice=notice)
        return ResolutionState.RESOLVED
