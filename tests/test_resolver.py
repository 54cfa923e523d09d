from __future__ import annotations

import pytest

from weatherpage.domain.models import (
    CityName,
    Coordinates,
    Failure,
    FallbackReason,
    GeoPermissionState,
    GeoProbeResult,
    LocalUnavailable,
    NotFound,
    PostalCode,
    Success,
)
from weatherpage.location.resolver import LocationWeatherResolver, ResolutionState

from conftest import StubWeatherAdapter, make_snapshot


@pytest.fixture
def resolver(stub_adapter: StubWeatherAdapter) -> LocationWeatherResolver:
    return LocationWeatherResolver(stub_adapter, default_location="New York", zip_country="us")


def test_city_lookup_success(resolver: LocationWeatherResolver, stub_adapter: StubWeatherAdapter) -> None:
    outcome = resolver.resolve(CityName(name="London"))

    assert isinstance(outcome, Success)
    assert outcome.snapshot.name == "London"
    assert outcome.notice is None
    assert stub_adapter.calls == [("city", "London")]


def test_unknown_city_is_not_found(resolver: LocationWeatherResolver, stub_adapter: StubWeatherAdapter) -> None:
    outcome = resolver.resolve(CityName(name="Nonexistent City XYZ"))

    assert outcome == Failure(error=NotFound(scope="city"))
    assert stub_adapter.calls == [("city", "Nonexistent City XYZ")]


def test_zip_lookup_uses_fixed_country_suffix(
    resolver: LocationWeatherResolver, stub_adapter: StubWeatherAdapter
) -> None:
    outcome = resolver.resolve(PostalCode(code="10001"))

    assert isinstance(outcome, Success)
    assert stub_adapter.calls == [("zip", "10001,us")]


def test_unknown_zip_is_scoped_to_zip_code(resolver: LocationWeatherResolver) -> None:
    outcome = resolver.resolve(PostalCode(code="00000"))

    assert outcome == Failure(error=NotFound(scope="zip code"))


def test_coordinates_success_does_not_fall_back(
    resolver: LocationWeatherResolver, stub_adapter: StubWeatherAdapter
) -> None:
    run = resolver.run(Coordinates(lat=40.7, lon=-74.0))

    assert isinstance(run.outcome, Success)
    assert run.outcome.snapshot.name == "Manhattan"
    assert run.fallback_reason is None
    assert run.from_coordinates is True
    assert run.history == [ResolutionState.RESOLVING_BY_COORDINATES, ResolutionState.RESOLVED]
    assert len(stub_adapter.calls) == 1


def test_failed_coordinates_fall_back_to_default_location(
    resolver: LocationWeatherResolver, stub_adapter: StubWeatherAdapter
) -> None:
    fallback = resolver.resolve(Coordinates(lat=1.0, lon=2.0))
    direct = resolver.resolve(CityName(name="New York"))

    assert isinstance(fallback, Success)
    assert isinstance(direct, Success)
    assert fallback.snapshot == direct.snapshot
    assert fallback.notice == LocalUnavailable()
    assert stub_adapter.calls[:2] == [("coordinates", (1.0, 2.0)), ("city", "New York")]


def test_failed_coordinates_records_fallback_path(resolver: LocationWeatherResolver) -> None:
    run = resolver.run(Coordinates(lat=1.0, lon=2.0))

    assert run.fallback_reason is FallbackReason.COORDINATES_FAILED
    assert run.from_coordinates is False
    assert run.history == [
        ResolutionState.RESOLVING_BY_COORDINATES,
        ResolutionState.RESOLVING_BY_DEFAULT,
        ResolutionState.RESOLVED,
    ]


def test_failed_coordinates_and_failed_default_yield_city_not_found() -> None:
    resolver = LocationWeatherResolver(StubWeatherAdapter(), default_location="Atlantis")

    outcome = resolver.resolve(Coordinates(lat=1.0, lon=2.0))

    assert outcome == Failure(error=NotFound(scope="city"), notice=LocalUnavailable())


def test_startup_granted_resolves_coordinates(
    resolver: LocationWeatherResolver, stub_adapter: StubWeatherAdapter
) -> None:
    result = resolver.startup(GeoProbeResult(status="granted", lat=40.7, lon=-74.0))

    assert result.permission is GeoPermissionState.GRANTED
    assert isinstance(result.outcome, Success)
    assert result.outcome.snapshot.name == "Manhattan"
    assert result.from_coordinates is True
    assert stub_adapter.calls == [("coordinates", (40.7, -74.0))]


def test_startup_denied_uses_default_silently(
    resolver: LocationWeatherResolver, stub_adapter: StubWeatherAdapter
) -> None:
    result = resolver.startup(GeoProbeResult(status="denied"))

    assert result.permission is GeoPermissionState.DENIED
    assert result.fallback_reason is FallbackReason.GEOLOCATION_UNAVAILABLE
    assert isinstance(result.outcome, Success)
    assert result.outcome.notice is None
    assert stub_adapter.calls == [("city", "New York")]


def test_startup_unsupported_leaves_permission_unrequested(resolver: LocationWeatherResolver) -> None:
    result = resolver.startup(GeoProbeResult(status="unsupported"))

    assert result.permission is GeoPermissionState.UNREQUESTED
    assert result.fallback_reason is FallbackReason.GEOLOCATION_UNAVAILABLE
    assert isinstance(result.outcome, Success)


def test_startup_granted_but_lookup_failed_reports_local_unavailable(
    resolver: LocationWeatherResolver,
) -> None:
    result = resolver.startup(GeoProbeResult(status="granted", lat=10.0, lon=10.0))

    assert result.permission is GeoPermissionState.GRANTED
    assert result.fallback_reason is FallbackReason.COORDINATES_FAILED
    assert result.from_coordinates is False
    assert isinstance(result.outcome, Success)
    assert result.outcome.notice == LocalUnavailable()


@pytest.mark.parametrize(
    "query",
    [
        CityName(name="London"),
        CityName(name="Nowhere"),
        PostalCode(code="10001"),
        PostalCode(code="99999"),
        Coordinates(lat=40.7, lon=-74.0),
        Coordinates(lat=0.0, lon=0.0),
    ],
)
def test_exactly_one_outcome_per_query(resolver: LocationWeatherResolver, query) -> None:
    outcome = resolver.resolve(query)

    assert isinstance(outcome, (Success, Failure))
    assert isinstance(outcome, Success) != isinstance(outcome, Failure)


def test_unexpected_adapter_errors_do_not_escape() -> None:
    class ExplodingAdapter(StubWeatherAdapter):
        def get_weather_by_city(self, name: str):
            raise KeyError("boom")

    resolver = LocationWeatherResolver(ExplodingAdapter(), default_location="New York")

    assert resolver.resolve(CityName(name="London")) == Failure(error=NotFound(scope="city"))


def test_default_query_is_exposed() -> None:
    resolver = LocationWeatherResolver(StubWeatherAdapter(cities={"Paris": make_snapshot("Paris")}), default_location=" Paris ")

    assert resolver.default_query == CityName(name="Paris")
    assert isinstance(resolver.resolve(resolver.default_query), Success)
