from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from weatherpage.domain.models import (
    CityName,
    Coordinates,
    Failure,
    GeoProbeResult,
    LocalUnavailable,
    LocationQuery,
    NotFound,
    PostalCode,
    ResolutionOutcome,
    Success,
)

from conftest import make_snapshot


def test_location_query_union_dispatches_on_kind() -> None:
    adapter = TypeAdapter(LocationQuery)

    assert adapter.validate_python({"kind": "city", "name": " London "}) == CityName(name="London")
    assert adapter.validate_python({"kind": "zip", "code": "10001"}) == PostalCode(code="10001")
    assert adapter.validate_python({"kind": "coordinates", "lat": 1.5, "lon": -2.5}) == Coordinates(
        lat=1.5, lon=-2.5
    )


@pytest.mark.parametrize(
    "payload",
    [
        {"kind": "city", "name": "   "},
        {"kind": "zip", "code": ""},
        {"kind": "coordinates", "lat": 91, "lon": 0},
        {"kind": "coordinates", "lat": 0, "lon": -181},
        {"kind": "landmark", "name": "Eiffel Tower"},
    ],
)
def test_invalid_location_queries_are_rejected(payload: dict) -> None:
    with pytest.raises(ValidationError):
        TypeAdapter(LocationQuery).validate_python(payload)


def test_queries_are_immutable() -> None:
    query = CityName(name="London")

    with pytest.raises(ValidationError):
        query.name = "Paris"


def test_granted_probe_requires_position() -> None:
    with pytest.raises(ValidationError):
        GeoProbeResult(status="granted", lat=1.0)

    assert GeoProbeResult(status="denied").lat is None


def test_outcome_union_serializes_with_status_tag() -> None:
    adapter = TypeAdapter(ResolutionOutcome)
    failure = Failure(error=NotFound(scope="zip code"), notice=LocalUnavailable())

    dumped = failure.model_dump(mode="json")

    assert dumped == {
        "status": "failure",
        "error": {"kind": "not_found", "scope": "zip code"},
        "notice": {"kind": "local_unavailable"},
    }
    assert adapter.validate_python(dumped) == failure

    success = Success(snapshot=make_snapshot())
    assert adapter.validate_python(success.model_dump(mode="json")) == success


def test_snapshot_condition_serializes_as_category_value() -> None:
    dumped = make_snapshot().model_dump(mode="json")

    assert dumped["condition"] == "clear-day"
    assert dumped["temp_kelvin"] == 293.15
