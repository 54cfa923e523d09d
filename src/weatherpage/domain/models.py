from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ConditionCategory(str, Enum):
    CLEAR_DAY = "clear-day"
    CLEAR_NIGHT = "clear-night"
    CLOUDY = "cloudy"
    RAIN = "rain"
    SNOW = "snow"
    SLEET = "sleet"
    FOG = "fog"
    PARTLY_CLOUDY_DAY = "partly-cloudy-day"


class GeoPermissionState(str, Enum):
    UNREQUESTED = "prompt"
    GRANTED = "granted"
    DENIED = "denied"


class FallbackReason(str, Enum):
    GEOLOCATION_UNAVAILABLE = "geolocation_unavailable"
    COORDINATES_FAILED = "coordinates_failed"


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["coordinates"] = "coordinates"
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class CityName(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["city"] = "city"
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("city name must not be empty")
        return text


class PostalCode(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["zip"] = "zip"
    code: str

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("postal code must not be empty")
        return text


LocationQuery = Annotated[Union[Coordinates, CityName, PostalCode], Field(discriminator="kind")]


class GeoProbeResult(BaseModel):
    """What the browser reports after its one-shot geolocation probe."""

    model_config = ConfigDict(frozen=True)

    status: Literal["granted", "denied", "unsupported"]
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def validate_position(self) -> GeoProbeResult:
        if self.status == "granted" and (self.lat is None or self.lon is None):
            raise ValueError("a granted geolocation probe must report lat and lon")
        return self


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    country: str = ""
    condition: ConditionCategory
    description: str = ""
    temp_kelvin: float
    feels_like_kelvin: float
    wind_speed: float = 0.0
    humidity: int = Field(default=0, ge=0, le=100)
    observed_at: int
    sunrise: int | None = None
    sunset: int | None = None


class NotFound(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["not_found"] = "not_found"
    scope: Literal["city", "zip code"]


class LocalUnavailable(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["local_unavailable"] = "local_unavailable"


FailureKind = Annotated[Union[NotFound, LocalUnavailable], Field(discriminator="kind")]


class Success(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    snapshot: WeatherSnapshot
    notice: LocalUnavailable | None = None


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    error: FailureKind
    notice: LocalUnavailable | None = None


ResolutionOutcome = Annotated[Union[Success, Failure], Field(discriminator="status")]
