from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quake_stats.models import Event
from quake_stats.preprocess.time import is_valid_epoch_millis, parse_timestamp_millis

ProviderName = Literal["usgs", "emsc"]


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UsgsGeometry(_RawModel):
    coordinates: list[float | None] = Field(min_length=2)


class UsgsProperties(_RawModel):
    mag: float | None = None
    time: int | None = None
    place: str | None = None


class UsgsFeature(_RawModel):
    """GeoJSON feature from the USGS FDSN event service."""

    provider: Literal["usgs"] = "usgs"
    id: str | None = None
    properties: UsgsProperties = Field(default_factory=UsgsProperties)
    geometry: UsgsGeometry


class EmscProperties(_RawModel):
    lat: float
    lon: float
    depth: float | None = None
    mag: float | None = None
    time: str | None = None
    flynn_region: str | None = None
    auth: str | None = None
    unid: str | None = None


class EmscFeature(_RawModel):
    """Feature from the EMSC seismicportal FDSN JSON service."""

    provider: Literal["emsc"] = "emsc"
    id: str | None = None
    properties: EmscProperties


def _finite(value: float | None) -> float | None:
    # NaN and infinities count as missing.
    if value is None or not math.isfinite(value):
        return None
    return value


def _magnitude(value: float | None) -> float:
    magnitude = _finite(value)
    return magnitude if magnitude is not None else 0.0


def _coordinate(coordinates: list[float | None], index: int) -> float | None:
    if index >= len(coordinates):
        return None
    return _finite(coordinates[index])


def normalize_usgs(raw: Any, source_tag: str = "USGS") -> Event | None:
    try:
        feature = UsgsFeature.model_validate(raw)
    except ValidationError:
        return None

    props = feature.properties
    if props.time is None or not is_valid_epoch_millis(props.time):
        return None
    coordinates = feature.geometry.coordinates
    return Event(
        id=feature.id,
        time=int(props.time),
        magnitude=_magnitude(props.mag),
        depth_km=_coordinate(coordinates, 2),
        lon=_coordinate(coordinates, 0),
        lat=_coordinate(coordinates, 1),
        place=props.place,
        source=source_tag,
    )


def normalize_emsc(raw: Any, default_agency: str = "EMSC") -> Event | None:
    try:
        feature = EmscFeature.model_validate(raw)
    except ValidationError:
        return None

    props = feature.properties
    time_millis = parse_timestamp_millis(props.time)
    if time_millis is None:
        return None
    lon, lat = _finite(props.lon), _finite(props.lat)
    if lon is None or lat is None:
        return None
    return Event(
        id=feature.id or props.unid,
        time=time_millis,
        magnitude=_magnitude(props.mag),
        depth_km=_finite(props.depth),
        lon=lon,
        lat=lat,
        place=props.flynn_region,
        source=props.auth or default_agency,
    )


def normalize_features(
    provider: ProviderName,
    features: list[Any],
    *,
    usgs_source_tag: str = "USGS",
    emsc_default_agency: str = "EMSC",
) -> list[Event]:
    """Normalize one provider's features in response order, dropping malformed records."""
    events: list[Event] = []
    for raw in features:
        if provider == "usgs":
            event = normalize_usgs(raw, source_tag=usgs_source_tag)
        else:
            event = normalize_emsc(raw, default_agency=emsc_default_agency)
        if event is not None:
            events.append(event)
    return events
