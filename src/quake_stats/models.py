from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

WindowKind = Literal["daily", "weekly"]


@dataclass(frozen=True)
class Event:
    """Canonical earthquake detection after provider normalization."""

    time: int
    magnitude: float
    source: str
    id: str | None = None
    depth_km: float | None = None
    lon: float | None = None
    lat: float | None = None
    place: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.lon is not None and self.lat is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "time": self.time,
            "magnitude": self.magnitude,
            "depthKm": self.depth_km,
            "lon": self.lon,
            "lat": self.lat,
            "place": self.place,
            "source": self.source,
        }


@dataclass(frozen=True)
class DepthScalePoint:
    depth: int
    position: int

    def to_dict(self) -> dict[str, Any]:
        return {"depth": self.depth, "position": self.position}


@dataclass(frozen=True)
class ScatterPoint:
    left: float
    depth: float
    size: float
    color: str
    info: str
    mag: float | None = None
    date_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "left": self.left,
            "depth": self.depth,
            "size": self.size,
            "color": self.color,
            "info": self.info,
        }
        if self.mag is not None:
            payload["mag"] = self.mag
        if self.date_key is not None:
            payload["dateKey"] = self.date_key
        return payload


@dataclass(frozen=True)
class MapReplayPoint:
    lon: float
    lat: float
    mag: float
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"lon": self.lon, "lat": self.lat, "mag": self.mag, "color": self.color}


@dataclass(frozen=True)
class DailyBucket:
    date_key: str
    day_label: str
    count: int = 0
    max_mag: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "maxMag": self.max_mag,
            "dayLabel": self.day_label,
            "dateKey": self.date_key,
        }


@dataclass(frozen=True)
class WindowStats:
    kind: WindowKind
    total: int
    mag_counts: dict[str, int]
    max_depth: float
    grid_max_depth: int
    depth_scale_points: tuple[DepthScalePoint, ...]
    scatter_points: tuple[ScatterPoint, ...]
    map_replay_points: tuple[MapReplayPoint, ...]
    events: tuple[Event, ...]
    mag_filter_stats: dict[str, int] | None = None
    daily_buckets: tuple[DailyBucket, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "totalSismos": self.total,
            "magCounts": dict(self.mag_counts),
        }
        if self.kind == "weekly":
            payload["magFilterStats"] = dict(self.mag_filter_stats or {})
            payload["weeklyBarData"] = [bucket.to_dict() for bucket in self.daily_buckets or ()]
        payload["maxDepth"] = self.max_depth
        payload["gridMaxDepth"] = self.grid_max_depth
        payload["depthScalePoints"] = [point.to_dict() for point in self.depth_scale_points]
        scatter_key = "weeklyScatterPoints" if self.kind == "weekly" else "scatterPlotPoints"
        payload[scatter_key] = [point.to_dict() for point in self.scatter_points]
        payload["mapReplayPoints"] = [point.to_dict() for point in self.map_replay_points]
        payload["sismos"] = [event.to_dict() for event in self.events]
        return payload


@dataclass(frozen=True)
class OutputDocument:
    last_updated: str
    daily: WindowStats
    weekly: WindowStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "daily": self.daily.to_dict(),
            "weekly": self.weekly.to_dict(),
        }
