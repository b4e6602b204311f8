from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np
import pandas as pd

from quake_stats.features.classify import classify_magnitude, format_magnitude
from quake_stats.models import (
    DailyBucket,
    DepthScalePoint,
    Event,
    MapReplayPoint,
    ScatterPoint,
    WindowKind,
    WindowStats,
)
from quake_stats.preprocess.time import (
    MILLIS_PER_DAY,
    WEEKDAY_LABELS,
    format_event_datetime,
    from_epoch_millis,
    utc_date_key,
    weekday_label,
)

# Non-linear depth (km) -> vertical position (%) calibration for the scatter grid.
DEPTH_SCALE: tuple[DepthScalePoint, ...] = (
    DepthScalePoint(depth=0, position=0),
    DepthScalePoint(depth=10, position=10),
    DepthScalePoint(depth=20, position=20),
    DepthScalePoint(depth=50, position=35),
    DepthScalePoint(depth=100, position=50),
    DepthScalePoint(depth=400, position=70),
    DepthScalePoint(depth=500, position=78),
    DepthScalePoint(depth=600, position=86),
    DepthScalePoint(depth=1000, position=100),
)
DEFAULT_GRID_MAX_DEPTH = 1000

# Half-open [lower, upper) bands; magnitudes below 0.1 fall outside every band.
MAGNITUDE_RANGE_KEYS: tuple[str, ...] = (
    "range1",
    "range_M3",
    "range_M4",
    "range_M5",
    "range_M6",
    "range_M7",
    "range_M8",
    "range_M9plus",
)
MAGNITUDE_RANGE_EDGES: tuple[float, ...] = (0.1, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0, np.inf)

DAILY_BUCKET_COUNT = 7

# (base, per-magnitude) marker size coefficients.
SCATTER_SIZE: dict[WindowKind, tuple[float, float]] = {
    "daily": (4.0, 1.5),
    "weekly": (3.0, 1.2),
}

EVENT_COLUMNS = ["time", "magnitude", "depth_km", "date_key"]


def sort_events(events: Iterable[Event]) -> list[Event]:
    # sorted() is stable, so equal times keep provider arrival order.
    return sorted(events, key=lambda event: event.time)


def events_frame(events: Sequence[Event]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            (event.time, float(event.magnitude), event.depth_km, utc_date_key(event.time))
            for event in events
        ],
        columns=EVENT_COLUMNS,
    )
    frame["magnitude"] = frame["magnitude"].astype(float)
    frame["depth_km"] = pd.to_numeric(frame["depth_km"], errors="coerce").astype(float)
    return frame


def build_magnitude_histogram(frame: pd.DataFrame) -> dict[str, int]:
    if frame.empty:
        return {}
    buckets = np.floor(frame["magnitude"]).astype(int)
    counts = buckets.value_counts().sort_index()
    return {f"M{int(bucket)}": int(count) for bucket, count in counts.items()}


def build_magnitude_ranges(frame: pd.DataFrame) -> dict[str, int]:
    bands = pd.cut(
        frame["magnitude"],
        bins=list(MAGNITUDE_RANGE_EDGES),
        labels=list(MAGNITUDE_RANGE_KEYS),
        right=False,
    )
    counts = bands.value_counts(sort=False).reindex(list(MAGNITUDE_RANGE_KEYS), fill_value=0)
    return {key: int(counts[key]) for key in MAGNITUDE_RANGE_KEYS}


def build_daily_buckets(
    frame: pd.DataFrame,
    now_millis: int,
    weekday_labels: tuple[str, ...] = WEEKDAY_LABELS,
    days: int = DAILY_BUCKET_COUNT,
) -> tuple[DailyBucket, ...]:
    """One bucket per UTC calendar day from `days - 1` days ago through today."""
    day_moments = [
        from_epoch_millis(now_millis - offset * MILLIS_PER_DAY) for offset in reversed(range(days))
    ]
    day_keys = [moment.strftime("%Y-%m-%d") for moment in day_moments]

    grouped = (
        frame.groupby("date_key")
        .agg(count=("magnitude", "size"), max_mag=("magnitude", "max"))
        .reindex(day_keys)
    )
    grouped["count"] = pd.to_numeric(grouped["count"], errors="coerce").fillna(0).astype(int)
    grouped["max_mag"] = (
        pd.to_numeric(grouped["max_mag"], errors="coerce").fillna(0.0).clip(lower=0.0)
    )

    return tuple(
        DailyBucket(
            date_key=key,
            day_label=weekday_label(moment, weekday_labels),
            count=int(grouped.at[key, "count"]),
            max_mag=float(grouped.at[key, "max_mag"]),
        )
        for key, moment in zip(day_keys, day_moments)
    )


def max_abs_depth(frame: pd.DataFrame) -> float:
    if frame.empty:
        return 0.0
    return float(frame["depth_km"].abs().fillna(0.0).max())


def build_depth_scale(max_depth: float) -> tuple[int, tuple[DepthScalePoint, ...]]:
    grid_max_depth = next(
        (point.depth for point in DEPTH_SCALE if point.depth >= max_depth),
        DEFAULT_GRID_MAX_DEPTH,
    )
    # A zero-depth grid has no extent to draw on.
    if grid_max_depth == 0:
        grid_max_depth = DEFAULT_GRID_MAX_DEPTH
    points = tuple(point for point in DEPTH_SCALE if point.depth <= grid_max_depth)
    return grid_max_depth, points


def build_scatter_points(
    events: Sequence[Event],
    now_millis: int,
    window_millis: int,
    kind: WindowKind,
    tz: str = "UTC",
) -> tuple[ScatterPoint, ...]:
    base_size, size_per_mag = SCATTER_SIZE[kind]
    points: list[ScatterPoint] = []
    for event in events:
        left = (1 - (now_millis - event.time) / window_millis) * 100
        depth = max(0.0, event.depth_km or 0.0)
        stamp = format_event_datetime(event.time, tz)
        label = f"M{format_magnitude(event.magnitude)} @ {depth:.1f}km"
        points.append(
            ScatterPoint(
                left=left,
                depth=depth,
                size=base_size + event.magnitude * size_per_mag,
                color=classify_magnitude(event.magnitude),
                info=f"{label}<br>{stamp.date}<br>{stamp.time}",
                mag=event.magnitude if kind == "weekly" else None,
                date_key=utc_date_key(event.time) if kind == "weekly" else None,
            )
        )
    return tuple(points)


def build_map_replay_points(events: Sequence[Event]) -> tuple[MapReplayPoint, ...]:
    return tuple(
        MapReplayPoint(
            lon=float(event.lon),
            lat=float(event.lat),
            mag=event.magnitude,
            color=classify_magnitude(event.magnitude),
        )
        for event in events
        if event.has_coordinates
    )


def aggregate_window(
    events: Iterable[Event],
    now_millis: int,
    window_millis: int,
    kind: WindowKind,
    *,
    tz: str = "UTC",
    weekday_labels: tuple[str, ...] = WEEKDAY_LABELS,
) -> WindowStats:
    """Compute the statistics bundle for one trailing window of deduplicated events."""
    ordered = sort_events(events)
    frame = events_frame(ordered)

    max_depth = max_abs_depth(frame)
    grid_max_depth, depth_scale_points = build_depth_scale(max_depth)

    weekly = kind == "weekly"
    return WindowStats(
        kind=kind,
        total=len(ordered),
        mag_counts=build_magnitude_histogram(frame),
        max_depth=max_depth,
        grid_max_depth=grid_max_depth,
        depth_scale_points=depth_scale_points,
        scatter_points=build_scatter_points(ordered, now_millis, window_millis, kind, tz),
        map_replay_points=build_map_replay_points(ordered),
        events=tuple(ordered),
        mag_filter_stats=build_magnitude_ranges(frame) if weekly else None,
        daily_buckets=build_daily_buckets(frame, now_millis, weekday_labels) if weekly else None,
    )
