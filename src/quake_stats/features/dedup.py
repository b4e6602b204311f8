from __future__ import annotations

from collections.abc import Iterable

from quake_stats.features.classify import format_magnitude
from quake_stats.models import Event
from quake_stats.preprocess.time import MILLIS_PER_MINUTE


def _round_half_up(value: float) -> int:
    # Halves round toward +infinity, unlike round().
    return int((value + 0.5) // 1)


def fingerprint(event: Event) -> str:
    """Dedup key: the native id when present, else minute bucket plus magnitude."""
    if event.id:
        return event.id
    minute_bucket = _round_half_up(event.time / MILLIS_PER_MINUTE)
    return f"{minute_bucket}-{format_magnitude(event.magnitude)}"


def dedupe_events(events: Iterable[Event]) -> list[Event]:
    """Keep the first event seen per fingerprint, preserving arrival order."""
    unique: dict[str, Event] = {}
    for event in events:
        unique.setdefault(fingerprint(event), event)
    return list(unique.values())
