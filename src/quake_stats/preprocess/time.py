from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

import pandas as pd

MILLIS_PER_MINUTE = 60_000
MILLIS_PER_DAY = 24 * 60 * 60 * 1000

# Sunday-first, matching the front end's weekday indexing.
WEEKDAY_LABELS: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class FormattedDateTime:
    date: str
    time: str


def from_epoch_millis(epoch_millis: int, tz: str = "UTC") -> datetime:
    return datetime.fromtimestamp(epoch_millis / 1000, tz=timezone.utc).astimezone(ZoneInfo(tz))


def is_valid_epoch_millis(epoch_millis: int) -> bool:
    """True when the instant fits in a calendar date `datetime` can represent."""
    try:
        from_epoch_millis(epoch_millis)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def to_epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(round(moment.timestamp() * 1000))


def parse_timestamp_millis(raw_value: Any) -> int | None:
    """Parse a provider timestamp string into epoch millis; naive values are UTC."""
    if not isinstance(raw_value, str) or not raw_value.strip():
        return None
    parsed = pd.to_datetime(raw_value.strip(), errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return int(parsed.value // 1_000_000)


def format_event_datetime(epoch_millis: int, tz: str = "UTC") -> FormattedDateTime:
    moment = from_epoch_millis(epoch_millis, tz)
    return FormattedDateTime(
        date=f"{moment.day}/{moment.month}/{moment.year}",
        time=f"{moment:%H:%M:%S} {moment.tzname()}",
    )


def utc_date_key(epoch_millis: int) -> str:
    return from_epoch_millis(epoch_millis).strftime("%Y-%m-%d")


def weekday_label(moment: datetime, labels: tuple[str, ...] = WEEKDAY_LABELS) -> str:
    # datetime.weekday() is Monday=0; the label table is Sunday-first.
    return labels[(moment.weekday() + 1) % 7]


def isoformat_utc(moment: datetime) -> str:
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
