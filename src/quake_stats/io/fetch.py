from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from quake_stats.config import ProvidersConfig
from quake_stats.features.dedup import dedupe_events
from quake_stats.io.providers import ProviderName, normalize_features
from quake_stats.models import Event
from quake_stats.preprocess.time import isoformat_utc

LOGGER = logging.getLogger(__name__)

USER_AGENT = "quake-stats-cache/1.0"


@dataclass(frozen=True)
class ProviderResult:
    provider: ProviderName
    features: list[Any] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_usgs_params(start: datetime, end: datetime, config: ProvidersConfig) -> dict[str, str]:
    return {
        "format": "geojson",
        "starttime": isoformat_utc(start),
        "endtime": isoformat_utc(end),
        "minmagnitude": str(config.min_magnitude),
    }


def build_emsc_params(start: datetime, end: datetime, config: ProvidersConfig) -> dict[str, str]:
    # seismicportal rejects fractional seconds in its time parameters.
    second_format = "%Y-%m-%dT%H:%M:%SZ"
    return {
        "starttime": start.astimezone(timezone.utc).strftime(second_format),
        "endtime": end.astimezone(timezone.utc).strftime(second_format),
        "minmag": str(config.min_magnitude),
        "format": "json",
        "limit": str(config.emsc.limit),
    }


def _unavailable(provider: ProviderName, reason: str) -> ProviderResult:
    LOGGER.warning("Provider %s unavailable: %s", provider, reason)
    return ProviderResult(provider=provider, error=reason)


async def fetch_features(
    client: httpx.AsyncClient,
    provider: ProviderName,
    url: str,
    params: dict[str, str],
) -> ProviderResult:
    """Fetch one provider's feature list; any transport or payload failure yields no features."""
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        return _unavailable(provider, f"{type(exc).__name__}: {exc}")

    # seismicportal answers an empty query with 204 and no body.
    if response.status_code == 204 or not response.content:
        return ProviderResult(provider=provider)

    try:
        payload = response.json()
    except ValueError as exc:
        return _unavailable(provider, f"invalid JSON body: {exc}")

    features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(features, list):
        return _unavailable(provider, "response has no feature list")
    return ProviderResult(provider=provider, features=features)


async def fetch_window(
    client: httpx.AsyncClient,
    start: datetime,
    end: datetime,
    config: ProvidersConfig,
) -> list[Event]:
    """Fetch both providers concurrently and return the merged, deduplicated events."""
    usgs_result, emsc_result = await asyncio.gather(
        fetch_features(client, "usgs", config.usgs.url, build_usgs_params(start, end, config)),
        fetch_features(client, "emsc", config.emsc.url, build_emsc_params(start, end, config)),
    )
    return merge_provider_results(usgs_result, emsc_result, config)


def merge_provider_results(
    usgs_result: ProviderResult,
    emsc_result: ProviderResult,
    config: ProvidersConfig,
) -> list[Event]:
    usgs_events = normalize_features(
        "usgs", usgs_result.features, usgs_source_tag=config.usgs.source_tag
    )
    emsc_events = normalize_features(
        "emsc", emsc_result.features, emsc_default_agency=config.emsc.default_agency
    )
    for result, events in ((usgs_result, usgs_events), (emsc_result, emsc_events)):
        LOGGER.info(
            "Provider %s: received=%d kept=%d",
            result.provider,
            len(result.features),
            len(events),
        )

    # USGS first so it wins fingerprint collisions.
    merged = dedupe_events([*usgs_events, *emsc_events])
    LOGGER.info(
        "Merged %d events into %d unique",
        len(usgs_events) + len(emsc_events),
        len(merged),
    )
    return merged
