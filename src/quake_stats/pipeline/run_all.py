from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx

from quake_stats.config import AppConfig, resolve_output_path
from quake_stats.features.aggregates import aggregate_window
from quake_stats.io.fetch import USER_AGENT, fetch_window
from quake_stats.io.write import write_document
from quake_stats.models import OutputDocument, WindowKind, WindowStats
from quake_stats.preprocess.time import isoformat_utc, to_epoch_millis

LOGGER = logging.getLogger(__name__)


def window_millis(kind: WindowKind, config: AppConfig) -> int:
    if kind == "weekly":
        return config.windows.weekly_millis
    return config.windows.daily_millis


def _build_client(config: AppConfig, transport: httpx.AsyncBaseTransport | None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=config.providers.timeout_seconds,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        transport=transport,
    )


async def compute_window(
    client: httpx.AsyncClient,
    kind: WindowKind,
    now: datetime,
    config: AppConfig,
) -> WindowStats:
    span = window_millis(kind, config)
    start = now - timedelta(milliseconds=span)
    events = await fetch_window(client, start, now, config.providers)
    stats = aggregate_window(
        events,
        now_millis=to_epoch_millis(now),
        window_millis=span,
        kind=kind,
        tz=config.time.timezone,
    )
    LOGGER.info("Window %s: %d events", kind, stats.total)
    return stats


async def build_document(
    config: AppConfig,
    *,
    now: datetime | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> OutputDocument:
    """Compute the daily and weekly windows concurrently; any fault propagates."""
    now = now or datetime.now(timezone.utc)
    async with _build_client(config, transport) as client:
        tasks = [
            asyncio.create_task(compute_window(client, "daily", now, config)),
            asyncio.create_task(compute_window(client, "weekly", now, config)),
        ]
        try:
            daily, weekly = await asyncio.gather(*tasks)
        except BaseException:
            # Stop the sibling window before the shared client closes.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
    return OutputDocument(last_updated=isoformat_utc(now), daily=daily, weekly=weekly)


async def compute_single_window(
    kind: WindowKind,
    config: AppConfig,
    *,
    now: datetime | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WindowStats:
    now = now or datetime.now(timezone.utc)
    async with _build_client(config, transport) as client:
        return await compute_window(client, kind, now, config)


def run_all(
    config: AppConfig,
    *,
    out_path: Path | None = None,
    now: datetime | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> OutputDocument:
    document = asyncio.run(build_document(config, now=now, transport=transport))
    target = out_path or resolve_output_path(config)
    write_document(document.to_dict(), target, indent=config.output.indent)
    LOGGER.info("Wrote %s", target)
    LOGGER.info(
        "Summary: %d events (%dh), %d events (%dd).",
        document.daily.total,
        config.windows.daily_hours,
        document.weekly.total,
        config.windows.weekly_days,
    )
    return document
