from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest

from quake_stats.config import AppConfig
from quake_stats.features.classify import ORANGE
from quake_stats.pipeline.run_all import build_document, run_all

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)


def _empty_handler(_request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"type": "FeatureCollection", "features": []})


def _window_aware_handler(requests_seen: list[httpx.Request]):
    """USGS serves one recent and one 3-day-old event; EMSC repeats the recent one."""
    recent = {
        "type": "Feature",
        "id": "us-recent",
        "properties": {"mag": 5.4, "time": NOW_MS - 3_600_000, "place": "Honshu"},
        "geometry": {"type": "Point", "coordinates": [139.7, 35.6, 10.0]},
    }
    older = {
        "type": "Feature",
        "id": "us-older",
        "properties": {"mag": 2.2, "time": NOW_MS - 3 * 86_400_000, "place": "Alaska"},
        "geometry": {"type": "Point", "coordinates": [-150.0, 61.0, 35.0]},
    }
    emsc_recent = {
        "type": "Feature",
        "id": "us-recent",
        "properties": {
            "lat": 35.61,
            "lon": 139.71,
            "depth": 12.0,
            "mag": 5.3,
            "time": (NOW - timedelta(hours=1)).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "flynn_region": "NEAR EAST COAST OF HONSHU, JAPAN",
            "auth": "JMA",
        },
    }

    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        start_param = request.url.params.get("starttime", "")
        daily = start_param.startswith("2026-10-16")
        if request.url.host == "earthquake.usgs.gov":
            features = [recent] if daily else [older, recent]
        else:
            features = [emsc_recent]
        return httpx.Response(200, json={"type": "FeatureCollection", "features": features})

    return handler


def test_run_all_with_empty_providers_writes_zeroed_document(tmp_path: Path) -> None:
    out_path = tmp_path / "stats_cache.json"

    document = run_all(
        AppConfig(),
        out_path=out_path,
        now=NOW,
        transport=httpx.MockTransport(_empty_handler),
    )

    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert list(payload) == ["lastUpdated", "daily", "weekly"]
    assert payload["lastUpdated"] == "2026-10-17T12:00:00.000Z"
    assert payload["daily"]["totalSismos"] == 0
    assert payload["weekly"]["totalSismos"] == 0
    assert payload["daily"]["scatterPlotPoints"] == []
    assert payload["daily"]["mapReplayPoints"] == []
    assert payload["weekly"]["weeklyScatterPoints"] == []
    assert payload["weekly"]["mapReplayPoints"] == []
    assert len(payload["weekly"]["weeklyBarData"]) == 7
    assert all(day["count"] == 0 and day["maxMag"] == 0 for day in payload["weekly"]["weeklyBarData"])
    assert document.daily.total == 0


def test_run_all_merges_windows_and_writes_pretty_json(tmp_path: Path) -> None:
    out_path = tmp_path / "nested" / "stats_cache.json"
    requests_seen: list[httpx.Request] = []

    document = run_all(
        AppConfig(),
        out_path=out_path,
        now=NOW,
        transport=httpx.MockTransport(_window_aware_handler(requests_seen)),
    )

    assert len(requests_seen) == 4
    assert document.daily.total == 1
    assert document.weekly.total == 2
    assert document.daily.events[0].source == "USGS"
    assert [event.id for event in document.weekly.events] == ["us-older", "us-recent"]

    text = out_path.read_text(encoding="utf-8")
    assert text.startswith('{\n  "lastUpdated"')
    payload = json.loads(text)
    daily = payload["daily"]
    assert daily["magCounts"] == {"M5": 1}
    assert daily["scatterPlotPoints"][0]["left"] == pytest.approx((1 - 1 / 24) * 100)
    assert daily["mapReplayPoints"] == [
        {"lon": 139.7, "lat": 35.6, "mag": 5.4, "color": ORANGE}
    ]
    weekly = payload["weekly"]
    assert weekly["magCounts"] == {"M2": 1, "M5": 1}
    assert weekly["magFilterStats"]["range1"] == 1
    assert weekly["magFilterStats"]["range_M5"] == 1
    assert weekly["gridMaxDepth"] == 50
    assert [point["dateKey"] for point in weekly["weeklyScatterPoints"]] == [
        "2026-10-14",
        "2026-10-17",
    ]


def test_run_all_survives_unreachable_providers(tmp_path: Path) -> None:
    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    out_path = tmp_path / "stats_cache.json"
    document = run_all(
        AppConfig(),
        out_path=out_path,
        now=NOW,
        transport=httpx.MockTransport(refused),
    )

    assert out_path.exists()
    assert document.daily.total == 0
    assert document.weekly.total == 0


def test_run_all_fatal_fault_leaves_previous_output_untouched(
    monkeypatch, tmp_path: Path
) -> None:
    out_path = tmp_path / "stats_cache.json"
    out_path.write_text('{"previous": true}', encoding="utf-8")

    def _boom(*_args, **_kwargs):
        raise RuntimeError("aggregation bug")

    monkeypatch.setattr("quake_stats.pipeline.run_all.aggregate_window", _boom)

    with pytest.raises(RuntimeError, match="aggregation bug"):
        run_all(
            AppConfig(),
            out_path=out_path,
            now=NOW,
            transport=httpx.MockTransport(_empty_handler),
        )

    assert json.loads(out_path.read_text(encoding="utf-8")) == {"previous": True}
    assert sorted(path.name for path in tmp_path.iterdir()) == ["stats_cache.json"]


def test_failed_window_cancels_sibling_before_client_closes(monkeypatch) -> None:
    seen: dict[str, bool] = {}

    async def _fake_fetch_window(client, start, end, _providers):
        if end - start == timedelta(hours=24):
            raise RuntimeError("daily fetch bug")
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            seen["client_closed_at_cancel"] = client.is_closed
            raise
        return []

    monkeypatch.setattr("quake_stats.pipeline.run_all.fetch_window", _fake_fetch_window)

    with pytest.raises(RuntimeError, match="daily fetch bug"):
        asyncio.run(
            build_document(AppConfig(), now=NOW, transport=httpx.MockTransport(_empty_handler))
        )

    assert seen == {"client_closed_at_cancel": False}
