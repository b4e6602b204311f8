from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path

import typer

from quake_stats.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from quake_stats.features.classify import classify_magnitude
from quake_stats.logging import configure_logging
from quake_stats.pipeline.run_all import compute_single_window, run_all

LOGGER = logging.getLogger(__name__)

app = typer.Typer(add_completion=False)


class WindowChoice(str, Enum):
    daily = "daily"
    weekly = "weekly"


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
    return load_config(config_path)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Earthquake statistics cache builder. Without a command, runs the full pipeline."""
    if ctx.invoked_subcommand is None:
        run(config=None, out=None, log_level="INFO")


@app.command()
def run(
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path | None = typer.Option(
        None,
        resolve_path=True,
        help="Output JSON path. Falls back to output.path in config, then stats_cache.json.",
    ),
    log_level: str = typer.Option("INFO", help="Logging level."),
) -> None:
    """Fetch both providers, aggregate the 24h and 7d windows and write the stats cache."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    try:
        document = run_all(cfg, out_path=out)
    except Exception:
        LOGGER.exception("Fatal error while computing statistics; output left untouched")
        raise typer.Exit(code=1)
    typer.echo(
        f"Run complete. daily={document.daily.total} weekly={document.weekly.total} "
        f"lastUpdated={document.last_updated}"
    )


@app.command()
def window(
    kind: WindowChoice = typer.Argument(..., help="Which trailing window to compute."),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    log_level: str = typer.Option("WARNING", help="Logging level."),
) -> None:
    """Compute one window and print its statistics as JSON without writing the cache."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    try:
        stats = asyncio.run(compute_single_window(kind.value, cfg))
    except Exception:
        LOGGER.exception("Fatal error while computing the %s window", kind.value)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(stats.to_dict(), indent=cfg.output.indent, ensure_ascii=False))


@app.command()
def classify(
    magnitude: float = typer.Argument(..., help="Event magnitude."),
) -> None:
    """Print the display color assigned to a magnitude."""
    typer.echo(classify_magnitude(magnitude))


if __name__ == "__main__":
    app()
