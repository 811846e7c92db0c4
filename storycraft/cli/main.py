# storycraft/cli/main.py
"""
CLI entrypoint for storycraft.

Thin adapter, no business logic.
Responsibilities:
- Parse arguments
- Build the pipeline / service from settings
- Print results as JSON and a short human-readable status

All logging is structured JSON from the core.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from storycraft.acquisition.pipeline import AcquisitionPipeline
from storycraft.acquisition.schema import AcquisitionResult, KindHint
from storycraft.config import get_settings
from storycraft.generation.repair import RepairFailure, RepairInputRejected, repair_to_structured_record
from storycraft.generation.service import PitchSource, StructuredOutputService
from storycraft.logging_core.logger import configure_logging


app = typer.Typer(
    name="storycraft",
    help="storycraft: resilient YouTube content acquisition and pitch generation",
    no_args_is_help=True,
)


def _emit(payload: Any, out: Optional[Path]) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2, default=str)
    if out is None:
        typer.echo(text)
        return
    out = out.expanduser()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Written to: {out.resolve()}")


def _status_line(result: AcquisitionResult) -> None:
    colors = {"ok": typer.colors.GREEN, "degraded": typer.colors.YELLOW, "soft_error": typer.colors.RED}
    symbol = {"ok": "✓", "degraded": "⚠", "soft_error": "✗"}[result.status]
    line = f"{symbol} {result.strategy_used.value} (confidence {result.confidence:.2f})"
    typer.echo(typer.style(line, fg=colors[result.status], bold=True), err=True)
    if result.warning:
        typer.echo(f"  {result.warning}", err=True)


@app.command()
def acquire(
    url: str = typer.Argument(..., help="YouTube URL (watch, youtu.be, shorts, embed, live)"),
    kind: KindHint = typer.Option(KindHint.AUTO, "--kind", "-k", help="Content kind hint"),
    report: bool = typer.Option(False, "--report", help="Print the monitor report after acquiring"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the result JSON to this file"),
) -> None:
    """
    Acquire descriptive content for a video. Always produces a result.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        pipeline = AcquisitionPipeline.from_settings(settings)
        result = pipeline.acquire(url, kind)
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user.", err=True)
        sys.exit(1)

    _emit(result.model_dump(mode="json"), out)
    _status_line(result)
    if report:
        typer.echo("")
        typer.echo(pipeline.monitor.generate_report())
    if result.status == "soft_error":
        raise typer.Exit(code=2)


@app.command()
def pitch(
    url: str = typer.Argument(..., help="YouTube URL"),
    style: Optional[str] = typer.Option(None, "--style", "-s", help="Target style, e.g. documentary"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="en, zh-TW, zh-CN or ja"),
    kind: KindHint = typer.Option(KindHint.AUTO, "--kind", "-k", help="Content kind hint"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the pitch JSON to this file"),
) -> None:
    """
    Acquire a video and turn it into a structured pitch.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        pipeline = AcquisitionPipeline.from_settings(settings)
        result = pipeline.acquire(url, kind)
        service = StructuredOutputService.from_settings(settings, breakers=pipeline.breakers)
        outcome = service.generate(result, style=style, language=language)
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user.", err=True)
        sys.exit(1)

    _emit(
        {
            "acquisition": {
                "strategy": result.strategy_used.value,
                "confidence": result.confidence,
                "warning": result.warning,
            },
            "source": outcome.source.value,
            "strategy": outcome.strategy,
            "warning": outcome.warning,
            "record": outcome.record.to_wire(),
        },
        out,
    )
    _status_line(result)
    if outcome.source is PitchSource.FALLBACK:
        typer.echo(typer.style(f"⚠ {outcome.warning}", fg=typer.colors.YELLOW), err=True)


@app.command()
def repair(
    path: str = typer.Argument(..., help="File containing raw model output, or - for stdin"),
) -> None:
    """
    Repair raw model output into a structured record.
    """
    configure_logging(get_settings().log_level)
    raw = sys.stdin.read() if path == "-" else Path(path).expanduser().read_text(encoding="utf-8")

    try:
        outcome = repair_to_structured_record(raw)
    except RepairInputRejected as exc:
        typer.echo(typer.style(f"✗ Input rejected: {exc}", fg=typer.colors.RED, bold=True), err=True)
        raise typer.Exit(code=2)

    if isinstance(outcome, RepairFailure):
        _emit(outcome.model_dump(), None)
        typer.echo(typer.style("✗ Could not repair model output", fg=typer.colors.RED, bold=True), err=True)
        raise typer.Exit(code=1)

    _emit(outcome.to_wire(), None)
    typer.echo(typer.style("✓ Record is valid", fg=typer.colors.GREEN, bold=True), err=True)


if __name__ == "__main__":
    app()


# High-Level Intent
# cli/main.py is the thin adapter over the acquisition pipeline and the
# structured output service. It parses arguments, builds collaborators from
# settings, prints JSON, and maps result status to an exit code.

# Edge Cases
# Unrecognized URL -> invalid_reference result printed, exit code 2.
# No API keys -> yt-dlp metadata and a local pitch; still a result.
# Oversize repair input -> rejected before parsing, exit code 2.
