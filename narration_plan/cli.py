from __future__ import annotations

import json
import logging
from pathlib import Path
from time import perf_counter
from typing import Callable, TypeVar

import typer

from narration_plan.config import Settings, load_settings
from narration_plan.exporter import export_plan, load_render_plan, load_script, load_transcript
from narration_plan.logging_config import configure_logging
from narration_plan.pipeline import build_render_plan
from narration_plan.text.phrase_splitter import split_into_phrases

app = typer.Typer(help="Narration text segmentation and caption timing planner.")
config_app = typer.Typer(help="Configuration commands.")

app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIG_OPTION_HELP = "Path to YAML configuration file."


def _run_with_progress(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    typer.echo(f"[{step_index}/{total_steps}] {label}...", err=True)
    started_at = perf_counter()
    try:
        result = work()
    except Exception:
        elapsed = perf_counter() - started_at
        typer.echo(f"[{step_index}/{total_steps}] {label} failed after {elapsed:.3f}s", err=True)
        raise
    elapsed = perf_counter() - started_at
    typer.echo(f"[{step_index}/{total_steps}] {label} done in {elapsed:.3f}s", err=True)
    return result


def _bootstrap(config_path: Path | None, verbose: bool = False) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging, verbose=verbose)
    logger.debug("Loaded runtime settings from %s", config_path or "defaults")
    return settings


@config_app.command("show")
def show_config(
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="NARRATION_PLAN_CONFIG",
        help=CONFIG_OPTION_HELP,
    )
) -> None:
    """Print resolved runtime configuration."""

    settings = _bootstrap(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@app.command("split")
def split_text(
    text: str,
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="NARRATION_PLAN_CONFIG",
        help=CONFIG_OPTION_HELP,
    ),
    max_chars: int | None = typer.Option(None, help="Override the maximum characters per phrase."),
) -> None:
    """Split narration text into display phrases and print them as JSON."""

    settings = _bootstrap(config_path)
    phrases = split_into_phrases(
        text,
        max_chars_per_phrase=max_chars or settings.splitter.max_chars_per_phrase,
        min_words_per_phrase=settings.splitter.min_words_per_phrase,
    )
    typer.echo(
        json.dumps(
            [{"index": phrase.index, "text": phrase.text, "word_count": phrase.word_count} for phrase in phrases],
            indent=2,
            ensure_ascii=False,
        )
    )


@app.command("plan")
def plan_command(
    script_path: Path,
    duration: float = typer.Option(..., "--duration", "-d", help="Total narration duration in seconds."),
    transcript_path: Path | None = typer.Option(None, "--transcript", "-t", help="Optional transcript JSON."),
    output_dir: Path = typer.Option(Path("data/outputs"), help="Directory for plan outputs."),
    basename: str | None = typer.Option(None, help="Output basename. Defaults to the script filename stem."),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="NARRATION_PLAN_CONFIG",
        help=CONFIG_OPTION_HELP,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine decisions at DEBUG level."),
) -> None:
    """Build the full render plan (boundaries, blocks, emphasis) for a script."""

    settings = _bootstrap(config_path, verbose=verbose)
    resolved_basename = basename or f"{script_path.stem}_plan"
    total_steps = 3

    try:
        script = _run_with_progress(1, total_steps, "Load inputs", lambda: load_script(script_path))
        transcript = load_transcript(transcript_path) if transcript_path else None
        plan = _run_with_progress(
            2,
            total_steps,
            "Build render plan",
            lambda: build_render_plan(script, duration, transcript=transcript, settings=settings),
        )
        exported = _run_with_progress(
            3,
            total_steps,
            "Export outputs",
            lambda: export_plan(plan, output_dir, basename=resolved_basename),
        )
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        logger.error("Planning failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(
        json.dumps(
            {
                "status": "ok",
                "timed": plan.timed,
                "phrase_count": len(plan.phrases),
                "block_count": len(plan.blocks),
                "topic_boundary": list(plan.topic_boundary.as_tuple()) if plan.topic_boundary else None,
                "image_segments": [
                    [segment.start_seconds, segment.end_seconds] for segment in plan.image_segments
                ],
                "outputs": {k: str(v) for k, v in exported.items()},
            },
            indent=2,
        )
    )


@app.command("probe")
def probe_plan(
    plan_path: Path,
    at: float = typer.Option(..., "--at", help="Scene-local instant in seconds."),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="NARRATION_PLAN_CONFIG",
        help=CONFIG_OPTION_HELP,
    ),
) -> None:
    """Show which block is on screen at an instant of an exported plan."""

    settings = _bootstrap(config_path)
    try:
        plan = load_render_plan(plan_path, settings=settings)
    except (FileNotFoundError, ValueError, KeyError) as exc:
        logger.error("Could not load plan %s: %s", plan_path, exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    timing = plan.synchronizer().at_seconds(at)
    block = plan.blocks[timing.index] if plan.blocks else None
    typer.echo(
        json.dumps(
            {
                "at_seconds": at,
                "index": timing.index,
                "opacity": round(timing.opacity, 4),
                "is_transitioning": timing.is_transitioning,
                "start_seconds": round(timing.start_seconds, 3),
                "end_seconds": round(timing.end_seconds, 3),
                "lines": list(block.lines) if block else [],
                "weight": block.weight if block else None,
                "emphasis": plan.emphasis_level(timing.index),
            },
            indent=2,
            ensure_ascii=False,
        )
    )


if __name__ == "__main__":
    app()
