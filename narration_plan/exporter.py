from __future__ import annotations

import csv
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from narration_plan.config import Settings
from narration_plan.models import (
    SCRIPT_SECTIONS,
    EditorialBlock,
    EmphasisAssignment,
    EmphasisMap,
    NarrationScript,
    Phrase,
    SceneSegment,
    TopicBoundary,
    TranscriptSegment,
)
from narration_plan.pipeline import RenderPlan


def plan_to_dict(plan: RenderPlan) -> dict[str, Any]:
    """Serialize a render plan to the JSON contract consumed by the renderer."""

    return {
        "total_duration": plan.total_duration,
        "timed": plan.timed,
        "topic_boundary": asdict(plan.topic_boundary) if plan.topic_boundary else None,
        "image_segments": [asdict(segment) for segment in plan.image_segments],
        "phrases": [
            {
                "index": phrase.index,
                "text": phrase.text,
                "char_count": phrase.char_count,
                "word_count": phrase.word_count,
            }
            for phrase in plan.phrases
        ],
        "blocks": [
            {
                "index": idx,
                "lines": list(block.lines),
                "weight": block.weight,
                "source_indices": list(block.source_indices),
                "start_seconds": block.start_seconds,
                "end_seconds": block.end_seconds,
                "emphasis": plan.emphasis.level_for(idx),
            }
            for idx, block in enumerate(plan.blocks)
        ],
        "emphasis": {
            "hard_count": plan.emphasis.hard_count,
            "soft_count": plan.emphasis.soft_count,
            "assignments": [asdict(item) for item in plan.emphasis.assignments],
        },
    }


def export_plan(plan: RenderPlan, output_dir: str | Path, *, basename: str = "render_plan") -> dict[str, Path]:
    """Write the plan JSON plus a block review table (CSV)."""

    resolved_output_dir = Path(output_dir)
    resolved_output_dir.mkdir(parents=True, exist_ok=True)

    json_path = resolved_output_dir / f"{basename}.json"
    csv_path = resolved_output_dir / f"{basename}_blocks.csv"

    json_path.write_text(json.dumps(plan_to_dict(plan), indent=2, ensure_ascii=False), encoding="utf-8")
    _write_blocks_csv(plan, csv_path)

    return {
        "json": json_path,
        "csv": csv_path,
    }


def load_script(path: str | Path) -> NarrationScript:
    """Load a narration script JSON object with hook/body/opinion/cta keys."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Narration script must be a JSON object.")

    # script generators sometimes emit analysis/reflection instead of body/opinion
    aliases = {"body": "analysis", "opinion": "reflection"}
    sections: dict[str, str] = {}
    for name in SCRIPT_SECTIONS:
        value = payload.get(name, payload.get(aliases.get(name, name), ""))
        if not isinstance(value, str):
            raise ValueError(f"Script section '{name}' must be a string.")
        sections[name] = value

    if not any(text.strip() for text in sections.values()):
        raise ValueError("Narration script has no text in any section.")
    return NarrationScript(**sections)


def load_transcript(path: str | Path) -> list[TranscriptSegment]:
    """Load transcript segments from a JSON array or an object with a ``segments`` array."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    rows = payload.get("segments") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ValueError("Transcript must be a JSON array or an object with a 'segments' array.")

    segments: list[TranscriptSegment] = []
    for idx, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"Transcript segment {idx} must be an object.")
        try:
            segments.append(
                TranscriptSegment(
                    text=str(row["text"]).strip(),
                    start_seconds=float(row.get("start_seconds", row.get("startSeconds"))),
                    end_seconds=float(row.get("end_seconds", row.get("endSeconds"))),
                )
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Transcript segment {idx} is missing text or timing.") from exc

    return segments


def load_render_plan(path: str | Path, settings: Settings | None = None) -> RenderPlan:
    """Rebuild a render plan from its exported JSON for inspection tooling."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict) or not isinstance(payload.get("blocks"), list):
        raise ValueError("Render plan must be a JSON object with a 'blocks' array.")

    boundary_row = payload.get("topic_boundary")
    emphasis_row = payload.get("emphasis") or {}
    return RenderPlan(
        total_duration=float(payload["total_duration"]),
        timed=bool(payload.get("timed", False)),
        phrases=[Phrase(text=str(row["text"]), index=int(row["index"])) for row in payload.get("phrases", [])],
        blocks=[
            EditorialBlock(
                lines=tuple(str(line) for line in row["lines"]),
                weight=row["weight"],
                source_indices=tuple(int(index) for index in row["source_indices"]),
                start_seconds=float(row["start_seconds"]),
                end_seconds=float(row["end_seconds"]),
            )
            for row in payload["blocks"]
        ],
        topic_boundary=TopicBoundary(**boundary_row) if boundary_row else None,
        image_segments=[SceneSegment(**row) for row in payload.get("image_segments", [])],
        emphasis=EmphasisMap(
            assignments=[EmphasisAssignment(**row) for row in emphasis_row.get("assignments", [])],
            hard_count=int(emphasis_row.get("hard_count", 0)),
            soft_count=int(emphasis_row.get("soft_count", 0)),
        ),
        settings=settings or Settings(),
    )


def _write_blocks_csv(plan: RenderPlan, path: Path) -> None:
    fields = [
        "index",
        "start_seconds",
        "end_seconds",
        "weight",
        "emphasis",
        "lines",
        "source_indices",
    ]

    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=fields)
        writer.writeheader()
        for idx, block in enumerate(plan.blocks):
            writer.writerow(
                {
                    "index": idx,
                    "start_seconds": f"{block.start_seconds:.3f}",
                    "end_seconds": f"{block.end_seconds:.3f}",
                    "weight": block.weight,
                    "emphasis": plan.emphasis.level_for(idx),
                    "lines": " / ".join(block.lines),
                    "source_indices": "|".join(str(index) for index in block.source_indices),
                }
            )
