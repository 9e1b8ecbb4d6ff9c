from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
ENV_PREFIX = "NARRATION_PLAN_"


class SplitterSettings(BaseModel):
    max_chars_per_phrase: int = 48
    min_words_per_phrase: int = 3


class TopicSettings(BaseModel):
    marker_tolerance_ratio: float = 0.15
    min_segment_seconds: float = 8.0
    min_cut_score: float = 0.3
    quantize_step_seconds: float = 1.0
    segment_target_seconds: float = 15.0
    max_image_segments: int = 3


class BlockSettings(BaseModel):
    max_group_gap_seconds: float = 0.6
    max_words_for_grouping: int = 7
    max_combined_chars: int = 90
    max_words_for_punch: int = 4
    min_block_frames: int = 18


class TimingSettings(BaseModel):
    fps: float = 30.0
    fade_in_seconds: float = 0.5
    fade_out_seconds: float = 0.5
    caption_lead_ms: float = 200.0
    caption_lag_ms: float = 150.0
    pause_before_punch_frames: int = 6
    scene_offset_seconds: float = 0.0


class EmphasisSettings(BaseModel):
    min_blocks: int = 4
    max_hard: int = 1
    max_total: int = 3


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class Settings(BaseModel):
    splitter: SplitterSettings = Field(default_factory=SplitterSettings)
    topics: TopicSettings = Field(default_factory=TopicSettings)
    blocks: BlockSettings = Field(default_factory=BlockSettings)
    timing: TimingSettings = Field(default_factory=TimingSettings)
    emphasis: EmphasisSettings = Field(default_factory=EmphasisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load typed settings from YAML with environment-variable overrides.

    A missing default config file is not an error: built-in defaults apply.
    An explicitly requested file that does not exist raises FileNotFoundError.
    """

    explicit = config_path or os.getenv(f"{ENV_PREFIX}CONFIG")
    resolved_path = Path(explicit or DEFAULT_CONFIG_PATH)
    if resolved_path.exists():
        raw_config = yaml.safe_load(resolved_path.read_text(encoding="utf-8")) or {}
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {resolved_path}")
    else:
        raw_config = {}
    data = Settings.model_validate(raw_config).model_dump(mode="python")

    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        suffix = key[len(ENV_PREFIX) :]
        if suffix == "CONFIG":
            continue

        path = [part.lower() for part in suffix.split("__")]
        _apply_override(data, path, raw_value)

    return Settings.model_validate(data)


def _apply_override(data: dict[str, Any], path: list[str], raw_value: str) -> None:
    current: Any = data
    for segment in path[:-1]:
        if not isinstance(current, dict) or segment not in current:
            return
        current = current[segment]

    if not isinstance(current, dict):
        return

    final_key = path[-1]
    if final_key not in current:
        return

    current[final_key] = _coerce_value(raw_value, current[final_key])


def _coerce_value(raw_value: str, existing_value: Any) -> Any:
    if isinstance(existing_value, int):
        return int(raw_value)
    if isinstance(existing_value, float):
        return float(raw_value)
    return raw_value
