from __future__ import annotations

import logging
from pathlib import Path

import pytest

from narration_plan.config import LoggingSettings, load_settings
from narration_plan.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("NARRATION_PLAN_CONFIG", "NARRATION_PLAN_TIMING__FPS", "NARRATION_PLAN_SPLITTER__MAX_CHARS_PER_PHRASE"):
        monkeypatch.delenv(key, raising=False)


def test_load_settings_reads_yaml_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "custom.yaml"
    config_path.write_text(
        "splitter:\n  max_chars_per_phrase: 60\ntiming:\n  fps: 25\n  caption_lead_ms: 100\n",
        encoding="utf-8",
    )

    settings = load_settings(config_path)

    assert settings.splitter.max_chars_per_phrase == 60
    assert settings.splitter.min_words_per_phrase == 3
    assert settings.timing.fps == 25.0
    assert settings.timing.caption_lead_ms == 100.0
    assert settings.blocks.min_block_frames == 18


def test_environment_overrides_nested_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NARRATION_PLAN_TIMING__FPS", "60")
    monkeypatch.setenv("NARRATION_PLAN_SPLITTER__MAX_CHARS_PER_PHRASE", "32")

    settings = load_settings()

    assert settings.timing.fps == 60.0
    assert settings.splitter.max_chars_per_phrase == 32


def test_missing_default_config_uses_builtin_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = load_settings()

    assert settings.topics.marker_tolerance_ratio == 0.15
    assert settings.emphasis.max_total == 3


def test_missing_explicit_config_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        load_settings(tmp_path / "nope.yaml")


def test_config_path_can_come_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "env.yaml"
    config_path.write_text("emphasis:\n  max_total: 2\n", encoding="utf-8")
    monkeypatch.setenv("NARRATION_PLAN_CONFIG", str(config_path))

    assert load_settings().emphasis.max_total == 2


def test_verbose_logging_lowers_engine_loggers_only(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    engine_logger = logging.getLogger("narration_plan")

    try:
        configure_logging(LoggingSettings(level="warning"), verbose=True)

        assert calls[0]["level"] == logging.WARNING
        assert calls[0]["force"] is True
        assert engine_logger.level == logging.DEBUG
    finally:
        engine_logger.setLevel(logging.NOTSET)


@pytest.mark.parametrize(
    ("env_key", "raw_value", "section", "field", "expected"),
    [
        ("NARRATION_PLAN_BLOCKS__MIN_BLOCK_FRAMES", "12", "blocks", "min_block_frames", 12),
        ("NARRATION_PLAN_TIMING__CAPTION_LAG_MS", "90.5", "timing", "caption_lag_ms", 90.5),
        ("NARRATION_PLAN_LOGGING__LEVEL", "DEBUG", "logging", "level", "DEBUG"),
    ],
)
def test_environment_values_are_coerced_to_field_types(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    env_key: str,
    raw_value: str,
    section: str,
    field: str,
    expected: object,
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(env_key, raw_value)

    value = getattr(getattr(load_settings(), section), field)

    assert value == expected
    assert type(value) is type(expected)


def test_unknown_environment_keys_are_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NARRATION_PLAN_TIMING__NOT_A_FIELD", "1")
    monkeypatch.setenv("NARRATION_PLAN_NOPE__FPS", "1")

    assert load_settings().timing.fps == 30.0
