from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from narration_plan.models import NarrationScript, SceneSegment, TopicBoundary
from narration_plan.text.lexicon import TRANSITION_SCANNER, CueMatch, CueScanner

logger = logging.getLogger(__name__)

MARKER_TOLERANCE_RATIO = 0.15
MIN_SEGMENT_SECONDS = 8.0
MIN_CUT_SCORE = 0.3
QUANTIZE_STEP_SECONDS = 1.0
SEGMENT_TARGET_SECONDS = 15.0
MAX_IMAGE_SEGMENTS = 3

# Nominal share of the narration each section occupies: (name, start, end).
SECTION_LAYOUT = (
    ("hook", 0.0, 0.15),
    ("body", 0.15, 0.55),
    ("opinion", 0.55, 0.85),
    ("cta", 0.85, 1.0),
)


@dataclass(slots=True, frozen=True)
class _ScoredCut:
    seconds: float
    score: float
    phrase: str


def find_topic_boundaries(
    script: NarrationScript,
    total_duration: float,
    *,
    tolerance_ratio: float = MARKER_TOLERANCE_RATIO,
    min_segment_seconds: float = MIN_SEGMENT_SECONDS,
    min_cut_score: float = MIN_CUT_SCORE,
    quantize_step: float = QUANTIZE_STEP_SECONDS,
    scanner: CueScanner = TRANSITION_SCANNER,
) -> TopicBoundary | None:
    """Pick two scene cuts near 1/3 and 2/3 of the video from transition cues.

    Cue positions are mapped to time by linear interpolation over the
    concatenated script text. Returns None when either target has no cue
    within tolerance or the resulting segments would be too short; callers
    then fall back to ``uniform_thirds``.
    """

    if total_duration <= 0:
        return None

    full_text = script.full_text()
    if not full_text.strip():
        return None

    matches = scanner.scan(full_text)
    if not matches:
        logger.info("No transition cues found in script")
        return None

    logger.debug(
        "Transition cues: %s",
        ", ".join(f"{match.matched_text!r}@{match.offset}" for match in matches),
    )

    tolerance = total_duration * tolerance_ratio
    if tolerance <= 0:
        return None
    targets = (total_duration / 3, 2 * total_duration / 3)
    best = [
        _best_cut_for_target(
            matches,
            target=target,
            text_length=len(full_text),
            total_duration=total_duration,
            tolerance=tolerance,
            min_cut_score=min_cut_score,
        )
        for target in targets
    ]

    first, second = best
    if first is None or second is None:
        logger.info(
            "Insufficient topic cuts: target1=%s target2=%s",
            "OK" if first else "MISS",
            "OK" if second else "MISS",
        )
        return None

    upper = total_duration - min_segment_seconds
    cut1 = _quantize(first.seconds, quantize_step, min_segment_seconds, upper)
    cut2 = _quantize(second.seconds, quantize_step, min_segment_seconds, upper)

    segment_lengths = (cut1, cut2 - cut1, total_duration - cut2)
    if any(length < min_segment_seconds for length in segment_lengths):
        logger.info(
            "Rejected topic cuts %.0fs/%.0fs: segment lengths %s below %.0fs",
            cut1,
            cut2,
            [round(length, 3) for length in segment_lengths],
            min_segment_seconds,
        )
        return None

    logger.info(
        "Topic-aware cuts: %.0fs (%r, score %.2f), %.0fs (%r, score %.2f)",
        cut1,
        first.phrase,
        first.score,
        cut2,
        second.phrase,
        second.score,
    )
    return TopicBoundary(cut1=cut1, cut2=cut2, score1=first.score, score2=second.score)


def uniform_thirds(total_duration: float) -> tuple[float, float]:
    third = total_duration / 3
    return (float(_round_half_up(third)), float(_round_half_up(2 * third)))


def plan_image_segments(
    script: NarrationScript,
    total_duration: float,
    *,
    segment_target_seconds: float = SEGMENT_TARGET_SECONDS,
    max_segments: int = MAX_IMAGE_SEGMENTS,
    boundary: TopicBoundary | None = None,
    detect: bool = True,
) -> list[SceneSegment]:
    """Split the video into 2-3 background-image segments.

    Three segments use topic-aware cuts when available (``boundary`` or a
    fresh detection), otherwise uniform thirds. Shorter videos get two
    uniform halves.
    """

    if total_duration <= 0:
        return []

    segment_count = min(max_segments, max(2, math.ceil(total_duration / segment_target_seconds)))

    source = "uniform"
    if segment_count == 3:
        if boundary is None and detect:
            boundary = find_topic_boundaries(script, total_duration)
        if boundary is not None:
            starts = [0.0, boundary.cut1, boundary.cut2]
            source = "topic"
        else:
            starts = [0.0, *uniform_thirds(total_duration)]
    else:
        step = total_duration / segment_count
        starts = [float(_round_half_up(idx * step)) for idx in range(segment_count)]

    sections = _section_spans(script, total_duration)
    segments: list[SceneSegment] = []
    for idx, start in enumerate(starts):
        end = starts[idx + 1] if idx + 1 < len(starts) else float(_round_half_up(total_duration))
        segments.append(
            SceneSegment(
                index=idx,
                start_seconds=start,
                end_seconds=end,
                source=source,
                text=_text_for_range(sections, start, end),
            )
        )

    logger.info(
        "Planned %d image segments (%s): %s",
        len(segments),
        source,
        ", ".join(f"{segment.start_seconds:.0f}-{segment.end_seconds:.0f}s" for segment in segments),
    )
    return segments


def _best_cut_for_target(
    matches: list[CueMatch],
    *,
    target: float,
    text_length: int,
    total_duration: float,
    tolerance: float,
    min_cut_score: float,
) -> _ScoredCut | None:
    best: _ScoredCut | None = None
    for match in matches:
        seconds = (match.offset / text_length) * total_duration
        distance = abs(seconds - target)
        if distance > tolerance:
            continue

        score = match.cue.weight * (1 - distance / tolerance)
        if score < min_cut_score:
            continue
        if best is None or score > best.score:
            best = _ScoredCut(seconds=seconds, score=score, phrase=match.matched_text)
    return best


def _quantize(seconds: float, step: float, minimum: float, maximum: float) -> float:
    # bounds snap inward to the step grid so a clamped cut is still a whole step
    low = math.ceil(minimum / step) * step
    high = math.floor(maximum / step) * step
    quantized = _round_half_up(seconds / step) * step
    return float(max(low, min(high, quantized)))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _section_spans(script: NarrationScript, total_duration: float) -> list[tuple[float, float, str]]:
    spans: list[tuple[float, float, str]] = []
    for name, start_ratio, end_ratio in SECTION_LAYOUT:
        start = float(_round_half_up(total_duration * start_ratio))
        end = total_duration if end_ratio >= 1.0 else float(_round_half_up(total_duration * end_ratio))
        spans.append((start, end, getattr(script, name)))
    return spans


def _text_for_range(sections: list[tuple[float, float, str]], start: float, end: float) -> str:
    texts = [text for section_start, section_end, text in sections if start < section_end and end > section_start]
    return " ".join(text for text in texts if text.strip())
