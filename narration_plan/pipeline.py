from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from narration_plan.config import Settings
from narration_plan.editorial.block_builder import build_blocks_from_phrases, build_blocks_from_transcript
from narration_plan.editorial.emphasis import detect_emphasis
from narration_plan.models import (
    EditorialBlock,
    EmphasisMap,
    NarrationScript,
    Phrase,
    SceneSegment,
    TopicBoundary,
    TranscriptSegment,
)
from narration_plan.scenes.topic_boundaries import find_topic_boundaries, plan_image_segments
from narration_plan.text.phrase_splitter import split_into_phrases
from narration_plan.timing.synchronizer import TimingSynchronizer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RenderPlan:
    """Everything the renderer needs for one narration, built in one pass."""

    total_duration: float
    timed: bool
    phrases: list[Phrase]
    blocks: list[EditorialBlock]
    topic_boundary: TopicBoundary | None
    image_segments: list[SceneSegment]
    emphasis: EmphasisMap
    settings: Settings = field(default_factory=Settings, repr=False)

    def synchronizer(self, scene_duration: float | None = None) -> TimingSynchronizer:
        """Build the per-frame lookup for this plan's blocks.

        Timestamped plans track speech; untimed plans spread the blocks
        evenly over the scene.
        """

        timing = self.settings.timing
        duration = self.total_duration if scene_duration is None else scene_duration
        if not self.timed:
            return TimingSynchronizer.uniform(
                len(self.blocks),
                duration,
                fps=timing.fps,
                fade_in_seconds=timing.fade_in_seconds,
                fade_out_seconds=timing.fade_out_seconds,
            )
        return TimingSynchronizer.from_items(
            self.blocks,
            duration,
            fps=timing.fps,
            fade_in_seconds=timing.fade_in_seconds,
            fade_out_seconds=timing.fade_out_seconds,
            caption_lead_ms=timing.caption_lead_ms,
            caption_lag_ms=timing.caption_lag_ms,
            pause_before_punch_frames=timing.pause_before_punch_frames,
            scene_offset_seconds=timing.scene_offset_seconds,
        )

    def emphasis_level(self, block_index: int) -> str:
        return self.emphasis.level_for(block_index)


def build_render_plan(
    script: NarrationScript,
    total_duration: float,
    transcript: Sequence[TranscriptSegment] | None = None,
    settings: Settings | None = None,
) -> RenderPlan:
    """Run split -> boundaries -> blocks -> emphasis for one narration.

    Without a transcript the narration is split into phrases and laid out
    over uniform time slices; with one, blocks inherit speech timing.
    """

    settings = settings or Settings()
    splitter = settings.splitter
    topics = settings.topics
    block_settings = settings.blocks

    phrases = split_into_phrases(
        script.full_text(),
        max_chars_per_phrase=splitter.max_chars_per_phrase,
        min_words_per_phrase=splitter.min_words_per_phrase,
    )

    boundary = find_topic_boundaries(
        script,
        total_duration,
        tolerance_ratio=topics.marker_tolerance_ratio,
        min_segment_seconds=topics.min_segment_seconds,
        min_cut_score=topics.min_cut_score,
        quantize_step=topics.quantize_step_seconds,
    )
    image_segments = plan_image_segments(
        script,
        total_duration,
        segment_target_seconds=topics.segment_target_seconds,
        max_segments=topics.max_image_segments,
        boundary=boundary,
        detect=False,
    )

    timed = bool(transcript)
    if timed:
        blocks = build_blocks_from_transcript(
            transcript,
            fps=settings.timing.fps,
            max_group_gap_seconds=block_settings.max_group_gap_seconds,
            max_words_for_grouping=block_settings.max_words_for_grouping,
            max_combined_chars=block_settings.max_combined_chars,
            max_words_for_punch=block_settings.max_words_for_punch,
            min_block_frames=block_settings.min_block_frames,
        )
    else:
        blocks = build_blocks_from_phrases(phrases, total_duration)

    emphasis = detect_emphasis(
        blocks,
        min_blocks=settings.emphasis.min_blocks,
        max_hard=settings.emphasis.max_hard,
        max_total=settings.emphasis.max_total,
    )

    logger.info(
        "Render plan: %.1fs, %d phrases, %d blocks (%s), cuts=%s, emphasis hard=%d soft=%d",
        total_duration,
        len(phrases),
        len(blocks),
        "timestamps" if timed else "uniform",
        boundary.as_tuple() if boundary else "uniform",
        emphasis.hard_count,
        emphasis.soft_count,
    )

    return RenderPlan(
        total_duration=total_duration,
        timed=timed,
        phrases=phrases,
        blocks=blocks,
        topic_boundary=boundary,
        image_segments=image_segments,
        emphasis=emphasis,
        settings=settings,
    )
