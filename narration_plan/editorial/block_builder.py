from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Sequence

from narration_plan.models import BlockWeight, EditorialBlock, Phrase, TranscriptSegment
from narration_plan.text.phrase_splitter import count_words

logger = logging.getLogger(__name__)

MAX_GROUP_GAP_SECONDS = 0.6
MAX_WORDS_FOR_GROUPING = 7
MAX_COMBINED_CHARS = 90
MAX_WORDS_FOR_PUNCH = 4
MIN_BLOCK_DURATION_FRAMES = 18
DEFAULT_FPS = 30.0

# float noise from rounded transcript timestamps
_ORDER_TOLERANCE_SECONDS = 1e-6
_DIGIT = re.compile(r"\d")
_SENTENCE_END = (".", "?", "!")


def build_blocks_from_transcript(
    segments: Sequence[TranscriptSegment],
    fps: float = DEFAULT_FPS,
    *,
    max_group_gap_seconds: float = MAX_GROUP_GAP_SECONDS,
    max_words_for_grouping: int = MAX_WORDS_FOR_GROUPING,
    max_combined_chars: int = MAX_COMBINED_CHARS,
    max_words_for_punch: int = MAX_WORDS_FOR_PUNCH,
    min_block_frames: int = MIN_BLOCK_DURATION_FRAMES,
) -> list[EditorialBlock]:
    """Group timed transcript segments into 1-2 line editorial blocks.

    Pipeline:
    1) pair adjacent short, close segments (never more than two)
    2) classify each block as punch, headline or support
    3) fold blocks shorter than ``min_block_frames`` into a 1-line predecessor

    Segments must already be ordered and non-overlapping; ValueError otherwise.
    """

    if not segments:
        return []

    validate_segments(segments)

    grouped = _group_segments(
        segments,
        max_gap_seconds=max_group_gap_seconds,
        max_words=max_words_for_grouping,
        max_chars=max_combined_chars,
    )
    weighted = [
        replace(
            block,
            weight=classify_weight(
                block,
                block_index=idx,
                total_blocks=len(grouped),
                max_words_for_punch=max_words_for_punch,
            ),
        )
        for idx, block in enumerate(grouped)
    ]
    blocks = enforce_min_duration(weighted, fps=fps, min_block_frames=min_block_frames)

    logger.debug(
        "Built %d blocks from %d transcript segments (%d after min-duration merge)",
        len(weighted),
        len(segments),
        len(blocks),
    )
    return blocks


def build_blocks_from_phrases(phrases: Sequence[Phrase], total_duration: float) -> list[EditorialBlock]:
    """Fallback without timestamps: one block per phrase over uniform time slices.

    Short phrases are not promoted to punch here; they were already merged up
    to the minimum word count by the splitter, so the word-count cue carries
    no speech-rhythm signal.
    """

    if not phrases:
        return []

    slice_seconds = max(total_duration, 0.0) / len(phrases)
    blocks = [
        EditorialBlock(
            lines=(phrase.text,),
            weight="support",
            source_indices=(phrase.index,),
            start_seconds=round(idx * slice_seconds, 3),
            end_seconds=round((idx + 1) * slice_seconds, 3),
        )
        for idx, phrase in enumerate(phrases)
    ]
    return [
        replace(
            block,
            weight=classify_weight(
                block,
                block_index=idx,
                total_blocks=len(blocks),
                max_words_for_punch=None,
            ),
        )
        for idx, block in enumerate(blocks)
    ]


def validate_segments(segments: Sequence[TranscriptSegment]) -> None:
    previous_end: float | None = None
    for idx, segment in enumerate(segments):
        if segment.end_seconds < segment.start_seconds:
            raise ValueError(
                f"Transcript segment {idx} ends before it starts "
                f"({segment.start_seconds:.3f}s > {segment.end_seconds:.3f}s)."
            )
        if previous_end is not None and segment.start_seconds < previous_end - _ORDER_TOLERANCE_SECONDS:
            raise ValueError(
                f"Transcript segment {idx} starts at {segment.start_seconds:.3f}s, "
                f"before the previous segment ends ({previous_end:.3f}s); "
                "segments must be ordered and non-overlapping."
            )
        previous_end = segment.end_seconds


def classify_weight(
    block: EditorialBlock,
    *,
    block_index: int,
    total_blocks: int,
    max_words_for_punch: int | None = MAX_WORDS_FOR_PUNCH,
) -> BlockWeight:
    if _is_punch(block, block_index, total_blocks, max_words_for_punch):
        return "punch"
    if _is_headline(block.lines[0], block_index):
        return "headline"
    return "support"


def has_proper_noun_mid_sentence(text: str) -> bool:
    """True when a capitalized word appears after the first word, not opening a sentence."""

    words = text.split()
    for previous, word in zip(words, words[1:]):
        if previous.endswith(_SENTENCE_END):
            continue
        if len(word) > 1 and word[0].isupper():
            return True
    return False


def enforce_min_duration(
    blocks: Sequence[EditorialBlock],
    *,
    fps: float = DEFAULT_FPS,
    min_block_frames: int = MIN_BLOCK_DURATION_FRAMES,
) -> list[EditorialBlock]:
    if len(blocks) <= 1:
        return list(blocks)

    result: list[EditorialBlock] = [blocks[0]]
    for block in blocks[1:]:
        duration_frames = round(block.duration_seconds * fps)
        previous = result[-1]
        if duration_frames < min_block_frames and len(previous.lines) + len(block.lines) <= 2:
            # pop + rebuild the previous block rather than mutating it
            result[-1] = replace(
                previous,
                lines=(*previous.lines, *block.lines),
                source_indices=(*previous.source_indices, *block.source_indices),
                end_seconds=block.end_seconds,
            )
            logger.debug(
                "Folded %d-frame block %s into previous block",
                duration_frames,
                list(block.source_indices),
            )
            continue
        result.append(block)

    return result


def _group_segments(
    segments: Sequence[TranscriptSegment],
    *,
    max_gap_seconds: float,
    max_words: int,
    max_chars: int,
) -> list[EditorialBlock]:
    blocks: list[EditorialBlock] = []
    idx = 0
    while idx < len(segments):
        current = segments[idx]
        following = segments[idx + 1] if idx + 1 < len(segments) else None

        if following is not None and _can_group(current, following, max_gap_seconds, max_words, max_chars):
            blocks.append(
                EditorialBlock(
                    lines=(current.text.strip(), following.text.strip()),
                    weight="support",
                    source_indices=(idx, idx + 1),
                    start_seconds=current.start_seconds,
                    end_seconds=following.end_seconds,
                )
            )
            idx += 2
            continue

        blocks.append(
            EditorialBlock(
                lines=(current.text.strip(),),
                weight="support",
                source_indices=(idx,),
                start_seconds=current.start_seconds,
                end_seconds=current.end_seconds,
            )
        )
        idx += 1

    return blocks


def _can_group(
    current: TranscriptSegment,
    following: TranscriptSegment,
    max_gap_seconds: float,
    max_words: int,
    max_chars: int,
) -> bool:
    if following.start_seconds - current.end_seconds > max_gap_seconds:
        return False
    if count_words(current.text) > max_words or count_words(following.text) > max_words:
        return False
    return len(current.text.strip()) + len(following.text.strip()) <= max_chars


def _is_punch(
    block: EditorialBlock,
    block_index: int,
    total_blocks: int,
    max_words_for_punch: int | None,
) -> bool:
    if (
        max_words_for_punch is not None
        and len(block.lines) == 1
        and count_words(block.lines[0]) <= max_words_for_punch
    ):
        return True
    if block_index == total_blocks - 1:
        return True
    return block.text.rstrip().endswith(("?", "!"))


def _is_headline(first_line: str, block_index: int) -> bool:
    if block_index <= 1:
        return True
    if _DIGIT.search(first_line):
        return True
    return has_proper_noun_mid_sentence(first_line)
