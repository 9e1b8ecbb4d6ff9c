from __future__ import annotations

import logging
from typing import Sequence

from narration_plan.models import EditorialBlock, EmphasisAssignment, EmphasisMap

logger = logging.getLogger(__name__)

MIN_BLOCKS_FOR_EMPHASIS = 4
MAX_HARD_TOTAL = 1
MAX_EMPHASIS_TOTAL = 3
MIDDLE_THIRD = (0.33, 0.66)


def detect_emphasis(
    blocks: Sequence[EditorialBlock],
    *,
    min_blocks: int = MIN_BLOCKS_FOR_EMPHASIS,
    max_hard: int = MAX_HARD_TOTAL,
    max_total: int = MAX_EMPHASIS_TOTAL,
) -> EmphasisMap:
    """Label at most one hard and a couple of soft emphasis moments.

    Deterministic rules:
    1) fewer than ``min_blocks`` blocks: everything stays none
    2) hard goes to the inner punch block closest to the middle third
    3) soft candidates: the setup block right before the hard one, then
       the first headline of the first half past the opening pair
    4) hard + soft never exceeds ``max_total``
    """

    assignments = [EmphasisAssignment(block_index=idx) for idx in range(len(blocks))]
    if len(blocks) < min_blocks:
        return EmphasisMap(assignments=assignments)

    hard_count = 0
    soft_count = 0

    selected_hard = select_hard_block(blocks) if max_hard > 0 else None
    if selected_hard is not None and max_total > 0:
        assignments[selected_hard].level = "hard"
        assignments[selected_hard].reason = "punch in middle third"
        hard_count += 1

    for index, reason in _soft_candidates(blocks, selected_hard):
        if hard_count + soft_count >= max_total:
            break
        if assignments[index].level != "none":
            continue
        assignments[index].level = "soft"
        assignments[index].reason = reason
        soft_count += 1

    logger.debug(
        "Emphasis over %d blocks: hard=%s soft=%s",
        len(blocks),
        [item.block_index for item in assignments if item.level == "hard"],
        [item.block_index for item in assignments if item.level == "soft"],
    )
    return EmphasisMap(assignments=assignments, hard_count=hard_count, soft_count=soft_count)


def select_hard_block(blocks: Sequence[EditorialBlock]) -> int | None:
    """Return the inner punch block nearest the centre of the middle third."""

    candidates = [
        idx
        for idx, block in enumerate(blocks)
        if block.weight == "punch" and 0 < idx < len(blocks) - 1
    ]
    if not candidates:
        return None

    total = len(blocks)
    mid_center = (MIDDLE_THIRD[0] * total + MIDDLE_THIRD[1] * total) / 2
    # min() keeps the first candidate on ties
    return min(candidates, key=lambda idx: abs(idx - mid_center))


def _soft_candidates(
    blocks: Sequence[EditorialBlock],
    selected_hard: int | None,
) -> list[tuple[int, str]]:
    candidates: list[tuple[int, str]] = []

    setup_index: int | None = None
    if selected_hard is not None and selected_hard > 0:
        setup_index = selected_hard - 1
        if blocks[setup_index].weight in ("headline", "support"):
            candidates.append((setup_index, "setup before hard"))

    half_point = len(blocks) // 2
    for idx in range(2, half_point):
        if blocks[idx].weight == "headline" and idx != setup_index:
            candidates.append((idx, "headline in first half"))
            break

    return candidates
