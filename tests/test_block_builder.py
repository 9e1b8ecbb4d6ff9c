from __future__ import annotations

import pytest

from narration_plan.editorial.block_builder import (
    build_blocks_from_phrases,
    build_blocks_from_transcript,
    classify_weight,
    enforce_min_duration,
    has_proper_noun_mid_sentence,
)
from narration_plan.models import EditorialBlock, TranscriptSegment
from narration_plan.text.phrase_splitter import split_into_phrases

EXAMPLE_TEXT = "Opus 4.6 llegó. Pero nadie lo notó. ¿Será que ya nos acostumbramos?"


def _segment(text: str, start: float, end: float) -> TranscriptSegment:
    return TranscriptSegment(text=text, start_seconds=start, end_seconds=end)


def _block(text: str, start: float = 0.0, end: float = 2.0) -> EditorialBlock:
    return EditorialBlock(lines=(text,), weight="support", source_indices=(0,), start_seconds=start, end_seconds=end)


def _flatten_sources(blocks: list[EditorialBlock]) -> list[int]:
    return [index for block in blocks for index in block.source_indices]


def test_example_transcript_pairs_opening_and_ends_with_punch() -> None:
    segments = [
        _segment("Opus 4.6 llegó.", 0.0, 1.2),
        _segment("Pero nadie lo notó.", 1.4, 2.6),
        _segment("¿Será que ya nos acostumbramos?", 3.5, 5.5),
    ]

    blocks = build_blocks_from_transcript(segments)

    assert len(blocks) == 2
    assert blocks[0].lines == ("Opus 4.6 llegó.", "Pero nadie lo notó.")
    assert blocks[0].weight == "headline"
    assert (blocks[0].start_seconds, blocks[0].end_seconds) == (0.0, 2.6)
    assert blocks[1].lines == ("¿Será que ya nos acostumbramos?",)
    assert blocks[1].weight == "punch"
    assert _flatten_sources(blocks) == [0, 1, 2]


def test_phrase_fallback_spreads_blocks_uniformly() -> None:
    phrases = split_into_phrases(EXAMPLE_TEXT)

    blocks = build_blocks_from_phrases(phrases, 9.0)

    assert [(block.start_seconds, block.end_seconds) for block in blocks] == [(0.0, 3.0), (3.0, 6.0), (6.0, 9.0)]
    assert blocks[0].weight == "headline"
    assert blocks[-1].weight == "punch"
    assert all(len(block.lines) == 1 for block in blocks)
    assert _flatten_sources(blocks) == [0, 1, 2]


def test_empty_inputs_build_no_blocks() -> None:
    assert build_blocks_from_transcript([]) == []
    assert build_blocks_from_phrases([], 10.0) == []


def test_grouping_never_joins_more_than_two_segments() -> None:
    segments = [
        _segment("Uno dos.", 0.0, 1.0),
        _segment("Tres cuatro.", 1.1, 2.0),
        _segment("Cinco seis.", 2.1, 3.0),
    ]

    blocks = build_blocks_from_transcript(segments)

    assert [block.source_indices for block in blocks] == [(0, 1), (2,)]
    assert all(len(block.lines) <= 2 for block in blocks)


def test_long_pause_keeps_segments_apart() -> None:
    segments = [
        _segment("Primera parte aquí.", 0.0, 1.0),
        _segment("Segunda parte aquí.", 2.0, 3.0),
    ]

    blocks = build_blocks_from_transcript(segments)

    assert [block.source_indices for block in blocks] == [(0,), (1,)]


def test_grouping_word_limit_is_inclusive() -> None:
    seven_words = [
        _segment("uno dos tres cuatro cinco seis siete", 0.0, 2.0),
        _segment("ocho nueve.", 2.1, 3.0),
    ]
    eight_words = [
        _segment("uno dos tres cuatro cinco seis siete ocho", 0.0, 2.0),
        _segment("nueve diez.", 2.1, 3.0),
    ]

    assert [block.source_indices for block in build_blocks_from_transcript(seven_words)] == [(0, 1)]
    assert [block.source_indices for block in build_blocks_from_transcript(eight_words)] == [(0,), (1,)]


@pytest.mark.parametrize(
    ("text", "block_index", "expected"),
    [
        ("El precio sube otra vez hoy", 5, "support"),
        ("Llega GPT con otra sorpresa", 5, "headline"),
        ("Cuesta 20 dólares al mes", 5, "headline"),
        ("Fue rápido. Ahora todo cambia aquí", 5, "support"),
        ("¿Quién lo vio venir entonces?", 5, "punch"),
        ("Nadie lo notó.", 5, "punch"),
        ("El precio sube otra vez hoy", 9, "punch"),
        ("El precio sube otra vez hoy", 1, "headline"),
    ],
)
def test_classify_weight(text: str, block_index: int, expected: str) -> None:
    assert classify_weight(_block(text), block_index=block_index, total_blocks=10) == expected


def test_short_phrase_rule_can_be_disabled() -> None:
    block = _block("Nadie lo notó.")

    assert classify_weight(block, block_index=5, total_blocks=10, max_words_for_punch=None) == "support"


def test_proper_noun_detection_skips_sentence_openers() -> None:
    assert has_proper_noun_mid_sentence("esto lo hizo OpenAI ayer")
    assert not has_proper_noun_mid_sentence("Esto pasó. Luego nada")
    assert not has_proper_noun_mid_sentence("Solo minúsculas aquí")


def test_short_block_is_folded_into_single_line_predecessor() -> None:
    segments = [
        _segment("Este modelo cambia la forma de programar", 0.0, 3.0),
        _segment("de verdad", 3.8, 4.2),
        _segment("Y eso importa mucho ahora.", 5.0, 8.0),
    ]

    blocks = build_blocks_from_transcript(segments)

    assert len(blocks) == 2
    assert blocks[0].lines == ("Este modelo cambia la forma de programar", "de verdad")
    assert blocks[0].source_indices == (0, 1)
    assert blocks[0].end_seconds == pytest.approx(4.2)
    assert _flatten_sources(blocks) == [0, 1, 2]


def test_short_block_stays_when_predecessor_already_has_two_lines() -> None:
    segments = [
        _segment("Uno dos tres.", 0.0, 1.0),
        _segment("Cuatro cinco.", 1.2, 2.5),
        _segment("seis", 3.5, 3.9),
    ]

    blocks = build_blocks_from_transcript(segments)

    assert [block.source_indices for block in blocks] == [(0, 1), (2,)]
    assert blocks[-1].lines == ("seis",)


def test_enforce_min_duration_keeps_first_block() -> None:
    blocks = [_block("corto", 0.0, 0.2), _block("Una frase normal y larga", 0.2, 3.0)]

    assert enforce_min_duration(blocks) == blocks


def test_invalid_segment_timing_is_rejected() -> None:
    with pytest.raises(ValueError, match="ends before it starts"):
        build_blocks_from_transcript([_segment("Hola.", 2.0, 1.0)])


def test_overlapping_segments_are_rejected() -> None:
    segments = [_segment("Hola.", 0.0, 2.0), _segment("Mundo.", 1.5, 3.0)]

    with pytest.raises(ValueError, match="must be ordered and non-overlapping"):
        build_blocks_from_transcript(segments)


def test_rounding_noise_between_segments_is_tolerated() -> None:
    segments = [_segment("Hola a todos.", 0.0, 1.0), _segment("Empezamos ya.", 0.9999995, 2.0)]

    blocks = build_blocks_from_transcript(segments)

    assert _flatten_sources(blocks) == [0, 1]


def test_block_rejects_more_than_two_lines() -> None:
    with pytest.raises(ValueError, match="1 or 2 lines"):
        EditorialBlock(lines=("a", "b", "c"), weight="support", source_indices=(0,), start_seconds=0.0, end_seconds=1.0)
