from __future__ import annotations

import logging
import re

from narration_plan.models import Phrase
from narration_plan.text.lexicon import CONNECTOR_PATTERNS

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 48
DEFAULT_MIN_WORDS = 3
MIN_CONNECTOR_SPLIT_CHARS = 10

# A terminal run only ends a sentence when whitespace follows it, so "4.6" stays whole.
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
# Same rule for commas, so a decimal comma ("2,5") stays inside its number.
_CLAUSE_COMMA = re.compile(r",(?=\s|$)")


def split_into_phrases(
    text: str,
    max_chars_per_phrase: int = DEFAULT_MAX_CHARS,
    min_words_per_phrase: int = DEFAULT_MIN_WORDS,
) -> list[Phrase]:
    """Split narration text into short phrases for sequential display.

    Pipeline:
    1) sentence split on . ! ? (punctuation stays with its sentence)
    2) over-long sentences split on commas, then on connector words
    3) phrases under the minimum word count merged with a neighbor
    4) sequential indices assigned

    Never drops words; an unsplittable sentence is returned longer than
    ``max_chars_per_phrase`` rather than cut mid-clause.
    """

    if not text or not text.strip():
        return []

    normalized = " ".join(text.split())

    pieces: list[str] = []
    for sentence in split_sentences(normalized):
        if len(sentence) <= max_chars_per_phrase:
            pieces.append(sentence)
        else:
            pieces.extend(_split_long_sentence(sentence, max_chars_per_phrase))

    combined = _combine_short_phrases(pieces, min_words_per_phrase, max_chars_per_phrase)
    phrases = [Phrase(text=part.strip(), index=idx) for idx, part in enumerate(combined)]

    logger.debug(
        "Split %d chars into %d phrases (max_chars=%d, min_words=%d)",
        len(normalized),
        len(phrases),
        max_chars_per_phrase,
        min_words_per_phrase,
    )
    return phrases


def split_sentences(text: str) -> list[str]:
    return [piece.strip() for piece in _SENTENCE_BOUNDARY.split(text) if piece.strip()]


def count_words(text: str) -> int:
    return len(text.split())


def _split_long_sentence(sentence: str, max_chars: int) -> list[str]:
    comma_parts = _split_by_commas(sentence, max_chars)
    if all(len(part) <= max_chars for part in comma_parts):
        return comma_parts

    result: list[str] = []
    for part in comma_parts:
        if len(part) <= max_chars:
            result.append(part)
        else:
            result.extend(_split_by_connectors(part, max_chars))
    return result


def _split_by_commas(sentence: str, max_chars: int) -> list[str]:
    parts = [part.strip() for part in _CLAUSE_COMMA.split(sentence)]
    if len(parts) == 1:
        return [sentence]

    result: list[str] = []
    current = ""
    for part in parts:
        if not part:
            continue

        candidate = f"{current}, {part}" if current else part
        if len(candidate) <= max_chars:
            current = candidate
            continue

        if current:
            result.append(f"{current},")
        current = part

    if current:
        result.append(current)

    return result


def _split_by_connectors(sentence: str, max_chars: int) -> list[str]:
    result = [sentence]

    for connector, pattern in CONNECTOR_PATTERNS:
        next_result: list[str] = []
        for part in result:
            if len(part) <= max_chars:
                next_result.append(part)
                continue

            match = pattern.search(part)
            if match is None or match.start() == 0:
                next_result.append(part)
                continue

            before = part[: match.start()].strip()
            after = part[match.start() :].strip()
            if len(before) >= MIN_CONNECTOR_SPLIT_CHARS and len(after) >= MIN_CONNECTOR_SPLIT_CHARS:
                logger.debug("Cut long clause at connector %r", connector)
                next_result.extend([before, after])
            else:
                next_result.append(part)

        result = next_result

    return result


def _combine_short_phrases(phrases: list[str], min_words: int, max_chars: int) -> list[str]:
    result: list[str] = []
    pending = ""

    for raw in phrases:
        phrase = raw.strip()
        if not phrase:
            continue

        word_count = count_words(phrase)

        if not pending:
            if word_count < min_words:
                pending = phrase
            else:
                result.append(phrase)
            continue

        combined = f"{pending} {phrase}"
        if len(combined) <= max_chars:
            result.append(combined)
            pending = ""
            continue

        result.append(pending)
        if word_count < min_words:
            pending = phrase
        else:
            result.append(phrase)
            pending = ""

    if pending:
        if result and len(f"{result[-1]} {pending}") <= max_chars:
            result[-1] = f"{result[-1]} {pending}"
        else:
            result.append(pending)

    return result
