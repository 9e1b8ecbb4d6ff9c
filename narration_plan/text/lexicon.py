from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Literal

CueCategory = Literal["contrast", "conclusion", "progression", "opinion"]


@dataclass(slots=True, frozen=True)
class Cue:
    """A transition phrase and how strongly it signals a topic change."""

    phrase: str
    weight: float
    category: CueCategory


@dataclass(slots=True, frozen=True)
class CueMatch:
    offset: int
    cue: Cue
    matched_text: str


TRANSITION_CUES: tuple[Cue, ...] = (
    Cue("por otro lado", 1.0, "contrast"),
    Cue("por otra parte", 1.0, "contrast"),
    Cue("en cambio", 1.0, "contrast"),
    Cue("sin embargo", 1.0, "contrast"),
    Cue("ahora bien", 1.0, "contrast"),
    Cue("no obstante", 1.0, "contrast"),
    Cue("en resumen", 0.8, "conclusion"),
    Cue("finalmente", 0.8, "conclusion"),
    Cue("en conclusión", 0.8, "conclusion"),
    Cue("personalmente", 0.8, "conclusion"),
    Cue("en mi opinión", 0.8, "conclusion"),
    Cue("ahora", 0.7, "progression"),
    Cue("además", 0.7, "progression"),
    Cue("lo interesante", 0.7, "progression"),
    Cue("lo fascinante", 0.7, "progression"),
    Cue("mientras tanto", 0.7, "progression"),
    Cue("creo que", 0.6, "opinion"),
    Cue("me parece", 0.6, "opinion"),
)

# Tried in this order when a sentence is still too long after comma splitting.
CONNECTORS: tuple[str, ...] = (
    "pero",
    "aunque",
    "porque",
    "cuando",
    "mientras",
    "donde",
    "como",
    "si",
    "que",
    "ya que",
    "sin embargo",
    "además",
    "por lo tanto",
    "en cambio",
)


def _phrase_pattern(phrase: str) -> str:
    return r"\s+".join(re.escape(word) for word in phrase.split())


def _normalize(text: str) -> str:
    return " ".join(text.split()).casefold()


class CueScanner:
    """Finds every cue of a lexicon in one regex pass over the text.

    Alternatives are ordered longest first, so an overlapping pair such as
    "ahora bien" / "ahora" yields a single match for the longer cue.
    """

    def __init__(self, cues: Iterable[Cue]) -> None:
        cue_list = list(cues)
        self._by_phrase = {_normalize(cue.phrase): cue for cue in cue_list}
        ordered = sorted(cue_list, key=lambda cue: (-len(cue.phrase), cue.phrase))
        alternation = "|".join(_phrase_pattern(cue.phrase) for cue in ordered)
        self._pattern = re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)

    def scan(self, text: str) -> list[CueMatch]:
        matches: list[CueMatch] = []
        for match in self._pattern.finditer(text):
            cue = self._by_phrase.get(_normalize(match.group(0)))
            if cue is None:
                continue
            matches.append(CueMatch(offset=match.start(), cue=cue, matched_text=match.group(0)))
        return matches


TRANSITION_SCANNER = CueScanner(TRANSITION_CUES)

CONNECTOR_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (connector, re.compile(rf"\s{_phrase_pattern(connector)}\s", re.IGNORECASE))
    for connector in CONNECTORS
)
