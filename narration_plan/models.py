from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

BlockWeight = Literal["headline", "support", "punch"]
EmphasisLevel = Literal["hard", "soft", "none"]
BoundarySource = Literal["topic", "uniform"]

SCRIPT_SECTIONS = ("hook", "body", "opinion", "cta")


@dataclass(slots=True, frozen=True)
class NarrationScript:
    """The four narration sections, in fixed reading order."""

    hook: str = ""
    body: str = ""
    opinion: str = ""
    cta: str = ""

    def sections(self) -> list[tuple[str, str]]:
        return [(name, getattr(self, name)) for name in SCRIPT_SECTIONS]

    def full_text(self) -> str:
        return " ".join(text for _, text in self.sections())


@dataclass(slots=True, frozen=True)
class TranscriptSegment:
    """One spoken phrase with speech-to-text timing."""

    text: str
    start_seconds: float
    end_seconds: float

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds


@dataclass(slots=True, frozen=True)
class Phrase:
    """A display-ready span of narration text."""

    text: str
    index: int

    @property
    def char_count(self) -> int:
        return len(self.text)

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass(slots=True, frozen=True)
class EditorialBlock:
    """One or two on-screen lines with typographic weight and inherited timing."""

    lines: tuple[str, ...]
    weight: BlockWeight
    source_indices: tuple[int, ...]
    start_seconds: float
    end_seconds: float

    def __post_init__(self) -> None:
        if len(self.lines) not in (1, 2):
            raise ValueError(f"Editorial block must have 1 or 2 lines, got {len(self.lines)}.")

    @property
    def text(self) -> str:
        return " ".join(self.lines)

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds


@dataclass(slots=True, frozen=True)
class TopicBoundary:
    """Two scene cuts splitting a video into three image segments."""

    cut1: float
    cut2: float
    score1: float = 0.0
    score2: float = 0.0

    def as_tuple(self) -> tuple[float, float]:
        return (self.cut1, self.cut2)


@dataclass(slots=True, frozen=True)
class SceneSegment:
    """A background-image span of the video with the narration it covers."""

    index: int
    start_seconds: float
    end_seconds: float
    source: BoundarySource
    text: str = ""


@dataclass(slots=True)
class EmphasisAssignment:
    block_index: int
    level: EmphasisLevel = "none"
    reason: str = "default"


@dataclass(slots=True)
class EmphasisMap:
    """Per-block emphasis labels plus totals."""

    assignments: list[EmphasisAssignment] = field(default_factory=list)
    hard_count: int = 0
    soft_count: int = 0

    def level_for(self, block_index: int) -> EmphasisLevel:
        if 0 <= block_index < len(self.assignments):
            return self.assignments[block_index].level
        return "none"


@dataclass(slots=True, frozen=True)
class ItemTiming:
    """Answer to a per-frame query: which item is on screen and how visible."""

    index: int
    start_seconds: float
    end_seconds: float
    opacity: float
    is_transitioning: bool = False
