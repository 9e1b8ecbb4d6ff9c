from __future__ import annotations

import logging
import math
from bisect import bisect_right
from typing import Literal, Protocol, Sequence

import numpy as np

from narration_plan.models import ItemTiming

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30.0
DEFAULT_FADE_SECONDS = 0.5
DEFAULT_CAPTION_LEAD_MS = 200.0
DEFAULT_CAPTION_LAG_MS = 150.0
PAUSE_BEFORE_PUNCH_FRAMES = 6

TimingMode = Literal["uniform", "timestamps"]


class TimedItem(Protocol):
    start_seconds: float
    end_seconds: float


class TimingSynchronizer:
    """Answers "what is on screen at this instant" for one scene.

    Built once per scene; every per-frame query is a binary search over the
    precomputed item starts. Instants are scene-local seconds (frame / fps).

    In ``timestamps`` mode each item is shown from ``caption_lead_ms`` before
    its spoken start until ``caption_lag_ms`` plus the fade-out after its
    spoken end. In ``uniform`` mode the scene is divided evenly.
    """

    def __init__(
        self,
        mode: TimingMode,
        scene_duration: float,
        *,
        item_count: int,
        lookup_starts: Sequence[float] = (),
        spoken_ends: Sequence[float] = (),
        display_starts: Sequence[float] = (),
        display_ends: Sequence[float] = (),
        fps: float = DEFAULT_FPS,
        fade_in_seconds: float = DEFAULT_FADE_SECONDS,
        fade_out_seconds: float = DEFAULT_FADE_SECONDS,
        scene_offset_seconds: float = 0.0,
    ) -> None:
        self.mode = mode
        self.scene_duration = scene_duration
        self.item_count = item_count
        self.fps = fps
        self.fade_in_seconds = fade_in_seconds
        self.fade_out_seconds = fade_out_seconds
        self.scene_offset_seconds = scene_offset_seconds
        self._lookup_starts = list(lookup_starts)
        self._spoken_ends = list(spoken_ends)
        self._display_starts = list(display_starts)
        self._display_ends = list(display_ends)

    @classmethod
    def uniform(
        cls,
        item_count: int,
        scene_duration: float,
        *,
        fps: float = DEFAULT_FPS,
        fade_in_seconds: float = DEFAULT_FADE_SECONDS,
        fade_out_seconds: float = DEFAULT_FADE_SECONDS,
    ) -> TimingSynchronizer:
        return cls(
            "uniform",
            scene_duration,
            item_count=max(item_count, 0),
            fps=fps,
            fade_in_seconds=fade_in_seconds,
            fade_out_seconds=fade_out_seconds,
        )

    @classmethod
    def from_items(
        cls,
        items: Sequence[TimedItem],
        scene_duration: float,
        *,
        fps: float = DEFAULT_FPS,
        fade_in_seconds: float = DEFAULT_FADE_SECONDS,
        fade_out_seconds: float = DEFAULT_FADE_SECONDS,
        caption_lead_ms: float = DEFAULT_CAPTION_LEAD_MS,
        caption_lag_ms: float = DEFAULT_CAPTION_LAG_MS,
        pause_before_punch_frames: int = PAUSE_BEFORE_PUNCH_FRAMES,
        scene_offset_seconds: float = 0.0,
    ) -> TimingSynchronizer:
        """Timestamp-driven synchronizer over blocks or transcript segments.

        Items carrying ``weight == "punch"`` (editorial blocks) after the
        first one appear ``pause_before_punch_frames`` later, a short visual
        beat before the punchline.
        """

        lead = caption_lead_ms / 1000
        lag = caption_lag_ms / 1000
        frame = 1 / fps

        lookup_starts: list[float] = []
        spoken_ends: list[float] = []
        display_starts: list[float] = []
        display_ends: list[float] = []
        for idx, item in enumerate(items):
            display_start = max(0.0, item.start_seconds - lead - scene_offset_seconds)
            display_end = max(
                display_start + frame,
                min(scene_duration, item.end_seconds + lag - scene_offset_seconds + fade_out_seconds),
            )
            if idx > 0 and getattr(item, "weight", None) == "punch":
                display_start = min(display_start + pause_before_punch_frames * frame, display_end - frame)

            lookup_starts.append(item.start_seconds - lead)
            spoken_ends.append(item.end_seconds)
            display_starts.append(display_start)
            display_ends.append(display_end)

        if any(later < earlier for earlier, later in zip(lookup_starts, lookup_starts[1:])):
            raise ValueError("Timed items must be ordered by start time.")

        return cls(
            "timestamps",
            scene_duration,
            item_count=len(lookup_starts),
            lookup_starts=lookup_starts,
            spoken_ends=spoken_ends,
            display_starts=display_starts,
            display_ends=display_ends,
            fps=fps,
            fade_in_seconds=fade_in_seconds,
            fade_out_seconds=fade_out_seconds,
            scene_offset_seconds=scene_offset_seconds,
        )

    def at_frame(self, frame: int) -> ItemTiming:
        return self.at_seconds(frame / self.fps)

    def at_seconds(self, seconds: float) -> ItemTiming:
        if self.item_count <= 0 or self.scene_duration <= 0:
            return ItemTiming(index=0, start_seconds=0.0, end_seconds=max(self.scene_duration, 0.0), opacity=1.0)

        if self.mode == "uniform":
            index, start, end = self._uniform_slot(seconds)
        else:
            index = self._active_index(seconds + self.scene_offset_seconds)
            start = self._display_starts[index]
            end = self._display_ends[index]

        opacity, transitioning = fade_opacity(
            seconds - start,
            end - start,
            self.fade_in_seconds,
            self.fade_out_seconds,
        )
        return ItemTiming(
            index=index,
            start_seconds=start,
            end_seconds=end,
            opacity=opacity,
            is_transitioning=transitioning,
        )

    def frame_track(self, frame_count: int | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Active index and opacity for every frame of the scene, vectorized.

        Equivalent to calling ``at_frame`` for each frame; meant for
        renderers that precompute a whole scene at once.
        """

        if frame_count is None:
            frame_count = max(int(math.ceil(self.scene_duration * self.fps)), 0)
        seconds = np.arange(frame_count, dtype=float) / self.fps

        if self.item_count <= 0 or self.scene_duration <= 0:
            return np.zeros(frame_count, dtype=int), np.ones(frame_count, dtype=float)

        if self.mode == "uniform":
            slot = self.scene_duration / self.item_count
            indices = np.clip(np.floor(seconds / slot), 0, self.item_count - 1).astype(int)
            starts = indices * slot
            ends = (indices + 1) * slot
        else:
            lookup = seconds + self.scene_offset_seconds
            lookup_starts = np.asarray(self._lookup_starts)
            spoken_ends = np.asarray(self._spoken_ends)
            indices = np.searchsorted(lookup_starts, lookup, side="right") - 1
            indices = np.clip(indices, 0, self.item_count - 1)
            while True:
                still_previous = (indices > 0) & (lookup < spoken_ends[np.maximum(indices - 1, 0)])
                if not still_previous.any():
                    break
                indices = np.where(still_previous, indices - 1, indices)
            starts = np.asarray(self._display_starts)[indices]
            ends = np.asarray(self._display_ends)[indices]

        durations = ends - starts
        relative = seconds - starts
        fade_in = np.minimum(self.fade_in_seconds, durations / 3)
        fade_out = np.minimum(self.fade_out_seconds, durations / 3)
        with np.errstate(divide="ignore", invalid="ignore"):
            rising = np.where(fade_in > 0, relative / fade_in, 1.0)
            falling = np.where(fade_out > 0, (durations - relative) / fade_out, 1.0)
        opacity = np.clip(np.minimum(rising, falling), 0.0, 1.0)
        opacity = np.where((relative < 0) | (relative > durations), 0.0, opacity)
        opacity = np.where(durations <= 0, 1.0, opacity)
        return indices, opacity

    def _uniform_slot(self, seconds: float) -> tuple[int, float, float]:
        slot = self.scene_duration / self.item_count
        index = min(max(0, math.floor(seconds / slot)), self.item_count - 1)
        return index, index * slot, (index + 1) * slot

    def _active_index(self, seconds: float) -> int:
        index = bisect_right(self._lookup_starts, seconds) - 1
        if index < 0:
            return 0
        # earlier items keep the screen until their spoken end
        while index > 0 and seconds < self._spoken_ends[index - 1]:
            index -= 1
        return index


def fade_opacity(
    relative_seconds: float,
    duration_seconds: float,
    fade_in_seconds: float,
    fade_out_seconds: float,
) -> tuple[float, bool]:
    """Opacity ramp 0 -> 1 -> 1 -> 0 over an item's display window.

    Fades are capped to a third of the window each. Returns the opacity and
    whether the instant falls inside a fade window.
    """

    if duration_seconds <= 0:
        return 1.0, False
    if relative_seconds < 0 or relative_seconds > duration_seconds:
        return 0.0, True

    fade_in = min(fade_in_seconds, duration_seconds / 3)
    fade_out = min(fade_out_seconds, duration_seconds / 3)
    rising = relative_seconds / fade_in if fade_in > 0 else 1.0
    falling = (duration_seconds - relative_seconds) / fade_out if fade_out > 0 else 1.0
    opacity = max(0.0, min(1.0, rising, falling))
    transitioning = relative_seconds < fade_in or relative_seconds > duration_seconds - fade_out
    return opacity, transitioning
