"""Beat events and the append-only timeline every detector scan returns."""

from dataclasses import dataclass
from typing import Iterator, List

import numpy as np


@dataclass(frozen=True)
class DetectedBeat:
    """One detected beat.

    Attributes:
        time_offset (float): Seconds from the start of the stream
        strongest_frequency (float): Dominant-frequency indicator in [0, 1)
        bands (int): Bitmask of the energy bands that fired, 0 when unknown
    """
    time_offset: float
    strongest_frequency: float
    bands: int = 0


class EventTimeline:
    """Insertion-ordered sequence of DetectedBeat records.

    Events are only ever appended; the timeline never reorders or
    deduplicates them.
    """

    def __init__(self, beats=None):
        self._beats: List[DetectedBeat] = list(beats) if beats else []

    def append(self, beat: DetectedBeat) -> None:
        self._beats.append(beat)

    def __len__(self) -> int:
        return len(self._beats)

    def __iter__(self) -> Iterator[DetectedBeat]:
        return iter(self._beats)

    def __getitem__(self, index):
        return self._beats[index]

    def __eq__(self, other):
        if not isinstance(other, EventTimeline):
            return NotImplemented
        return self._beats == other._beats

    def __repr__(self):
        return f"EventTimeline({len(self._beats)} beats)"

    def copy(self) -> 'EventTimeline':
        return EventTimeline(self._beats)

    def timestamps(self) -> np.ndarray:
        """Beat times in seconds as a float array."""
        return np.array([beat.time_offset for beat in self._beats], dtype=float)

    def to_frames(self, fps: int = 30) -> np.ndarray:
        """Convert beat times to frame indices at the given frame rate.

        Args:
            fps (int): Output frame rate

        Returns:
            np.ndarray: fps-aligned frame indices where beats occur
        """
        return np.round(self.timestamps() * fps).astype(int)
