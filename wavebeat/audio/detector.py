"""Common interface of the beat detectors."""

from abc import ABC, abstractmethod

from wavebeat.audio.beats import EventTimeline


class BeatDetector(ABC):
    """Scans an interleaved stereo PCM buffer and reports beat events.

    Instances keep their trackers between calls and are not safe to share
    between threads; use one detector per stream. Every scan returns a new
    EventTimeline that belongs to the caller.
    """

    def __init__(self, sample_rate: int):
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        self.sample_rate = sample_rate

    @abstractmethod
    def detect(self, samples) -> EventTimeline:
        """Scan samples window by window and return the beats found in them."""

    @abstractmethod
    def reset(self) -> None:
        """Forget all history."""
