"""Beat detection driven by the adaptive multi-band BPM tracker.

The buffer is normalised to floats and cut into non-overlapping windows of
interleaved stereo values. Each window is transformed in place, with left
and right samples acting as the real and imaginary parts, and the result is
handed to a BpmTracker. Every time the tracker completes a whole beat a
DetectedBeat is reported, stamped with the end of the window. Tracker state
and stream time carry over between calls, so consecutive buffers continue
one stream while each call returns only its own beats.
"""

import logging

import numpy as np

from wavebeat.audio.audio_utils import as_pcm_buffer, normalize_pcm
from wavebeat.audio.beats import DetectedBeat, EventTimeline
from wavebeat.audio.bpm_tracker import BpmTracker
from wavebeat.audio.detector import BeatDetector
from wavebeat.audio.fft import bit_reverse, is_power_of_two, lanczos_fft
from wavebeat.config.audio_config import APPLY_BIT_REVERSAL, BPM_MAX, BPM_MIN, BPM_WINDOW_SIZE, CHANNELS

logger = logging.getLogger(__name__)


class BpmBeatDetector(BeatDetector):
    """Engine reporting beat ticks and a continuously refined BPM.

    Args:
        sample_rate (int): Sample rate of the analysed stream
        min_bpm (int): Lowest tempo searched
        max_bpm (int): Highest tempo searched, below 2 * min_bpm - 1
        window_size (int): Interleaved values per window (two per frame)
        apply_bit_reversal (bool): Reindex each window before transforming
    """

    def __init__(self, sample_rate, min_bpm=BPM_MIN, max_bpm=BPM_MAX,
                 window_size=BPM_WINDOW_SIZE, apply_bit_reversal=APPLY_BIT_REVERSAL):
        super().__init__(sample_rate)
        if window_size % CHANNELS or not is_power_of_two(window_size // CHANNELS):
            raise ValueError(f"Window size must be twice a power of two, got {window_size}")

        self.window_size = window_size
        self.apply_bit_reversal = apply_bit_reversal
        self.tracker = BpmTracker(min_bpm, max_bpm)

        self.window = np.zeros(window_size, dtype=np.float32)
        self.frames = 0
        self.beat_counter = 0

    @property
    def time(self):
        """Seconds of audio consumed so far, i.e. the end of the last window."""
        return self.frames / self.sample_rate

    @property
    def bpm(self):
        """Winning tempo in tenths of a BPM, 0 until a winner exists."""
        return self.tracker.win_bpm_int

    def reset(self, reset_freq=True):
        self.tracker.reset(reset_freq)
        self.frames = 0
        self.beat_counter = 0

    def detect(self, samples) -> EventTimeline:
        """
        Normalise an interleaved int16 buffer and scan it window by window.

        Args:
            samples: int16 samples ordered L, R, L, R, ...

        Returns:
            EventTimeline: a new timeline holding the beats of this buffer
        """
        return self.detect_normalized(normalize_pcm(as_pcm_buffer(samples)))

    def detect_normalized(self, values) -> EventTimeline:
        """Scan interleaved float samples already scaled to [-1, 1]."""
        values = np.asarray(values, dtype=np.float32)
        beats = EventTimeline()

        for offset in range(0, len(values) - self.window_size + 1, self.window_size):
            self.window[:] = values[offset:offset + self.window_size]
            beat = self.detect_step(self.window)
            if beat is not None:
                beats.append(beat)

        logger.info(f"BPM detection finished: {len(beats)} beats, "
                    f"winning BPM {self.bpm / 10.0:.1f}")
        return beats

    def detect_step(self, window):
        """
        Perform a single detection step on exactly window_size values.

        The window is transformed in place.

        Returns:
            DetectedBeat: the beat completed by this window, or None
        """
        if len(window) != self.window_size:
            raise ValueError(f"Provided data window has {len(window)} values, expected {self.window_size}")
        if not (isinstance(window, np.ndarray) and window.dtype == np.float32 and window.flags.c_contiguous):
            window = np.array(window, dtype=np.float32)

        points = self.window_size // CHANNELS
        self.frames += points

        if self.apply_bit_reversal:
            bit_reverse(window, points)
        lanczos_fft(points, window)

        self.tracker.process_window(self.time, window)

        if self.beat_counter < self.tracker.beat_counter:
            self.beat_counter = self.tracker.beat_counter
            return DetectedBeat(
                time_offset=self.time,
                strongest_frequency=self.strongest_frequency(),
            )
        return None

    def strongest_frequency(self) -> float:
        """Index of the loudest range relative to the number of ranges."""
        amplitude = self.tracker.ranges['amplitude']
        if not (amplitude > 0).any():
            return 0.0
        return float(np.argmax(amplitude)) / len(amplitude)
