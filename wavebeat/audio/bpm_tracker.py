"""Adaptive Multi-Band BPM Tracker.

Trigger detection is performed using a trail of moving averages. The
magnitude spectrum of every window is broken up into 128 equal ranges and
averaged; each range has two moving averages that tail each other at a rate
of 1 / DETECTION_RATE seconds. Whenever the leading average of a range rises
above its lagging average (with a tolerance of DETECTION_FACTOR) a rising
edge is flagged for that range and the gap since its previous trigger is
tested:

- Gaps inside the BPM window are compared with the range's current gap
  average. Close matches earn quality and pull the gap averages toward the
  observed gap; misses cost quality.
- Gaps longer than the window are retried at half length, which catches
  ranges that only trigger every other beat. If that fails too, weak ranges
  are pulled toward the global beat period and penalised.
- Gaps shorter than the window are ignored and the last trigger time is
  kept, so the next, longer gap is measured from the same origin.

Ranges whose quality clears the average (with QUALITY_TOLERANCE) vote their
lagging gap average, converted to a tempo bucket at 0.1 BPM resolution and
weighted by relative quality. With at least MINIMUM_CONTRIBUTIONS voters
the heaviest bucket becomes the prediction, and the global beat period is
low-pass filtered toward it. A quarter-beat timer then credits the global
estimate in a contest table; the contest leader is the reported tempo.
Leaders that are about halfway to FINISH_LINE also feed a second contest at
1 BPM resolution.

Contest values hovering around 20-25 are a reasonable guess, above 40 the
estimate is very likely right.

Input restriction: bpm_max has to stay below (bpm_min * 2) - 1, e.g. a
minimum of 50 allows a maximum of up to 98. Tighter ranges converge faster
and are less prone to alternate-beat confusion.

Tempo is tracked internally as a beat period in seconds (60 / BPM).
"""

import logging

import numpy as np

from wavebeat.audio.contest import BpmContest
from wavebeat.config.audio_config import (
    DETECTION_FACTOR,
    DETECTION_RANGES,
    DETECTION_RATE,
    FINISH_LINE,
    MINIMUM_CONTRIBUTIONS,
    QUALITY_DECAY,
    QUALITY_FLOOR,
    QUALITY_REWARD,
    QUALITY_STEP,
    QUALITY_TOLERANCE,
    REWARD_MULTIPLIERS,
    REWARD_TOLERANCES,
    TRACKER_BPM_MAX,
    TRACKER_BPM_MIN,
)

logger = logging.getLogger(__name__)

# One record per frequency range
RANGE_DTYPE = np.dtype([
    ('amplitude', np.float32),      # average magnitude of the range in this window
    ('ma_amplitude', np.float32),   # moving average of amplitude
    ('maa_amplitude', np.float32),  # moving average of ma_amplitude
    ('ma_gap', np.float32),         # moving average of trigger gaps (seconds)
    ('maa_gap', np.float32),        # moving average of ma_gap
    ('last_trigger', np.float64),   # timestamp of the last accepted trigger
    ('quality', np.float32),        # good match = quality+, bad match = quality-
    ('triggered', np.bool_),        # current trigger state
])


def is_valid_bpm_range(bpm_min, bpm_max):
    return bpm_max < 2 * bpm_min - 1


class BpmTracker:
    """Stateful tempo tracker fed with one magnitude spectrum per window.

    Args:
        bpm_min (float): Lowest tempo searched
        bpm_max (float): Highest tempo searched, below 2 * bpm_min - 1
        ranges (int): Number of frequency ranges
    """

    def __init__(self, bpm_min=TRACKER_BPM_MIN, bpm_max=TRACKER_BPM_MAX, ranges=DETECTION_RANGES):
        if not is_valid_bpm_range(bpm_min, bpm_max):
            logger.warning(f"BPM range {bpm_min}-{bpm_max} exceeds 2 * min - 1, alternate beats may be confused")

        self.bpm_min = float(bpm_min)
        self.bpm_max = float(bpm_max)

        self.detection_rate = DETECTION_RATE
        self.detection_factor = DETECTION_FACTOR
        self.quality_reward = QUALITY_REWARD
        self.quality_decay = QUALITY_DECAY
        self.quality_step = QUALITY_STEP
        self.quality_tolerance = QUALITY_TOLERANCE
        self.finish_line = FINISH_LINE
        self.minimum_contributions = MINIMUM_CONTRIBUTIONS

        self._quality_floor = np.float32(QUALITY_FLOOR)
        self._tolerances = np.array(REWARD_TOLERANCES, dtype=np.float32)
        self._rewards = np.array(REWARD_MULTIPLIERS, dtype=np.float32) * np.float32(self.quality_reward)

        self.ranges = np.zeros(ranges, dtype=RANGE_DTYPE)
        self.contest = BpmContest(self.finish_line)     # 1/10th BPM buckets
        self.contest_lo = BpmContest(self.finish_line)  # 1 BPM buckets

        self.reset()

    @property
    def gap_floor(self):
        return 60.0 / self.bpm_max

    @property
    def gap_ceil(self):
        return 60.0 / self.bpm_min

    def reset(self, reset_freq=True):
        """
        Return to the initial state.

        Args:
            reset_freq (bool): Also clear the amplitude moving averages
        """
        r = self.ranges
        count = len(r)
        first_gap = 60.0 / (self.bpm_min + 5)
        last_gap = 60.0 / (self.bpm_max - 5)
        r['ma_gap'] = first_gap + (last_gap - first_gap) * (np.arange(count) / count)
        r['maa_gap'] = r['ma_gap']
        if reset_freq:
            r['amplitude'] = 0
            r['ma_amplitude'] = 0
            r['maa_amplitude'] = 0
        r['last_trigger'] = 0
        r['quality'] = 0
        r['triggered'] = False

        self.quality_total = 1.0
        self.quality_avg = 1.0
        self.ma_quality_avg = 0.001
        self.maa_quality_avg = 500.0
        self.ma_quality_total = 1.0

        self.total_time = 0.0
        self.last_timer = 0.0
        self.last_update = 0.0

        self.beat_period = 0.0
        self.bpm_predict = 0.0
        self.bpm_offset = 0.0
        self.bpm_timer = 0.0
        self.winning_period = 0.0
        self.winning_period_lo = 0.0
        self.win_val = 0.0
        self.win_bpm_int = 0
        self.win_val_lo = 0.0
        self.win_bpm_int_lo = 0

        self.quarter_counter = 0
        self.half_counter = 0
        self.beat_counter = 0

        self.contest.clear()
        self.contest_lo.clear()

    @property
    def current_bpm(self):
        """Running global tempo estimate in BPM, 0.0 before the first prediction."""
        return 60.0 / self.beat_period if self.beat_period else 0.0

    @property
    def winning_bpm(self):
        """Tempo of the contest leader in BPM."""
        return 60.0 / self.winning_period if self.winning_period else 0.0

    @property
    def winning_bpm_lo(self):
        return 60.0 / self.winning_period_lo if self.winning_period_lo else 0.0

    def process_window(self, timestamp, spectrum):
        """
        Feed one window of spectral data.

        Args:
            timestamp (float): Seconds since stream start, non-decreasing
            spectrum: Spectral values of the window; the length has to be a
                multiple of the number of ranges

        Returns:
            bool: True when the whole-beat counter increased
        """
        spectrum = np.asarray(spectrum, dtype=np.float32)
        count = len(self.ranges)
        if len(spectrum) == 0 or len(spectrum) % count:
            raise ValueError(f"Spectrum length {len(spectrum)} does not split into {count} ranges")

        # the first timestamp only starts the clock
        if self.last_timer == 0:
            self.last_timer = timestamp
            return False

        if timestamp < self.last_timer:
            logger.debug(f"Timestamp went back from {self.last_timer:.3f}s to {timestamp:.3f}s, resetting")
            self.reset()
            return False

        self.last_update = timestamp - self.last_timer
        self.last_timer = timestamp
        self.total_time += self.last_update

        beats_before = self.beat_counter

        self._update_ranges(timestamp, spectrum)
        self._update_quality_averages()

        prediction = self._draft()
        if prediction:
            self._hold_contest(prediction)

        return self.beat_counter > beats_before

    def _tier_reward(self, ma_gap, gap):
        """Quality earned by every tolerance tier the gap falls into."""
        distance = np.abs(ma_gap - gap)[:, np.newaxis]
        matches = distance < ma_gap[:, np.newaxis] * self._tolerances
        return (matches * self._rewards).sum(axis=1, dtype=np.float32)

    def _update_ranges(self, timestamp, spectrum):
        r = self.ranges
        dt = self.last_update
        gap_floor = self.gap_floor
        gap_ceil = self.gap_ceil
        step = self.quality_step

        r['amplitude'] = np.abs(spectrum).reshape(len(r), -1).mean(axis=1)

        # two averages chase the amplitude at a rate of 1 / detection_rate seconds
        rate = dt * self.detection_rate
        r['ma_amplitude'] -= (r['ma_amplitude'] - r['amplitude']) * rate
        r['maa_amplitude'] -= (r['maa_amplitude'] - r['ma_amplitude']) * rate

        det = r['ma_amplitude'] * self.detection_factor >= r['maa_amplitude']

        ma_gap = np.clip(r['ma_gap'], gap_floor, gap_ceil).astype(np.float32)
        maa_gap = np.clip(r['maa_gap'], gap_floor, gap_ceil).astype(np.float32)
        quality = r['quality'].copy()
        last = r['last_trigger'].copy()

        rising = det & ~r['triggered']

        gap = (timestamp - last).astype(np.float32)
        in_window = (gap > gap_floor) & (gap < gap_ceil)
        beyond = gap >= gap_ceil
        half_gap = gap / np.float32(2.0)
        candidate = np.where(beyond, half_gap, gap)

        testable = rising & (in_window | (beyond & (half_gap > gap_floor) & (half_gap < gap_ceil)))
        reward = np.where(testable, self._tier_reward(ma_gap, candidate), np.float32(0.0))
        rewarded = reward > 0
        quality += reward

        # a failed half-gap retry falls back to the full gap
        gap = np.where(beyond & ~rewarded, gap, candidate)
        # an overlong gap always restarts the measurement
        last = np.where(rising & ((in_window & rewarded) | beyond), timestamp, last)

        qmp = np.minimum(quality / self.quality_avg * step, 1.0).astype(np.float32)
        pull = rising & rewarded
        ma_gap = np.where(pull, ma_gap - (ma_gap - gap) * qmp, ma_gap)
        maa_gap = np.where(pull, maa_gap - (maa_gap - ma_gap) * qmp, maa_gap)

        missed = rising & ~rewarded
        weak = (quality < self.quality_avg * self.quality_tolerance) & (self.beat_period != 0)

        off_beat = missed & (gap >= gap_floor) & (gap <= gap_ceil)
        follow = off_beat & weak
        ma_gap = np.where(follow, ma_gap - (ma_gap - gap) * step, ma_gap)
        maa_gap = np.where(follow, maa_gap - (maa_gap - ma_gap) * step, maa_gap)
        quality = np.where(off_beat, quality - step, quality)

        overdue = missed & ~off_beat & (gap >= gap_ceil)
        follow = overdue & weak
        ma_gap = np.where(follow, ma_gap - (ma_gap - self.beat_period) * 0.5, ma_gap)
        maa_gap = np.where(follow, maa_gap - (maa_gap - ma_gap) * 0.5, maa_gap)
        quality = np.where(overdue, quality - self.quality_reward * step, quality)

        stale = ((~rewarded & (timestamp - last > gap_ceil))
                 | (det & (np.abs(ma_gap - self.beat_period) > self.bpm_offset)))
        quality = np.where(stale, quality - quality * step * self.quality_decay * dt, quality)
        quality = np.where(quality <= 0, self._quality_floor, quality)

        r['ma_gap'] = ma_gap
        r['maa_gap'] = maa_gap
        r['quality'] = quality
        r['last_trigger'] = last
        r['triggered'] = det

    def _update_quality_averages(self):
        dt = self.last_update
        count = len(self.ranges)

        self.quality_total = float(self.ranges['quality'].sum(dtype=np.float64))
        self.quality_avg = self.quality_total / count

        rate = dt * self.detection_rate / 2.0
        self.ma_quality_avg += (self.quality_avg - self.ma_quality_avg) * rate
        self.maa_quality_avg += (self.ma_quality_avg - self.maa_quality_avg) * dt
        self.ma_quality_total += (self.quality_total - self.ma_quality_total) * rate

        self.ma_quality_avg -= 0.98 * self.ma_quality_avg * dt * 3.0

        if self.ma_quality_total <= 0:
            self.ma_quality_total = 1.0
        if self.ma_quality_avg <= 0:
            self.ma_quality_avg = 1.0

    def _draft(self):
        """Let eligible ranges vote for a tempo bucket.

        Returns:
            float: Predicted beat period in seconds, 0.0 without enough votes
        """
        quality = self.ranges['quality']
        maa_gap = self.ranges['maa_gap']

        # ranges sitting on the quality floor have no evidence to vote with
        eligible = ((quality * self.quality_tolerance >= self.ma_quality_avg)
                    & (quality > self._quality_floor)
                    & (maa_gap > self.gap_floor)
                    & (maa_gap < self.gap_ceil))
        contributors = np.flatnonzero(eligible)

        if len(contributors) < self.minimum_contributions:
            return 0.0

        draft = {}
        offset_test = self.beat_period
        offset_total = 0.0
        for x in contributors:
            gap = float(maa_gap[x])
            bucket = int(round(60000.0 / gap)) // 100
            draft[bucket] = draft.get(bucket, 0.0) + float(quality[x]) / self.quality_avg
            if offset_test == 0.0:
                offset_test = gap
            else:
                offset_total += abs(offset_test - gap)

        draft_winner = max(draft, key=draft.get)
        self.bpm_offset = offset_total / len(contributors)
        self.bpm_predict = 60.0 / (draft_winner / 10.0)
        logger.debug(f"{len(contributors)} ranges voted, leading draft {draft_winner / 10.0:.1f} BPM")
        return self.bpm_predict

    def _hold_contest(self, prediction):
        dt = self.last_update

        if self.beat_period == 0:
            self.beat_period = prediction
        self.beat_period -= (self.beat_period - prediction) * dt
        if self.beat_period < 0:
            self.beat_period = 0.0

        for bucket, score in self.contest.items():
            if score > self.finish_line / 2.0:
                self.contest_lo.credit(int(round(bucket / 10.0)), (score / 10.0) * dt)

        self.contest.rescale()
        self.contest_lo.rescale()
        self.contest.decay(dt / self.detection_rate)
        self.contest_lo.decay(dt / self.detection_rate)

        self.bpm_timer += dt
        quarter = self.winning_period / 4.0
        if self.bpm_timer <= quarter or self.beat_period == 0:
            return

        if self.winning_period != 0:
            while self.bpm_timer > quarter:
                self.bpm_timer -= quarter

        self.quarter_counter += 1
        self.half_counter = self.quarter_counter // 2
        beat_counter = self.quarter_counter // 4
        if beat_counter > self.beat_counter:
            self.contest.credit(int(round(60.0 / self.beat_period * 10.0)), self.quality_reward)
        self.beat_counter = beat_counter

        winner, self.win_val = self.contest.leader()
        if winner:
            self.win_bpm_int = winner
            self.winning_period = 60.0 / (winner / 10.0)

        winner_lo, self.win_val_lo = self.contest_lo.leader()
        if winner_lo:
            self.win_bpm_int_lo = winner_lo
            self.winning_period_lo = 60.0 / winner_lo
