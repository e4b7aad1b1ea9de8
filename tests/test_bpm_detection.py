import numpy as np
import pytest

from wavebeat.audio.beats import EventTimeline
from wavebeat.audio.bpm_detection import BpmBeatDetector

# 512 frames per default window at this rate makes every window 10ms long
SR = 51200


def _generate_click_track(sr, duration, bpm, amplitude=30000):
    """Generate an interleaved stereo click track with one-sample clicks."""
    frames = int(sr * duration)
    interval = int(sr * 60 / bpm)
    y = np.zeros((frames, 2), dtype=np.int16)
    y[::interval] = amplitude
    return y.ravel()


@pytest.fixture(scope="module")
def click_track_result():
    detector = BpmBeatDetector(SR)
    beats = detector.detect(_generate_click_track(SR, 10.0, 120))
    return detector, beats


def test_click_track_tempo(click_track_result):
    detector, _ = click_track_result
    assert 1185 <= detector.bpm <= 1215
    assert detector.tracker.current_bpm == pytest.approx(120.0, abs=1.5)


def test_click_track_beats(click_track_result):
    _, beats = click_track_result
    times = beats.timestamps()

    assert 14 <= len(beats) <= 22
    assert np.all(np.diff(times) > 0)
    assert 0.45 <= np.median(np.diff(times)) <= 0.55
    for beat in beats:
        assert 0.0 <= beat.strongest_frequency < 1.0
        assert beat.bands == 0


def test_beats_are_stamped_at_window_ends(click_track_result):
    _, beats = click_track_result
    windows = beats.timestamps() / (512 / SR)
    np.testing.assert_allclose(windows, np.round(windows), atol=1e-6)


def test_silence_never_reports_a_tempo():
    detector = BpmBeatDetector(SR)
    beats = detector.detect(np.zeros(SR * 2 * 3, dtype=np.int16))

    assert len(beats) == 0
    assert detector.bpm == 0
    assert detector.tracker.current_bpm == 0.0
    assert detector.time == pytest.approx(3.0)


def test_buffer_shorter_than_a_window_is_empty():
    detector = BpmBeatDetector(SR)
    beats = detector.detect(np.ones(1022, dtype=np.int16))
    assert len(beats) == 0
    assert detector.time == 0.0


def test_detect_step_checks_window_length():
    detector = BpmBeatDetector(SR)
    with pytest.raises(ValueError):
        detector.detect_step(np.zeros(512, dtype=np.float32))


def test_detect_rejects_odd_buffers():
    with pytest.raises(ValueError):
        BpmBeatDetector(SR).detect(np.zeros(1025, dtype=np.int16))


@pytest.mark.parametrize("window_size", [1000, 3072, 1])
def test_window_size_must_be_twice_a_power_of_two(window_size):
    with pytest.raises(ValueError):
        BpmBeatDetector(SR, window_size=window_size)


def test_reset_reproduces_the_same_timeline():
    samples = _generate_click_track(SR, 5.0, 120)
    detector = BpmBeatDetector(SR)

    first = detector.detect(samples).copy()
    detector.reset()
    second = detector.detect(samples)

    assert first == second
    assert len(first) > 0


def test_repeated_detect_continues_the_stream():
    samples = _generate_click_track(SR, 5.0, 120)
    whole = BpmBeatDetector(SR).detect(np.concatenate([samples, samples]))

    detector = BpmBeatDetector(SR)
    first = detector.detect(samples)
    kept = first.copy()
    second = detector.detect(samples)

    assert first is not second
    assert first == kept
    assert EventTimeline(list(first) + list(second)) == whole
    assert all(beat.time_offset >= 5.0 for beat in second)


def test_bit_reversal_option():
    detector = BpmBeatDetector(SR, apply_bit_reversal=True)
    beats = detector.detect(_generate_click_track(SR, 5.0, 120))

    assert np.all(np.diff(beats.timestamps()) > 0)
    assert detector.time == pytest.approx(5.0, abs=0.01)


def test_larger_windows():
    detector = BpmBeatDetector(SR, window_size=2048)
    beats = detector.detect(_generate_click_track(SR, 10.0, 120))

    assert len(beats) > 0
    assert detector.bpm > 0


def test_input_is_not_modified():
    samples = _generate_click_track(SR, 2.0, 120)
    original = samples.copy()
    BpmBeatDetector(SR).detect(samples)
    np.testing.assert_array_equal(samples, original)


def test_click_track_at_cd_rate():
    detector = BpmBeatDetector(44100)
    beats = detector.detect(_generate_click_track(44100, 10.0, 120))
    spacing = np.diff(beats.timestamps())

    assert 1190 <= detector.bpm <= 1210
    assert 16 <= len(beats) <= 22
    assert 0.45 <= np.median(spacing) <= 0.55


def test_float_buffers_are_rejected():
    with pytest.raises(ValueError):
        BpmBeatDetector(SR).detect(np.full(4096, 0.9))


def test_detect_step_reports_completed_beats():
    detector = BpmBeatDetector(SR)
    samples = _generate_click_track(SR, 5.0, 120).astype(np.float32) / np.float32(32767)

    steps = [detector.detect_step(samples[offset:offset + 1024])
             for offset in range(0, len(samples) - 1023, 1024)]
    beats = [beat for beat in steps if beat is not None]

    assert beats == list(BpmBeatDetector(SR).detect(_generate_click_track(SR, 5.0, 120)))
