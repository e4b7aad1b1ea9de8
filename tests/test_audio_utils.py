import numpy as np
import pytest
import soundfile as sf

from wavebeat.audio.audio_utils import (
    as_pcm_buffer,
    load_audio,
    normalize_pcm,
    pad_to_even,
    to_interleaved_pcm,
)


def test_mono_is_duplicated_into_both_channels():
    pcm = to_interleaved_pcm(np.array([0.0, 0.5, -0.5]))
    assert pcm.dtype == np.int16
    np.testing.assert_array_equal(pcm, [0, 0, 16384, 16384, -16384, -16384])


def test_stereo_is_interleaved_left_first():
    y = np.array([[0.25, 0.5], [-0.25, -0.5]])
    np.testing.assert_array_equal(to_interleaved_pcm(y), [8192, -8192, 16384, -16384])


def test_conversion_clips_full_scale():
    pcm = to_interleaved_pcm(np.array([1.0, -1.0, 2.0]))
    np.testing.assert_array_equal(pcm[::2], [32767, -32768, 32767])


def test_more_than_two_channels_is_rejected():
    with pytest.raises(ValueError):
        to_interleaved_pcm(np.zeros((3, 10)))


def test_pad_to_even():
    odd = np.array([1, 2, 3], dtype=np.int16)
    padded = pad_to_even(odd)
    np.testing.assert_array_equal(padded, [1, 2, 3, 0])
    assert padded.dtype == np.int16

    even = np.array([1, 2], dtype=np.int16)
    assert pad_to_even(even) is even


def test_as_pcm_buffer_checks_layout():
    np.testing.assert_array_equal(as_pcm_buffer([1, -1]), [1, -1])
    with pytest.raises(ValueError):
        as_pcm_buffer(np.zeros(3, dtype=np.int16))
    with pytest.raises(ValueError):
        as_pcm_buffer(np.zeros((2, 2), dtype=np.int16))


def test_normalize_pcm():
    values = normalize_pcm(np.array([32767, 0, -32767], dtype=np.int16))
    assert values.dtype == np.float32
    np.testing.assert_allclose(values, [1.0, 0.0, -1.0])


def test_load_audio_returns_interleaved_stereo(tmp_path):
    sr = 22050
    t = np.arange(sr) / sr
    stereo = np.stack([0.5 * np.sin(2 * np.pi * 440 * t), np.zeros(sr)], axis=1)
    path = tmp_path / "tone.wav"
    sf.write(str(path), stereo, sr, subtype="PCM_16")

    samples, sample_rate = load_audio(str(path))

    assert sample_rate == sr
    assert samples.dtype == np.int16
    assert len(samples) == 2 * sr
    assert np.abs(samples[0::2]).max() > 10000
    assert np.abs(samples[1::2]).max() == 0


def test_load_audio_mono_file(tmp_path):
    sr = 8000
    path = tmp_path / "mono.wav"
    sf.write(str(path), np.full(101, 0.25), sr, subtype="PCM_16")

    samples, _ = load_audio(str(path))

    assert len(samples) == 202
    np.testing.assert_array_equal(samples[0::2], samples[1::2])


def test_load_audio_failure_returns_none(tmp_path):
    samples, sample_rate = load_audio(str(tmp_path / "missing.wav"))
    assert samples is None
    assert sample_rate is None


def test_as_pcm_buffer_rejects_float_samples():
    with pytest.raises(ValueError):
        as_pcm_buffer(np.full(4096, 0.9))
    with pytest.raises(ValueError):
        as_pcm_buffer(np.zeros(4, dtype=np.float32))
