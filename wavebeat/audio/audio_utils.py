"""Audio Utility Functions for PCM Beat Detection.

This module provides shared audio helpers used across the library, including
loading audio files into the interleaved 16-bit stereo layout the detectors
consume, and converting between that layout and normalised floats.

The main functions include:
- load_audio: Load any librosa-readable file as interleaved int16 stereo
- to_interleaved_pcm: Convert float audio (mono or 2 channels) to int16 PCM
- as_pcm_buffer: Validate a sample buffer handed to a detector
- normalize_pcm: Scale int16 PCM to float32 in [-1, 1]
- pad_to_even: Round an odd-length buffer up with one zero sample
"""

import logging
from typing import Optional, Tuple

import librosa
import numpy as np

from wavebeat.config.audio_config import CHANNELS, PCM_SCALE

logger = logging.getLogger(__name__)


def pad_to_even(samples: np.ndarray) -> np.ndarray:
    """Pad an odd-length buffer with a trailing zero; never truncate."""
    if len(samples) % 2 == 1:
        return np.append(samples, np.zeros(1, dtype=samples.dtype))
    return samples


def to_interleaved_pcm(y: np.ndarray) -> np.ndarray:
    """Convert float audio to interleaved signed 16-bit stereo.

    Args:
        y (np.ndarray): Audio in [-1, 1], shape (n,) for mono or (2, n) as
            returned by librosa.load(..., mono=False)

    Returns:
        np.ndarray: int16 samples ordered L, R, L, R, ...
    """
    y = np.asarray(y, dtype=np.float32)
    if y.ndim == 1:
        y = np.stack([y, y])
    if y.ndim != 2 or y.shape[0] != CHANNELS:
        raise ValueError(f"Expected mono or stereo audio, got shape {y.shape}")

    pcm = np.clip(np.round(y * 32768.0), -32768, 32767).astype(np.int16)
    return pcm.T.ravel()


def as_pcm_buffer(samples) -> np.ndarray:
    """Return samples as a 1-D int16 array, checking the interleaved layout."""
    samples = np.asarray(samples)
    if not np.issubdtype(samples.dtype, np.integer):
        raise ValueError(f"Sample buffer must hold integer PCM, got dtype {samples.dtype}")
    if samples.ndim != 1:
        raise ValueError(f"Sample buffer must be 1-D interleaved PCM, got shape {samples.shape}")
    if len(samples) % CHANNELS != 0:
        raise ValueError(f"Interleaved stereo buffer must have even length, got {len(samples)}")
    return samples.astype(np.int16, copy=False)


def normalize_pcm(samples: np.ndarray) -> np.ndarray:
    """Scale int16 PCM into float32 in [-1, 1]."""
    return np.asarray(samples, dtype=np.float32) / np.float32(PCM_SCALE)


def load_audio(audio_path: str, sr: Optional[int] = None) -> Tuple[Optional[np.ndarray], Optional[int]]:
    """Load an audio file as interleaved 16-bit stereo PCM.

    Args:
        audio_path (str): Path to the audio file (wav, flac, mp3, ...)
        sr (int, optional): Target sample rate. Defaults to the file's own rate.

    Returns:
        tuple: (samples, sample_rate) where samples is an int16 array of even
              length. Returns (None, None) if loading fails.
    """
    try:
        y, sr = librosa.load(audio_path, sr=sr, mono=False)
        if y.size == 0:
            raise ValueError("Audio file is empty or could not be read: %s" % audio_path)

        samples = pad_to_even(to_interleaved_pcm(y))
        logger.debug(f"Loaded {len(samples) // CHANNELS} frames at {sr} Hz from {audio_path}")
        return samples, int(sr)
    except Exception as e:
        logger.error(f"Error loading audio: {e}")
        return None, None
