"""One-call beat detection over a PCM buffer."""

import logging

from wavebeat.audio.beat_detection import EnergyBeatDetector
from wavebeat.audio.bpm_detection import BpmBeatDetector
from wavebeat.config.audio_config import (
    APPLY_BIT_REVERSAL,
    BPM_MAX,
    BPM_MIN,
    BPM_WINDOW_SIZE,
    ENERGY_HISTORY_SIZE,
    ENERGY_HOP_LENGTH,
    ENERGY_THRESHOLD,
    VARIANCE_THRESHOLD,
)

logger = logging.getLogger(__name__)

ENGINES = {
    'energy': EnergyBeatDetector,
    'bpm': BpmBeatDetector,
}


def get_detection_params(engine='energy', **overrides):
    """
    Get centralized construction parameters for a detection engine.

    Args:
        engine (str): 'energy' for the band energy detector, 'bpm' for the
                      adaptive BPM tracker
        **overrides: Values replacing the defaults

    Returns:
        dict: Keyword arguments for the engine's constructor (sample rate excluded)
    """
    if engine == 'energy':
        params = {
            'hop_length': ENERGY_HOP_LENGTH,
            'history_size': ENERGY_HISTORY_SIZE,
            'energy_threshold': ENERGY_THRESHOLD,
            'variance_threshold': VARIANCE_THRESHOLD,
        }
    elif engine == 'bpm':
        params = {
            'min_bpm': BPM_MIN,
            'max_bpm': BPM_MAX,
            'window_size': BPM_WINDOW_SIZE,
            'apply_bit_reversal': APPLY_BIT_REVERSAL,
        }
    else:
        raise ValueError(f"Unknown detection engine '{engine}', expected one of {sorted(ENGINES)}")

    unknown = set(overrides) - set(params)
    if unknown:
        raise ValueError(f"Unsupported parameters for the {engine} engine: {sorted(unknown)}")

    params.update(overrides)
    return params


def create_detector(sample_rate, engine='energy', **overrides):
    params = get_detection_params(engine, **overrides)
    logger.debug(f"Creating {engine} detector at {sample_rate} Hz with {params}")
    return ENGINES[engine](sample_rate, **params)


def detect_beats(samples, sample_rate, engine='energy', **overrides):
    """
    Detect beats in an interleaved 16-bit stereo buffer.

    Args:
        samples: int16 samples ordered L, R, L, R, ...
        sample_rate (int): Sample rate in Hz
        engine (str): 'energy' or 'bpm'
        **overrides: Override any default engine parameter

    Returns:
        EventTimeline: Detected beats in time order
    """
    detector = create_detector(sample_rate, engine, **overrides)
    return detector.detect(samples)
