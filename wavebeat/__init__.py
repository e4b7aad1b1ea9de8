"""Beat and tempo detection on interleaved 16-bit stereo PCM."""

__version__ = "0.1.0"
