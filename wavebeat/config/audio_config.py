"""
Configuration settings for PCM beat detection and BPM estimation.
"""

# General audio settings
SAMPLE_RATE = 44100  # Hz
PCM_SCALE = 32767.0  # Full scale of signed 16-bit samples
CHANNELS = 2         # Interleaved left/right

# Energy/variance beat detection settings
ENERGY_WINDOW_SIZE = 1024   # Frames per window, has to be a power of 2
ENERGY_HOP_LENGTH = 256     # Frames between successive windows (0.25 * window)
ENERGY_BAND_COUNT = 64      # Between 20 and 64
ENERGY_HISTORY_SIZE = 24    # ~0.56 sec at 43 windows per second
ENERGY_THRESHOLD = 250.0    # Band fires above this multiple of its average
VARIANCE_THRESHOLD = 150.0  # ... and when its history variance exceeds this

# Band widths follow width(i) = a * (i + 1) + b and sum to ENERGY_WINDOW_SIZE
BAND_WIDTH_B = (4160.0 - 1024.0) / 2016.0
BAND_WIDTH_A = 2.0 - BAND_WIDTH_B

# BPM estimation settings
BPM_WINDOW_SIZE = 1024      # Interleaved values per window (512 stereo frames)
BPM_MIN = 90                # Search range used by the detector
BPM_MAX = 180
TRACKER_BPM_MIN = 100.0     # Search range of a bare tracker
TRACKER_BPM_MAX = 200.0

DETECTION_RANGES = 128      # Equal-width frequency ranges tracked independently
DETECTION_RATE = 12.0       # Moving averages chase at 1 / DETECTION_RATE seconds
DETECTION_FACTOR = 0.925    # Rising edge when ma * factor >= lagging ma

QUALITY_TOLERANCE = 0.96
QUALITY_DECAY = 0.95
QUALITY_REWARD = 7.0
QUALITY_STEP = 0.1
QUALITY_FLOOR = 0.001       # Quality never drops to exactly zero
FINISH_LINE = 60.0          # Contest scores are rescaled to stay below this
MINIMUM_CONTRIBUTIONS = 6   # Ranges needed before a draft yields a prediction

# Gap tolerance tiers (fraction of the range's gap average) and their rewards
REWARD_TOLERANCES = (0.001, 0.005, 0.01, 0.02, 0.04, 0.08, 0.10)
REWARD_MULTIPLIERS = (20.0, 10.0, 8.0, 1.0, 1.0 / 2.0, 1.0 / 4.0, 1.0 / 8.0)

# Optional reindexing pass before each BPM window transform
APPLY_BIT_REVERSAL = False

# Reporting
DEFAULT_FPS = 30
