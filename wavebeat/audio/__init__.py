from wavebeat.audio.beat_detection import EnergyBeatDetector
from wavebeat.audio.beats import DetectedBeat, EventTimeline
from wavebeat.audio.bpm_detection import BpmBeatDetector
from wavebeat.audio.bpm_tracker import BpmTracker
from wavebeat.audio.contest import BpmContest
from wavebeat.audio.detect import detect_beats, get_detection_params

__all__ = [
    "BpmBeatDetector",
    "BpmContest",
    "BpmTracker",
    "DetectedBeat",
    "EnergyBeatDetector",
    "EventTimeline",
    "detect_beats",
    "get_detection_params",
]
