#!/usr/bin/env python3
import os
import sys
import argparse
import traceback
import logging

from wavebeat.audio.audio_utils import load_audio
from wavebeat.audio.detect import create_detector
from wavebeat.config.audio_config import BPM_MAX, BPM_MIN
from wavebeat.utils.logging_config import setup_logging


def build_parser():
    parser = argparse.ArgumentParser(description='Detect beats and tempo in an audio file.')
    parser.add_argument('audio', help='Input audio path')
    parser.add_argument('--engine', choices=['energy', 'bpm'], default='energy',
                        help='energy: band energy/variance detector, bpm: adaptive BPM tracker')
    parser.add_argument('--min-bpm', type=int, default=BPM_MIN, help='Lowest tempo searched (bpm engine)')
    parser.add_argument('--max-bpm', type=int, default=BPM_MAX, help='Highest tempo searched (bpm engine)')
    parser.add_argument('--reindex', action='store_true',
                        help='Apply bit-reversal reindexing to each window (bpm engine)')
    parser.add_argument('--fps', type=int, help='Also print beat-aligned frame indices at this frame rate')
    parser.add_argument('--log-file', help='Also write the log to this file')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    return parser


def main(argv=None):
    """
    Main entry point for the wavebeat command.
    Loads the audio, runs the selected engine and prints the beats.
    """
    args = build_parser().parse_args(argv)

    # Setup logging
    logger = setup_logging(args.debug, args.log_file)

    # Validate input file
    if not os.path.exists(args.audio):
        raise FileNotFoundError(f"Audio file not found: {args.audio}")

    samples, sample_rate = load_audio(args.audio)
    if samples is None:
        logger.error(f"Could not read audio from {args.audio}")
        return 1

    if args.engine == 'bpm':
        detector = create_detector(sample_rate, 'bpm', min_bpm=args.min_bpm, max_bpm=args.max_bpm,
                                   apply_bit_reversal=args.reindex)
    else:
        detector = create_detector(sample_rate, 'energy')

    beats = detector.detect(samples)

    for beat in beats:
        print(f"Beat at: {beat.time_offset:.3f}s\t freq: {beat.strongest_frequency:.3f}")
    if args.fps:
        print(f"Frames at {args.fps} fps: {beats.to_frames(args.fps).tolist()}")
    if args.engine == 'bpm':
        print(f"Detected BPM: {detector.bpm / 10.0:.1f}")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as error:
        logging.error(f"Fatal error: {error}")
        traceback.print_exc()
        sys.exit(1)
