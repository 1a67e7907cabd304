#!/usr/bin/env python3
"""
Live Capture Example

Records a cough from the microphone, prints the level while recording and
screens the result without blocking the main thread.

Usage:
    python examples/live_capture.py [--duration 10] [--list-devices]

Requirements:
    - Microphone access
    - sounddevice installed
"""

import argparse
import json

from azscan import Pipeline, PipelineConfig
from azscan.capture import AmplitudeUpdate, CaptureController, CaptureFinished


def list_devices():
    """List available audio input devices."""
    devices = CaptureController.list_devices()

    print("Available audio input devices:")
    print("-" * 50)
    for device in devices:
        print(f"  [{device['index']}] {device['name']}")
        print(f"      Channels: {device['channels']}, Sample Rate: {device['sample_rate']} Hz")
    print()


def main():
    parser = argparse.ArgumentParser(description="Live cough capture and screening")
    parser.add_argument("--duration", "-d", type=float, default=20.0,
                        help="Max recording duration in seconds")
    parser.add_argument("--list-devices", action="store_true",
                        help="List audio devices and exit")
    args = parser.parse_args()

    if args.list_devices:
        list_devices()
        return

    config = PipelineConfig()
    config.capture.max_duration_seconds = args.duration
    pipeline = Pipeline(config)

    print("=" * 60)
    print("AzScan Live Capture")
    print("=" * 60)
    print(f"Max duration: {args.duration}s")
    print("Cough now. Press Ctrl+C to stop early.")
    print("-" * 60)

    try:
        pipeline.start_recording()
        recording = None
        try:
            for event in pipeline.capture.stream():
                if isinstance(event, AmplitudeUpdate):
                    marker = "*" if event.cough_detected else " "
                    print(f"\r{marker} {'#' * int(event.amplitude * 40):<40}", end="", flush=True)
                elif isinstance(event, CaptureFinished):
                    recording = event.recording
        except KeyboardInterrupt:
            recording = pipeline.stop_recording()

        print()
        print("-" * 60)
        if recording is None:
            print("Nothing was recorded.")
            return

        print(f"Stopped: {recording.stop_reason.value} ({recording.duration_seconds:.1f}s)")
        outcome = pipeline.analyze_async(recording).result()
        print(json.dumps(outcome.to_dict(), indent=2))
    finally:
        pipeline.close()


if __name__ == "__main__":
    main()
