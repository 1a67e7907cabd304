#!/usr/bin/env python3
"""
Process Audio File Example

Screens a pre-recorded cough through the same gate and prediction path the
live recorder uses.

Usage:
    python examples/process_audio_file.py <audio_file> [--output result.json]

Requirements:
    - Audio file in WAV, FLAC, or other format soundfile can read
"""

import argparse
import json
import sys
from pathlib import Path

from azscan import Pipeline, PipelineConfig, ScreeningStatus


def main():
    parser = argparse.ArgumentParser(description="Screen a cough recording")
    parser.add_argument("audio_file", type=Path, help="Audio file to process")
    parser.add_argument("--output", "-o", type=Path, help="Output JSON file")
    parser.add_argument("--config", "-c", type=Path, help="Config file")
    args = parser.parse_args()

    if not args.audio_file.exists():
        print(f"Error: File not found: {args.audio_file}")
        sys.exit(1)

    if args.config:
        pipeline = Pipeline.from_config(args.config)
    else:
        pipeline = Pipeline(PipelineConfig())

    print(f"Processing: {args.audio_file}")

    try:
        outcome = pipeline.process_file(args.audio_file)
    finally:
        pipeline.close()

    json_output = json.dumps(outcome.to_dict(), indent=2)

    if args.output:
        args.output.write_text(json_output)
        print(f"Output saved to: {args.output}")
    else:
        print(json_output)

    if outcome.status == ScreeningStatus.NO_COUGH:
        print("\n--- No cough detected, nothing was sent ---")
        return

    for label, pct in outcome.prediction.percentages().items():
        print(f"  {label}: {pct}%")


if __name__ == "__main__":
    main()
