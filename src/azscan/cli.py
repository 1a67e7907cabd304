"""
Command Line Interface

CLI for recording and screening coughs.
"""

import json
import logging
import queue
import sys
import threading
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.progress_bar import ProgressBar

from azscan.capture.audio_capture import CaptureFinished, FinalizedRecording
from azscan.exceptions import CaptureError
from azscan.pipeline.config import PipelineConfig, load_config
from azscan.pipeline.pipeline import Pipeline, ScreeningOutcome, ScreeningStatus

app = typer.Typer(
    name="azscan",
    help="Cough recording and respiratory screening",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

BAR_STYLES = {
    "Normal": "green",
    "Bronquite": "yellow",
    "Pneumonia": "red",
}
DISCLAIMER = "This result is only an aid. Consult a health professional."

_log_level_override: Optional[str] = None


def setup_logging(level: str) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load(config: Optional[Path]) -> PipelineConfig:
    """Load config (or defaults) and configure logging from it."""
    if config:
        if not config.exists():
            console.print(f"[red]Error: Config file not found: {config}[/red]")
            raise typer.Exit(1)
        pipeline_config = load_config(config)
    else:
        pipeline_config = PipelineConfig()

    setup_logging(_log_level_override or pipeline_config.logging.level)
    return pipeline_config


def _parse_device(device: Optional[str]) -> int | str | None:
    if device is None:
        return None
    return int(device) if device.isdigit() else device


def render_outcome(outcome: ScreeningOutcome) -> None:
    """Print the prediction as one percentage bar per class."""
    if outcome.status == ScreeningStatus.NO_COUGH:
        console.print(
            "[yellow]No cough detected. Try again closer to the microphone.[/yellow]"
        )
        return

    if outcome.status == ScreeningStatus.FAILED:
        console.print("[yellow]Analysis unavailable, showing an empty result.[/yellow]")

    prediction = outcome.prediction
    percentages = prediction.percentages()

    console.print("\n[bold]Analysis Result[/bold]\n")
    for label, value in prediction.scores.items():
        console.print(f"{label}: {percentages[label]}%")
        console.print(
            ProgressBar(
                total=1.0,
                completed=min(max(value, 0.0), 1.0),
                width=40,
                complete_style=BAR_STYLES[label],
            )
        )
    console.print(f"\n[dim]{DISCLAIMER}[/dim]")


class _StdinLines:
    """Single stdin reader per ``record`` run.

    Both the stop key and the analyze-or-repeat answer are read from here.
    """

    def __init__(self, stdin):
        self._lines: "queue.Queue[Optional[str]]" = queue.Queue()
        self.at_eof = False
        threading.Thread(
            target=self._read, args=(stdin,), name="StdinReader", daemon=True
        ).start()

    def _read(self, stdin) -> None:
        for line in iter(stdin.readline, ""):
            self._lines.put(line.rstrip("\r\n"))
        self._lines.put(None)

    def readline(self, timeout: Optional[float] = None) -> Optional[str]:
        """Next line, or None on timeout or once input has ended."""
        if self.at_eof:
            return None
        try:
            line = self._lines.get(timeout=timeout)
        except queue.Empty:
            return None
        if line is None:
            self.at_eof = True
        return line


def _confirm(lines: _StdinLines, text: str, default: bool = True) -> bool:
    suffix = " [Y/n]: " if default else " [y/N]: "
    while True:
        console.print(text + suffix, end="", markup=False, highlight=False)
        answer = lines.readline()
        if answer is None:
            console.print()
            raise typer.Abort()
        answer = answer.strip().lower()
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        console.print("Error: invalid input", markup=False)


def _record_once(pipeline: Pipeline, lines: _StdinLines) -> Optional[FinalizedRecording]:
    """Record until Enter is pressed or the buffer fills."""
    with Progress(
        TextColumn("[red]● REC[/red]"),
        BarColumn(bar_width=40, complete_style="red"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("level", total=1.0)
        while True:
            for event in pipeline.capture.dispatch_events():
                if isinstance(event, CaptureFinished):
                    return event.recording
                progress.update(task, completed=event.amplitude)
            if lines.readline(timeout=0.05) is not None:
                return pipeline.stop_recording()
            if lines.at_eof:
                # No stop key can arrive; wait for the buffer to fill
                time.sleep(0.05)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override the configured log level"
    ),
) -> None:
    """Cough recording and respiratory screening."""
    global _log_level_override
    _log_level_override = log_level


@app.command()
def record(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    duration: Optional[float] = typer.Option(
        None, "--duration", "-d", help="Max duration (seconds)"
    ),
    device: Optional[str] = typer.Option(None, "--device", help="Input device index or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Analyze without asking"),
) -> None:
    """Record a cough from the microphone and analyze it."""
    pipeline_config = _load(config)
    if duration is not None:
        pipeline_config.capture.max_duration_seconds = duration
    if device is not None:
        pipeline_config.capture.device = _parse_device(device)

    pipeline = Pipeline(pipeline_config)
    lines = _StdinLines(sys.stdin)

    try:
        while True:
            console.print("[bold]Press Enter to stop. Cough close to the microphone.[/bold]")
            try:
                pipeline.start_recording()
            except CaptureError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(1)

            recording = _record_once(pipeline, lines)
            if recording is None:
                console.print("[red]Error: No audio was recorded[/red]")
                raise typer.Exit(1)

            if not recording.cough_detected:
                render_outcome(pipeline.analyze(recording))
                raise typer.Exit(0)

            console.print(
                f"[green]Sound captured[/green] "
                f"[dim]({recording.duration_seconds:.1f}s)[/dim]"
            )
            if yes or _confirm(lines, "Analyze this recording? (No records again)"):
                break

        with console.status("Analyzing..."):
            outcome = pipeline.analyze(recording)
        render_outcome(outcome)
    except KeyboardInterrupt:
        console.print("\n[yellow]Recording cancelled[/yellow]")
        raise typer.Exit(0)
    finally:
        pipeline.close()


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Audio file to screen"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", help="Cough peak threshold (0-1)"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output JSON file"),
) -> None:
    """Screen a pre-recorded audio file."""
    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    pipeline_config = _load(config)
    if threshold is not None:
        pipeline_config.capture.cough_threshold = threshold

    pipeline = Pipeline(pipeline_config)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Analyzing audio...", total=None)
            outcome = pipeline.process_file(input_file)
    except RuntimeError as e:
        console.print(f"[red]Error: Could not read {input_file}: {e}[/red]")
        raise typer.Exit(1)
    finally:
        pipeline.close()

    if output:
        output.write_text(json.dumps(outcome.to_dict(), indent=2))
        console.print(f"[green]Output saved to: {output}[/green]")

    render_outcome(outcome)


@app.command()
def devices() -> None:
    """List available audio input devices."""
    from azscan.capture import CaptureController

    devices = CaptureController.list_devices()

    if not devices:
        console.print("[yellow]No audio input devices found[/yellow]")
        raise typer.Exit(0)

    console.print("[bold]Available audio input devices:[/bold]\n")
    for device in devices:
        console.print(
            f"  [{device['index']}] {device['name']}"
            f"\n      Channels: {device['channels']}, "
            f"Sample Rate: {device['sample_rate']} Hz"
        )


@app.command("config")
def show_config(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Show the effective configuration."""
    pipeline_config = _load(config)
    console.print(pipeline_config.to_yaml(), highlight=False, markup=False, soft_wrap=True)


@app.command()
def version() -> None:
    """Show version information."""
    from azscan import __version__

    console.print(f"azscan version {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
