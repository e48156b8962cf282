import logging
import sys
from pathlib import Path
from typing import Annotated, Literal

from cyclopts import App, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress
from rich.table import Table

from wavetool.cli.graph import render_graph
from wavetool.cli.validators import (
    validate_compare_threshold,
    validate_db_level,
    validate_gate_threshold,
    validate_graph_range,
    validate_non_negative_integer,
    validate_non_negative_number,
    validate_positive_integer,
    validate_positive_number,
    validate_tremolo_depth,
    validate_unit_level,
    validate_vibrato_depth,
    validate_vibrato_width,
)
from wavetool.dsp.combine import MixTrack
from wavetool.dsp.combine import join as join_waveforms
from wavetool.dsp.combine import mix as mix_tracks
from wavetool.dsp.compare import compare as compare_waveforms
from wavetool.dsp.envelope import fade as apply_fade
from wavetool.dsp.gate import noise_gate, relative_threshold
from wavetool.dsp.modulation import tremolo as apply_tremolo
from wavetool.dsp.modulation import vibrato as apply_vibrato
from wavetool.errors import OutOfRangeError, WaveformError
from wavetool.format import load, save
from wavetool.types import BytesPerSample, SaveOptions
from wavetool.waveform import Waveform

app = App(name="wavetool", help="Offline tools for editing WAV, MP3 and raw PCM audio")
console = Console()

FloatOption = Annotated[bool, Parameter(name=["--float"])]


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(message, style="bold red")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(message, style="bold green")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(message, style="bold yellow")


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; DEBUG with --verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_with_progress(path: Path) -> Waveform:
    with Progress(console=console, transient=True) as progress:
        task = progress.add_task(f"Loading {path.name}", total=1.0)
        wav = load(path, progress=lambda fraction: progress.update(task, completed=fraction))
    console.print(
        f"Loaded {wav.frame_count} samples ({wav.duration:.2f} seconds) "
        f"from {path} at {wav.rate} Hz"
    )
    return wav


def save_with_progress(path: Path, wav: Waveform, options: SaveOptions) -> None:
    with Progress(console=console, transient=True) as progress:
        task = progress.add_task(f"Saving {path.name}", total=1.0)
        save(
            path, wav, options, progress=lambda fraction: progress.update(task, completed=fraction)
        )
    print_success(f"Saved {wav.frame_count} samples to {path} at {wav.rate} Hz")


def save_options(use_float: bool, bytes_per_sample: int) -> SaveOptions:
    options = SaveOptions(prefer_float=use_float, bytes_per_sample=bytes_per_sample)
    console.print(
        f"  Preferred sample type: {'float' if use_float else 'integer'}, "
        f"size: {bytes_per_sample} bytes"
    )
    return options


@app.command
def info(
    file: Path,
    verbose: bool = False,
) -> int:
    """
    Display information about an audio file.

    Parameters
    ----------
    file: Path
        The .wav, .mp3, .raw or .pcm file to inspect
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    try:
        wav = load_with_progress(file)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1

    table = Table(show_header=True, header_style="bold")
    table.add_column("Property", justify="left")
    table.add_column("Value", justify="right")
    table.add_row("Samples", str(wav.frame_count))
    table.add_row("Rate", f"{wav.rate} Hz")
    table.add_row("Channels", str(wav.channels))
    table.add_row("Duration", f"{wav.duration:.3f} s")
    table.add_row("Bytes", str(wav.total_bytes))
    table.add_row("Lowest sample", f"{wav.lowest_sample():.6f}")
    table.add_row("Highest sample", f"{wav.highest_sample():.6f}")
    console.print(table)
    return 0


@app.command
def convert(
    input_path: Path,
    output_path: Path,
    channels: Literal[1, 2] | None = None,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Convert an audio file to another format, optionally changing its channel layout.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write; its extension selects the format
    channels: Literal[1, 2] | None
        Convert to mono (1) or stereo (2)
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    console.print(f"Converting {input_path} to {output_path}")
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        if channels == 1:
            console.print(f"Converting {wav.channels} channels to mono")
            wav.convert_to_mono()
        elif channels == 2:
            console.print(f"Converting {wav.channels} channels to stereo")
            wav.convert_to_stereo()
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def normalize(
    input_path: Path,
    output_path: Path,
    db: Annotated[float, Parameter(validator=validate_db_level)] = -1.0,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Even out the loudness of an audio file with automatic gain control.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    db: float
        Peak ceiling in dBFS, between -100 and 0
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        console.print(f"Normalizing to {db:.1f} dB")
        wav.normalize(db)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def gate(
    input_path: Path,
    output_path: Path,
    threshold: Annotated[float, Parameter(validator=validate_gate_threshold)] = 0.1,
    trim_start: bool = False,
    trim_end: bool = False,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Silence the near-silent parts of an audio file (noise gate).

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    threshold: float
        Quiet level as a fraction of the file's peak amplitude
    trim_start: bool
        Remove silence from the start of the file
    trim_end: bool
        Remove silence from the end of the file
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        level = relative_threshold(wav, threshold)
        if level <= 0:
            print_warning("Input is entirely silent; nothing to gate")
            save_with_progress(output_path, wav, options)
            return 0

        report = noise_gate(wav, level, trim_leading=trim_start, trim_trailing=trim_end)
        for run in report.runs:
            console.print(
                f"Silenced {run.length // wav.channels} samples at {run.start // wav.channels}"
            )
        if report.leading_frames_removed:
            console.print(f"Deleted {report.leading_frames_removed} samples from start")
        if report.trailing_frames_removed:
            console.print(f"Deleted {report.trailing_frames_removed} samples from end")
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def rate(
    input_path: Path,
    output_path: Path,
    hz: Annotated[int, Parameter(validator=validate_positive_integer)],
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Change the sample rate of an audio file, keeping its duration.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    hz: int
        New sample rate in Hz
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        console.print(f"Resampling from {wav.rate} Hz to {hz} Hz")
        wav.resample(hz)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def stretch(
    input_path: Path,
    output_path: Path,
    multiplier: Annotated[float, Parameter(validator=validate_positive_number)],
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Stretch or squeeze an audio file in time, changing its pitch with it.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    multiplier: float
        Duration multiplier; 2.0 doubles the length, 0.5 halves it
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        new_frame_count = max(1, int(wav.frame_count * multiplier))
        console.print(f"Stretching {wav.frame_count} samples to {new_frame_count}")
        wav.stretch(new_frame_count)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def trim(
    input_path: Path,
    output_path: Path,
    start: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    count: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    ms: bool = False,
    from_end: bool = False,
    invert: bool = False,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Delete part of an audio file, or with --invert keep only that part.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    start: int
        First sample of the section (ignored with --from-end)
    count: int
        Length of the section; 0 means up to the end of the file
    ms: bool
        Interpret start and count as milliseconds instead of samples
    from_end: bool
        Measure the section back from the end of the file
    invert: bool
        Keep the section and delete everything else
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        if ms:
            start = wav.time_to_index(start / 1000.0)
            count = wav.time_to_index(count / 1000.0)

        frame_count = wav.frame_count
        if from_end:
            start = frame_count - count
        if not 0 <= start < frame_count:
            raise OutOfRangeError(f"Starting sample {start} is out of range")
        if count == 0:
            count = frame_count - start

        if invert:
            console.print(f"Keeping {count} samples starting at {start}")
            if start > 0:
                wav.delete(0, start)
            if wav.frame_count > count:
                wav.delete(count, wav.frame_count - count)
        else:
            console.print(f"Deleting {count} samples starting at {start}")
            wav.delete(start, count)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def extend(
    input_path: Path,
    output_path: Path,
    begin: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    end: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    ms: bool = False,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Add silence to the beginning and/or end of an audio file.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    begin: int
        Amount of silence to add before the audio
    end: int
        Amount of silence to add after the audio
    ms: bool
        Interpret begin and end as milliseconds instead of samples
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        if ms:
            begin = wav.time_to_index(begin / 1000.0)
            end = wav.time_to_index(end / 1000.0)

        if begin > 0:
            console.print(f"Inserting {begin} samples at beginning")
            wav.insert(0, begin)
        if end > 0:
            console.print(f"Inserting {end} samples at end")
            wav.insert(wav.frame_count, end)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def fade(
    input_path: Path,
    output_path: Path,
    fade_in: Annotated[float, Parameter(validator=validate_non_negative_number)] = 0.0,
    fade_out: Annotated[float, Parameter(validator=validate_non_negative_number)] = 0.0,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Add a linear fade-in and/or fade-out to an audio file.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    fade_in: float
        Fade-in length in seconds
    fade_out: float
        Fade-out length in seconds
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        console.print(f"Fading in {fade_in:.2f} s, out {fade_out:.2f} s")
        apply_fade(wav, fade_in, fade_out)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def join(
    output_path: Path,
    *input_paths: Path,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Join audio files end to end into one file.

    Parameters
    ----------
    output_path: Path
        The file to write
    input_paths: Path
        The files to join, in order
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    if not input_paths:
        print_error("Error: No input files given")
        return 1

    options = save_options(use_float, bytes_per_sample)
    try:
        waveforms = [load_with_progress(path) for path in input_paths]
        joined = join_waveforms(waveforms)
        console.print(
            f"Joined {len(waveforms)} files: {joined.channels} channels at {joined.rate} Hz"
        )
        save_with_progress(output_path, joined, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


def parse_mix_input(text: str) -> tuple[Path, float, float]:
    """Split ``file[,volume[,start]]`` into its parts.

    Volume defaults to 0.5 and start to 0 seconds.

    Raises:
        ValueError: If there are too many parts or a number does not parse.
    """
    parts = text.split(",")
    if len(parts) > 3 or not parts[0]:
        raise ValueError(f"Expected file[,volume[,start]], got {text!r}")
    volume = float(parts[1]) if len(parts) > 1 else 0.5
    start = float(parts[2]) if len(parts) > 2 else 0.0
    return Path(parts[0]), volume, start


@app.command
def mix(
    output_path: Path,
    *inputs: str,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Mix audio files together on a common timeline.

    Parameters
    ----------
    output_path: Path
        The file to write
    inputs: str
        Files to mix, each as file[,volume[,start]]; volume is 0 to 1
        (default 0.5) and start is in seconds (default 0)
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    if not inputs:
        print_error("Error: No input files given")
        return 1
    try:
        specs = [parse_mix_input(text) for text in inputs]
    except ValueError as e:
        print_error(f"Error: {e}")
        return 1

    options = save_options(use_float, bytes_per_sample)
    try:
        tracks = []
        for path, volume, start in specs:
            console.print(f"  {path}: volume {volume:g}, start {start:g} s")
            tracks.append(MixTrack(load_with_progress(path), volume, start))
        mixed = mix_tracks(tracks)
        console.print(
            f"Mixed {len(tracks)} files: {mixed.duration:.2f} seconds, "
            f"{mixed.channels} channels at {mixed.rate} Hz"
        )
        save_with_progress(output_path, mixed, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def compare(
    first_path: Path,
    second_path: Path,
    threshold: Annotated[float, Parameter(validator=validate_compare_threshold)] = 0.001,
    verbose: bool = False,
) -> int:
    """
    Check whether two audio files sound the same.

    Exits with 0 when they match, 1 when they differ and 2 on error.

    Parameters
    ----------
    first_path: Path
        The first file
    second_path: Path
        The second file
    threshold: float
        Largest mean absolute sample difference that still counts as a match
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    try:
        first = load_with_progress(first_path)
        second = load_with_progress(second_path)
        result = compare_waveforms(first, second, threshold)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 2

    if result.mean_difference is not None:
        console.print(f"Mean absolute difference: {result.mean_difference:g}")
    if result.matched:
        print_success("Files match")
        return 0
    print_warning(f"Files differ: {result.reason}" if result.reason else "Files differ")
    return 1


@app.command(name="print")
def print_graph(
    file: Path,
    start: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    count: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    per_line: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    ms: bool = False,
    y_min: Annotated[float, Parameter(validator=validate_graph_range)] = -1.0,
    y_max: Annotated[float, Parameter(validator=validate_graph_range)] = 1.0,
    width: Annotated[int, Parameter(validator=validate_positive_integer)] = 60,
    verbose: bool = False,
) -> int:
    """
    Print a graph of an audio file's amplitude over time.

    Parameters
    ----------
    file: Path
        The file to draw
    start: int
        First sample to draw
    count: int
        Number of samples to draw; 0 means up to the end of the file
    per_line: int
        Samples covered by each line; 0 picks a value giving about 40 lines
    ms: bool
        Interpret start, count and per-line as milliseconds instead of samples
    y_min: float
        Amplitude at the left edge of the graph
    y_max: float
        Amplitude at the right edge of the graph
    width: int
        Width of the graph in characters
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    try:
        wav = load_with_progress(file)
        if ms:
            start = wav.time_to_index(start / 1000.0)
            count = wav.time_to_index(count / 1000.0)
            per_line = wav.time_to_index(per_line / 1000.0)
        lines = render_graph(wav, start, count, per_line, y_min, y_max, width)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1

    for line in lines:
        console.print(line, markup=False, highlight=False, soft_wrap=True)
    return 0


@app.command
def tremolo(
    input_path: Path,
    output_path: Path,
    width: Annotated[int, Parameter(validator=validate_positive_integer)],
    depth: Annotated[float, Parameter(validator=validate_tremolo_depth)],
    ms: bool = False,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Pulse the volume of an audio file (tremolo).

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    width: int
        Length of each pulse in samples
    depth: float
        How far the volume dips in each pulse, greater than 0 and at most 1
    ms: bool
        Interpret width as milliseconds instead of samples
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        if ms:
            width = wav.time_to_index(width / 1000.0)
        console.print(f"Applying tremolo: width {width} samples, depth {depth:g}")
        apply_tremolo(wav, width, depth)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


@app.command
def vibrato(
    input_path: Path,
    output_path: Path,
    width: Annotated[float, Parameter(validator=validate_vibrato_width)],
    depth: Annotated[float, Parameter(validator=validate_vibrato_depth)],
    wet: Annotated[float, Parameter(validator=validate_unit_level)] = 1.0,
    dry: Annotated[float, Parameter(validator=validate_unit_level)] = 0.0,
    use_float: FloatOption = False,
    bytes_per_sample: BytesPerSample = 2,
    verbose: bool = False,
) -> int:
    """
    Add vibrato, flanging or tape-flutter effects to an audio file.

    Parameters
    ----------
    input_path: Path
        The file to read
    output_path: Path
        The file to write
    width: float
        Length of each vibrato cycle in seconds
    depth: float
        Depth of the effect in milliseconds
    wet: float
        Level of the modulated signal, 0 to 1
    dry: float
        Level of the original signal mixed back in, 0 to 1
    use_float: bool
        Write floating-point samples where the format allows it
    bytes_per_sample: BytesPerSample
        Size of each written sample in bytes
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    options = save_options(use_float, bytes_per_sample)
    try:
        wav = load_with_progress(input_path)
        console.print(f"Applying vibrato: width {width:g} s, depth {depth:g} ms")
        apply_vibrato(wav, width, depth, wet, dry)
        save_with_progress(output_path, wav, options)
    except WaveformError as e:
        print_error(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(app())
