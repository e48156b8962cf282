import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from wavetool.errors import DegenerateInputError, OutOfRangeError
from wavetool.waveform import Waveform

logger = logging.getLogger(__name__)

MAX_MIX_START = 1000.0  # seconds


@dataclass(frozen=True)
class MixTrack:
    """One input of a mix: its audio, gain, and offset in seconds."""

    waveform: Waveform
    volume: float = 0.5
    start: float = 0.0


def _harmonize(waveforms: Sequence[Waveform]) -> list[Waveform]:
    """Copies of ``waveforms`` sharing the highest rate and one channel layout.

    When the channel counts differ every copy is converted to stereo.
    """
    rate = max(wav.rate for wav in waveforms)
    mixed_layouts = len({wav.channels for wav in waveforms}) > 1

    parts = []
    for wav in waveforms:
        part = wav.copy()
        if part.rate != rate:
            part.resample(rate)
        if mixed_layouts:
            part.convert_to_stereo()
        parts.append(part)
    return parts


def join(waveforms: Sequence[Waveform]) -> Waveform:
    """Concatenate waveforms end to end into a new waveform.

    Every input is brought to the highest sample rate among them. When the
    channel counts differ, every input is converted to stereo first. The
    inputs themselves are left untouched.

    Args:
        waveforms: Waveforms in playback order

    Returns:
        The joined waveform

    Raises:
        DegenerateInputError: If ``waveforms`` is empty.
        UnsupportedFormatError: If channel counts differ and one input has
            more than two channels.
    """
    if not waveforms:
        raise DegenerateInputError("Nothing to join")

    parts = _harmonize(waveforms)
    rate = parts[0].rate
    channels = parts[0].channels
    joined = Waveform(rate, channels)
    samples = np.concatenate([part.samples for part in parts])
    joined.populate(samples.size // channels, channels, samples)

    logger.debug(
        "Joined %d waveforms: %d frames, %d channels at %d Hz",
        len(parts),
        joined.frame_count,
        channels,
        rate,
    )
    return joined


def mix(tracks: Sequence[MixTrack]) -> Waveform:
    """Overlay tracks on a common timeline into a new waveform.

    Rates and channel layouts are brought together the same way as in
    :func:`join`. The result lasts until the latest ``start + duration``
    among the tracks. Each output sample is the sum of the overlapping input
    samples scaled by their track volume, clipped to [-1, 1].

    Args:
        tracks: Tracks to mix; volumes in [0, 1], starts in [0, 1000) seconds

    Returns:
        The mixed waveform

    Raises:
        DegenerateInputError: If ``tracks`` is empty.
        OutOfRangeError: If a volume or start is outside its range.
        UnsupportedFormatError: If channel counts differ and one input has
            more than two channels.
    """
    if not tracks:
        raise DegenerateInputError("Nothing to mix")
    for track in tracks:
        if not 0.0 <= track.volume <= 1.0:
            raise OutOfRangeError(f"Mix volume must be between 0 and 1, got {track.volume}")
        if not 0.0 <= track.start < MAX_MIX_START:
            raise OutOfRangeError(
                f"Mix start must be at least 0 and less than {MAX_MIX_START:g} "
                f"seconds, got {track.start}"
            )

    parts = _harmonize([track.waveform for track in tracks])
    rate = parts[0].rate
    channels = parts[0].channels
    total_seconds = max(track.start + part.duration for track, part in zip(tracks, parts))
    frame_count = int(total_seconds * rate)

    mixed = np.zeros((frame_count, channels), dtype=np.float64)
    for track, part in zip(tracks, parts):
        offset = int(track.start * rate)
        length = min(part.frame_count, frame_count - offset)
        if length <= 0:
            continue
        mixed[offset : offset + length] += part.frames()[:length] * track.volume
        logger.debug(
            "Mixed %d frames at frame %d, volume %.2f", length, offset, track.volume
        )

    result = Waveform(rate, channels)
    result.populate(frame_count, channels, np.clip(mixed, -1.0, 1.0))
    logger.debug(
        "Mixed %d tracks: %d frames, %d channels at %d Hz",
        len(tracks),
        frame_count,
        channels,
        rate,
    )
    return result
