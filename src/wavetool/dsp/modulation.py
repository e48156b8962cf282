import logging

import numpy as np

from wavetool.errors import DegenerateInputError, OutOfRangeError
from wavetool.waveform import Waveform

logger = logging.getLogger(__name__)


def tremolo(wav: Waveform, width: int, depth: float) -> None:
    """Pulse the volume in place with a triangular gain envelope.

    Each pulse lasts ``width`` frames. The gain dips linearly from 1 to
    ``1 - depth`` over the first half of the pulse and climbs back over the
    second half. Every channel of a frame gets the same gain.

    Args:
        wav: Waveform to edit
        width: Pulse length in frames, at least 2
        depth: How far the gain dips, in (0, 1]

    Raises:
        DegenerateInputError: If ``width`` is less than 2.
        OutOfRangeError: If ``depth`` is outside (0, 1].
    """
    if width < 2:
        raise DegenerateInputError(f"Tremolo width must be at least 2 samples, got {width}")
    if not 0.0 < depth <= 1.0:
        raise OutOfRangeError(f"Tremolo depth must be greater than 0 and at most 1, got {depth}")
    frame_count = wav.frame_count
    if frame_count == 0:
        return

    half = width // 2
    position = np.arange(frame_count, dtype=np.int64) % width
    rising = position < half
    dip = np.where(rising, position, half - 1 - (position - half)) * (depth / half)
    logger.debug("Tremolo over %d frames: width %d, depth %.3f", frame_count, width, depth)

    gain = (1.0 - dip)[:, np.newaxis]
    wav.populate(frame_count, wav.channels, wav.frames().astype(np.float64) * gain)


def vibrato(
    wav: Waveform,
    width: float,
    depth: float,
    wet: float = 1.0,
    dry: float = 0.0,
) -> None:
    """Wobble the pitch in place by reading ahead and behind along a sine.

    Output frame ``i`` takes the input frame ``i + trunc(sin(2 pi p) * d)``,
    where ``p`` is the position of ``i`` within the current cycle and ``d``
    is a quarter of ``depth`` converted to frames. Reads that would fall
    outside the waveform use frame ``i`` itself. The delayed signal is
    scaled by ``wet``, the original added on top scaled by ``dry``, and the
    sum clipped to [-1, 1].

    Args:
        wav: Waveform to edit
        width: Cycle length in seconds, in (0, 100]
        depth: Modulation depth in milliseconds, in (0, 10000]
        wet: Level of the modulated signal, in [0, 1]
        dry: Level of the original signal, in [0, 1]

    Raises:
        OutOfRangeError: If a parameter is outside its range.
        DegenerateInputError: If the cycle is shorter than one frame.
    """
    if not 0.0 < width <= 100.0:
        raise OutOfRangeError(f"Vibrato width must be in (0, 100] seconds, got {width}")
    if not 0.0 < depth <= 10000.0:
        raise OutOfRangeError(f"Vibrato depth must be in (0, 10000] ms, got {depth}")
    if not 0.0 <= wet <= 1.0 or not 0.0 <= dry <= 1.0:
        raise OutOfRangeError(f"Wet and dry levels must be in [0, 1], got {wet} and {dry}")
    frame_count = wav.frame_count
    if frame_count == 0:
        return

    cycle = wav.time_to_index(width)
    if cycle < 1:
        raise DegenerateInputError(f"Vibrato width of {width} s is shorter than one sample")
    reach = wav.time_to_index(depth / 1000.0 / 4.0)
    logger.debug("Vibrato over %d frames: cycle %d, reach %d", frame_count, cycle, reach)

    index = np.arange(frame_count, dtype=np.int64)
    phase = (index % cycle) / cycle
    source = index + np.trunc(np.sin(2.0 * np.pi * phase) * reach).astype(np.int64)
    source = np.where((source >= 0) & (source < frame_count), source, index)

    frames = wav.frames().astype(np.float64)
    out = frames[source] * wet
    if dry > 0:
        out += frames * dry
    wav.populate(frame_count, wav.channels, np.clip(out, -1.0, 1.0))
