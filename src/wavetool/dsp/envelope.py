import logging

import numpy as np

from wavetool.errors import DegenerateInputError
from wavetool.waveform import Waveform

logger = logging.getLogger(__name__)


def fade(wav: Waveform, fade_in: float = 0.0, fade_out: float = 0.0) -> None:
    """Apply linear fade-in and fade-out ramps in place.

    Both lengths are clamped to the waveform's duration, so the two ramps
    may overlap on a short waveform. The result is clipped to [-1, 1].

    Args:
        wav: Waveform to edit
        fade_in: Fade-in length in seconds
        fade_out: Fade-out length in seconds

    Raises:
        DegenerateInputError: If either length is negative.
    """
    if fade_in < 0 or fade_out < 0:
        raise DegenerateInputError(f"Fade lengths cannot be negative: {fade_in}, {fade_out}")
    frame_count = wav.frame_count
    if frame_count == 0:
        return

    duration = wav.duration
    fade_in_frames = wav.time_to_index(min(fade_in, duration))
    fade_out_frames = wav.time_to_index(min(fade_out, duration))
    logger.debug("Fading in %d frames, out %d frames", fade_in_frames, fade_out_frames)

    gain = np.ones(frame_count, dtype=np.float64)
    position = np.arange(frame_count, dtype=np.float64)
    if fade_in_frames > 0:
        ramp = position < fade_in_frames
        gain[ramp] *= position[ramp] / fade_in_frames
    if fade_out_frames > 0:
        fade_out_start = frame_count - fade_out_frames
        ramp = position >= fade_out_start
        gain[ramp] *= 1.0 - (position[ramp] - fade_out_start) / fade_out_frames

    faded = wav.frames().astype(np.float64) * gain[:, np.newaxis]
    wav.populate(frame_count, wav.channels, np.clip(faded, -1.0, 1.0))
