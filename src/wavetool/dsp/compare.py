"""Decide whether two waveforms hold essentially the same audio."""

import logging
from dataclasses import dataclass

import numpy as np

from wavetool.errors import OutOfRangeError
from wavetool.waveform import Waveform

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.001
MIN_THRESHOLD = 1e-20
MAX_DURATION_MISMATCH = 0.1  # seconds


@dataclass(frozen=True)
class Comparison:
    """Outcome of :func:`compare`.

    ``mean_difference`` is None when the waveforms were rejected on layout
    or length alone; ``reason`` then says why.
    """

    matched: bool
    mean_difference: float | None = None
    reason: str | None = None


def compare(a: Waveform, b: Waveform, threshold: float = DEFAULT_THRESHOLD) -> Comparison:
    """Compare two waveforms sample by sample.

    Waveforms with different channel counts, or whose durations differ by
    more than 0.1 seconds, never match. Otherwise the lower-rate waveform is
    resampled (on a copy) to the higher rate, and the mean absolute
    difference over the frames both cover is tested against ``threshold``.

    Raises:
        OutOfRangeError: If ``threshold`` is outside [1e-20, 1].
    """
    if not MIN_THRESHOLD <= threshold <= 1.0:
        raise OutOfRangeError(f"Threshold must be between 1e-20 and 1, got {threshold}")

    if a.channels != b.channels:
        return Comparison(False, reason=f"channel counts differ ({a.channels} vs {b.channels})")
    if abs(a.duration - b.duration) > MAX_DURATION_MISMATCH:
        return Comparison(
            False, reason=f"durations differ ({a.duration:.3f} s vs {b.duration:.3f} s)"
        )

    if a.rate != b.rate:
        rate = max(a.rate, b.rate)
        logger.debug("Resampling to %d Hz before comparing", rate)
        if a.rate < rate:
            a = a.copy()
            a.resample(rate)
        else:
            b = b.copy()
            b.resample(rate)

    overlap = min(a.frame_count, b.frame_count)
    if overlap == 0:
        return Comparison(a.frame_count == b.frame_count, mean_difference=0.0)

    diff = np.abs(
        a.frames()[:overlap].astype(np.float64) - b.frames()[:overlap].astype(np.float64)
    )
    mean_difference = float(diff.mean())
    logger.debug("Mean absolute difference over %d frames: %g", overlap, mean_difference)
    return Comparison(mean_difference <= threshold, mean_difference=mean_difference)
