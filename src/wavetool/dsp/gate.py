"""Noise gate: silence the near-silent stretches of a waveform.

Runs are found on the interleaved sample stream, so lengths and positions
below are in samples (frames x channels) until they are handed to
:meth:`Waveform.silence` and :meth:`Waveform.delete`, which take frames.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from wavetool.errors import DegenerateInputError

if TYPE_CHECKING:
    from wavetool.waveform import Waveform

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.1
MIN_RUN_SECONDS_DIVISOR = 5  # Quiet runs must last at least 1/5 s
EDGE_TOLERANCE = 10  # Samples of click/pop allowed before a leading or after a trailing run


@dataclass(frozen=True)
class QuietRun:
    """A run of consecutive quiet samples."""

    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass
class GateReport:
    """What :func:`noise_gate` did."""

    runs: list[QuietRun] = field(default_factory=list)
    leading_frames_removed: int = 0
    trailing_frames_removed: int = 0

    @property
    def frames_removed(self) -> int:
        return self.leading_frames_removed + self.trailing_frames_removed


def find_quiet_runs(
    samples: NDArray[np.floating], threshold: float, min_length: int
) -> list[QuietRun]:
    """Find runs of at least ``min_length`` samples with ``|s| < threshold``."""
    quiet = np.abs(samples) < threshold
    if not quiet.any():
        return []

    # Rising and falling edges of the quiet mask
    edges = np.diff(np.concatenate(([False], quiet, [False])).astype(np.int8))
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)

    return [
        QuietRun(int(start), int(end - start))
        for start, end in zip(starts, ends, strict=True)
        if end - start >= min_length
    ]


def relative_threshold(wav: "Waveform", threshold: float) -> float:
    """Scale a threshold given as a fraction of the waveform's peak."""
    return threshold * wav.peak()


def noise_gate(
    wav: "Waveform",
    threshold: float = DEFAULT_THRESHOLD,
    trim_leading: bool = False,
    trim_trailing: bool = False,
) -> GateReport:
    """Soft-silence every quiet run of at least 0.2 seconds.

    Args:
        wav: Waveform to edit in place.
        threshold: Absolute amplitude below which a sample counts as quiet.
        trim_leading: Delete the first quiet run if it starts within the
            first 10 samples.
        trim_trailing: Delete the last quiet run if it ends within the last
            10 samples and is not also the first run.

    Returns:
        The quiet runs found and the number of frames deleted.

    Raises:
        DegenerateInputError: If ``threshold`` is not positive.
    """
    if threshold <= 0:
        raise DegenerateInputError(f"Gate threshold must be positive, got {threshold}")

    report = GateReport()
    if wav.frame_count == 0:
        return report

    channels = wav.channels
    min_length = max(1, wav.rate * channels // MIN_RUN_SECONDS_DIVISOR)
    report.runs = find_quiet_runs(wav.samples, threshold, min_length)

    for run in report.runs:
        logger.debug("Silencing %d frames at %d", run.length // channels, run.start // channels)
        wav.silence(run.start // channels, run.length // channels, soft=True)

    if not report.runs:
        return report

    total = wav.frame_count * channels
    first, last = report.runs[0], report.runs[-1]

    # Trailing goes first so the leading run's position stays valid
    if trim_trailing and last is not first and last.end >= total - EDGE_TOLERANCE:
        count = last.length // channels
        report.trailing_frames_removed = count
        logger.debug("Trimming %d trailing frames at %d", count, last.start // channels)
        wav.delete(last.start // channels, count)

    if trim_leading and first.start < EDGE_TOLERANCE:
        count = first.length // channels
        report.leading_frames_removed = count
        logger.debug("Trimming %d leading frames at %d", count, first.start // channels)
        wav.delete(first.start // channels, count)

    return report
