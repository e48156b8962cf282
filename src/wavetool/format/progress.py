"""Cooperative progress reporting shared by the loaders and savers."""

import logging

from wavetool.errors import CancelledByCallbackError
from wavetool.types import ProgressCallback

logger = logging.getLogger(__name__)

# Sample conversion reports once per block of this many samples
PROGRESS_BLOCK = 65536


def report_progress(progress: ProgressCallback | None, fraction: float) -> None:
    """Pass ``fraction`` (clamped to [0, 1]) to the callback.

    Raises:
        CancelledByCallbackError: If the callback returns ``False``.
    """
    if progress is None:
        return
    fraction = min(max(fraction, 0.0), 1.0)
    if progress(fraction) is False:
        logger.debug("Cancelled by progress callback at %.3f", fraction)
        raise CancelledByCallbackError(f"Cancelled at {fraction:.0%}")


def block_ranges(total: int, block: int = PROGRESS_BLOCK):
    """Yield ``(start, stop)`` pairs covering ``range(total)`` in blocks."""
    for start in range(0, total, block):
        yield start, min(start + block, total)
