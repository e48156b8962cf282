import logging

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

MIN_DB = -100.0
MAX_DB = 0.0
CHUNK_SECONDS = 0.01
GAIN_STEP = 1.05  # Per-chunk gain rise while below the ceiling
MAX_GAIN = 100.0
PEAK_FLOOR = 0.02  # Keeps near-silent chunks from producing huge gains


def db_to_linear(db: float) -> float:
    """Convert a dBFS level to a linear amplitude.

    Args:
        db: Level in decibels relative to full scale

    Returns:
        Linear amplitude, 1.0 at 0 dB
    """
    return float(10.0 ** (db / 20.0))


def agc_normalize(
    samples: NDArray[np.floating],
    rate: int,
    channels: int,
    db_level: float = -1.0,
) -> NDArray[np.float32]:
    """Run a single-pass automatic gain control over interleaved samples.

    The signal is processed in ~10ms chunks with a gain that persists from
    chunk to chunk. A chunk whose peak is below the ceiling raises the gain
    by 5% (up to 100x) before it is applied; a chunk that would exceed the
    ceiling snaps the gain down so its peak lands on the ceiling. Release is
    therefore gradual and attack instant. The trailing partial chunk is
    processed together with the last full one.

    Args:
        samples: Interleaved input samples
        rate: Sample rate in Hz
        channels: Number of interleaved channels
        db_level: Target ceiling in dBFS, clamped to [-100, 0]

    Returns:
        New float32 array whose absolute values do not exceed the ceiling
    """
    db_level = min(max(db_level, MIN_DB), MAX_DB)
    ceiling = db_to_linear(db_level)

    out = np.asarray(samples, dtype=np.float64).copy()
    total = out.size
    if total == 0:
        return out.astype(np.float32)

    chunk_size = max(1, int(rate * CHUNK_SECONDS * channels))
    num_chunks = max(1, total // chunk_size)

    gain = 1.0
    for index in range(num_chunks):
        start = index * chunk_size
        stop = total if index == num_chunks - 1 else start + chunk_size
        chunk = out[start:stop]

        peak = float(np.abs(chunk).max())
        if peak < ceiling and gain < MAX_GAIN:
            gain = min(gain * GAIN_STEP, MAX_GAIN)
        if peak * gain > ceiling:
            gain = ceiling / max(peak, PEAK_FLOOR)
        chunk *= gain

    logger.debug(
        "AGC to %.1f dB over %d chunks of %d samples, final gain %.4f",
        db_level,
        num_chunks,
        chunk_size,
        gain,
    )
    return out.astype(np.float32)
