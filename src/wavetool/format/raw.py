"""Headerless (raw) PCM file I/O.

A raw file is nothing but interleaved samples, so the rate, channel count,
sample size and integer/float flag must be supplied by the caller
(see :class:`wavetool.types.RawFormat`). The frame count follows from the
file size; trailing bytes that do not fill a whole frame are ignored.
"""

import logging
from pathlib import Path

from wavetool.errors import (
    BufferTooSmallError,
    DegenerateInputError,
    IoFailureError,
    UnsupportedFormatError,
)
from wavetool.types import MAX_CHANNELS

logger = logging.getLogger(__name__)


def raw_file_size(path: Path | str) -> int:
    """Return the size of a file in bytes.

    Raises:
        IoFailureError: If the file cannot be accessed.
    """
    path = Path(path)
    try:
        return path.stat().st_size
    except OSError as e:
        raise IoFailureError(f"Cannot access file: {path}") from e


def raw_frame_count(path: Path | str, channels: int, bytes_per_sample: int) -> int:
    """Number of whole frames stored in a raw PCM file.

    Raises:
        UnsupportedFormatError: If the channel count is outside 1..256 or the
            sample size is not positive.
        DegenerateInputError: If the file is empty or shorter than one frame.
    """
    if not 1 <= channels <= MAX_CHANNELS:
        raise UnsupportedFormatError(
            f"Raw PCM channel count must be between 1 and {MAX_CHANNELS}, got {channels}"
        )
    if bytes_per_sample < 1:
        raise UnsupportedFormatError(
            f"Raw PCM sample size must be positive, got {bytes_per_sample}"
        )

    file_size = raw_file_size(path)
    if file_size < 1:
        raise DegenerateInputError(f"Raw PCM file is empty: {path}")

    frame_count = file_size // (channels * bytes_per_sample)
    if frame_count < 1:
        raise DegenerateInputError(
            f"Raw PCM file has {file_size} bytes, less than one "
            f"{channels}-channel frame of {bytes_per_sample}-byte samples"
        )
    return frame_count


def read_raw_pcm(
    path: Path | str,
    frame_count: int,
    channels: int,
    bytes_per_sample: int,
    buffer_size: int,
) -> bytes:
    """Read ``frame_count`` frames of raw sample bytes.

    Args:
        path: Path to the raw PCM file.
        frame_count: Number of frames to read.
        channels: Interleaved channel count.
        bytes_per_sample: Size of one sample in bytes.
        buffer_size: Number of bytes the caller is prepared to accept.

    Returns:
        Exactly ``frame_count * channels * bytes_per_sample`` bytes.

    Raises:
        BufferTooSmallError: If the requested data exceeds ``buffer_size``.
        IoFailureError: If the file cannot be opened or is too short.
    """
    path = Path(path)
    bytes_to_read = frame_count * channels * bytes_per_sample
    if bytes_to_read > buffer_size:
        raise BufferTooSmallError(
            f"Buffer of {buffer_size} bytes cannot hold {bytes_to_read} bytes of samples"
        )

    try:
        with open(path, "rb") as f:
            data = f.read(bytes_to_read)
    except OSError as e:
        raise IoFailureError(f"Error reading {path}") from e

    if len(data) != bytes_to_read:
        raise IoFailureError(f"Expected {bytes_to_read} bytes from {path}, read {len(data)}")

    logger.debug(
        "Read %d frames x %d channels x %d bytes from %s",
        frame_count,
        channels,
        bytes_per_sample,
        path,
    )
    return data


def write_raw_pcm(
    path: Path | str,
    frame_count: int,
    channels: int,
    bytes_per_sample: int,
    data: bytes,
) -> None:
    """Dump exactly ``frame_count * channels * bytes_per_sample`` bytes to a file.

    Raises:
        BufferTooSmallError: If ``data`` holds fewer bytes than that.
        IoFailureError: If the file cannot be written.
    """
    path = Path(path)
    bytes_to_write = frame_count * channels * bytes_per_sample
    if len(data) < bytes_to_write:
        raise BufferTooSmallError(
            f"Sample buffer has {len(data)} bytes, {bytes_to_write} are required"
        )

    try:
        with open(path, "wb") as f:
            f.write(data[:bytes_to_write])
    except OSError as e:
        path.unlink(missing_ok=True)
        raise IoFailureError(f"Error writing {path}") from e

    logger.debug("Wrote %d bytes of raw PCM to %s", bytes_to_write, path)
