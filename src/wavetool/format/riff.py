"""RIFF/WAVE container reading and writing.

The reader accepts a deliberately small subset of RIFF:

    +----------------------------------------+
    | "RIFF" <u32 size> "WAVE"               |
    +----------------------------------------+
    | optional "JUNK" chunk                  |
    +----------------------------------------+
    | "fmt " chunk (>= 16 byte record)       |
    +----------------------------------------+
    | any other chunks, skipped by length    |
    +----------------------------------------+
    | "data" chunk (interleaved samples)     |
    +----------------------------------------+

Nothing may sit between the RIFF header and ``fmt `` except a single JUNK
chunk. The writer only ever produces ``fmt `` and ``data``.
"""

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from wavetool.errors import (
    BufferTooSmallError,
    DegenerateInputError,
    IoFailureError,
    NotAWaveFileError,
    UnsupportedFormatError,
)
from wavetool.types import MAX_CHANNELS, WavInfo

logger = logging.getLogger(__name__)

# FourCC identifiers
RIFF_ID = b"RIFF"
WAVE_ID = b"WAVE"
JUNK_ID = b"JUNK"
FMT_ID = b"fmt "
DATA_ID = b"data"

# Audio format codes
WAVE_FORMAT_PCM = 1
WAVE_FORMAT_IEEE_FLOAT = 3

FORMAT_RECORD = struct.Struct("<HHIIHH")
SUPPORTED_BITS = (8, 16, 32)
MAX_READ_CHANNELS = 5


@dataclass(frozen=True)
class FormatRecord:
    """The fixed part of a ``fmt `` chunk."""

    format_tag: int
    channels: int
    rate: int
    bytes_per_second: int
    block_align: int
    bits_per_sample: int

    @property
    def is_float(self) -> bool:
        return self.format_tag == WAVE_FORMAT_IEEE_FLOAT


def _open(path: Path, mode: str) -> BinaryIO:
    try:
        return open(path, mode)
    except OSError as e:
        raise IoFailureError(f"Cannot open file: {path}") from e


def _read_u32(f: BinaryIO) -> int | None:
    raw = f.read(4)
    if len(raw) < 4:
        return None
    return struct.unpack("<I", raw)[0]


def _read_signature(f: BinaryIO) -> None:
    """Validate the 16-byte prologue, leaving the file at the fmt chunk size."""
    signature = f.read(16)
    if len(signature) < 16:
        raise NotAWaveFileError("File too small to be a valid WAV file")

    if signature[:4] != RIFF_ID:
        raise NotAWaveFileError(f"Expected 'RIFF', got {signature[:4]!r}")

    if signature[8:12] != WAVE_ID:
        raise NotAWaveFileError(f"Expected 'WAVE', got {signature[8:12]!r}")

    tag = signature[12:16]
    if tag == JUNK_ID:
        junk_size = _read_u32(f)
        if junk_size is None:
            raise NotAWaveFileError("Truncated JUNK chunk")
        logger.debug("Skipping %d byte JUNK chunk", junk_size)
        f.seek(junk_size, 1)
        tag = f.read(4)

    if tag != FMT_ID:
        raise NotAWaveFileError(f"Expected 'fmt ', got {tag!r}")


def _read_format_record(f: BinaryIO) -> FormatRecord:
    """Read and check the fmt chunk, leaving the file at the next chunk."""
    chunk_size = _read_u32(f)
    if chunk_size is None:
        raise UnsupportedFormatError("Truncated fmt chunk")
    if chunk_size < FORMAT_RECORD.size:
        raise UnsupportedFormatError(f"fmt chunk too small ({chunk_size} bytes)")

    raw = f.read(FORMAT_RECORD.size)
    if len(raw) < FORMAT_RECORD.size:
        raise UnsupportedFormatError("Truncated fmt chunk")
    record = FormatRecord(*FORMAT_RECORD.unpack(raw))

    if record.bits_per_sample not in SUPPORTED_BITS:
        raise UnsupportedFormatError(f"Unsupported bit depth: {record.bits_per_sample}")
    if record.format_tag not in (WAVE_FORMAT_PCM, WAVE_FORMAT_IEEE_FLOAT):
        raise UnsupportedFormatError(f"Unsupported format tag: {record.format_tag}")
    if not 1 <= record.channels <= MAX_READ_CHANNELS:
        raise UnsupportedFormatError(f"Unsupported channel count: {record.channels}")

    f.seek(chunk_size - FORMAT_RECORD.size, 1)
    return record


def _find_data_chunk(f: BinaryIO) -> int:
    """Skip chunks until ``data`` and return its size, or 0 if there is none."""
    while len(tag := f.read(4)) == 4:
        chunk_size = _read_u32(f)
        if chunk_size is None:
            raise UnsupportedFormatError(f"Truncated header for chunk {tag!r}")

        if tag == DATA_ID:
            return chunk_size

        logger.debug("Skipping %r chunk of %d bytes", tag, chunk_size)
        f.seek(chunk_size, 1)

    logger.debug("No data chunk found")
    return 0


def _read_headers(f: BinaryIO) -> tuple[FormatRecord, int]:
    _read_signature(f)
    record = _read_format_record(f)
    data_size = _find_data_chunk(f)
    return record, data_size


def read_wav_header(path: Path | str) -> WavInfo:
    """Read the format description of a WAV file.

    Args:
        path: Path to the WAV file.

    Returns:
        The format and frame count of the file's sample data.

    Raises:
        NotAWaveFileError: If the RIFF/WAVE/fmt signature is wrong.
        UnsupportedFormatError: If the encoding is outside the supported set.
        IoFailureError: If the file cannot be read.
    """
    path = Path(path)

    with _open(path, "rb") as f:
        try:
            record, data_size = _read_headers(f)
        except OSError as e:
            raise IoFailureError(f"Error reading {path}") from e

    frame_count = data_size // record.channels // (record.bits_per_sample // 8)
    info = WavInfo(
        rate=record.rate,
        channels=record.channels,
        bits=record.bits_per_sample,
        is_float=record.is_float,
        frame_count=frame_count,
    )
    logger.debug("Read WAV header from %s: %s", path, info)
    return info


def read_wav_samples(path: Path | str, buffer_size: int) -> bytes:
    """Read the raw bytes of a WAV file's data chunk.

    Args:
        path: Path to the WAV file.
        buffer_size: Number of bytes the caller is prepared to accept.

    Returns:
        Exactly the bytes declared by the data chunk.

    Raises:
        BufferTooSmallError: If the data chunk is larger than ``buffer_size``.
        IoFailureError: If the file cannot be read in full.
    """
    path = Path(path)

    with _open(path, "rb") as f:
        try:
            _, data_size = _read_headers(f)
            if buffer_size < data_size:
                raise BufferTooSmallError(
                    f"Buffer of {buffer_size} bytes cannot hold {data_size} bytes of samples"
                )
            data = f.read(data_size)
        except OSError as e:
            raise IoFailureError(f"Error reading {path}") from e

    if len(data) != data_size:
        raise IoFailureError(f"Expected {data_size} bytes of samples, read {len(data)}")
    return data


def build_wav(info: WavInfo, samples: bytes) -> bytes:
    """Build a complete WAV file image.

    Args:
        info: Format of the sample data; ``frame_count`` sets the data size.
        samples: Raw interleaved sample bytes (at least ``info.buffer_size``).

    Returns:
        The WAV file as bytes.
    """
    if info.frame_count < 1:
        raise DegenerateInputError("Cannot write a WAV file without samples")
    if info.bits not in SUPPORTED_BITS:
        raise UnsupportedFormatError(f"Unsupported bit depth: {info.bits}")
    if info.is_float and info.bits != 32:
        raise UnsupportedFormatError(f"Floating-point WAV must be 32-bit, got {info.bits}")
    if not 1 <= info.channels <= MAX_CHANNELS:
        raise UnsupportedFormatError(f"Unsupported channel count: {info.channels}")

    data_size = info.buffer_size
    if len(samples) < data_size:
        raise BufferTooSmallError(
            f"Sample buffer has {len(samples)} bytes, {data_size} are required"
        )

    block_align = info.channels * (info.bits // 8)
    fmt_record = FORMAT_RECORD.pack(
        WAVE_FORMAT_IEEE_FLOAT if info.is_float else WAVE_FORMAT_PCM,
        info.channels,
        info.rate,
        info.rate * block_align,
        block_align,
        info.bits,
    )

    # Total RIFF size = file size - 8 (RIFF header)
    # 4 (WAVE) + 8+16 (fmt chunk) + 8+data_size (data chunk)
    riff_size = 4 + 8 + FORMAT_RECORD.size + 8 + data_size

    wav = bytearray()

    # RIFF header
    wav.extend(RIFF_ID)
    wav.extend(struct.pack("<I", riff_size))
    wav.extend(WAVE_ID)

    # fmt chunk
    wav.extend(FMT_ID)
    wav.extend(struct.pack("<I", FORMAT_RECORD.size))
    wav.extend(fmt_record)

    # data chunk
    wav.extend(DATA_ID)
    wav.extend(struct.pack("<I", data_size))
    wav.extend(samples[:data_size])

    return bytes(wav)


def write_wav(path: Path | str, info: WavInfo, samples: bytes) -> None:
    """Write sample bytes to a WAV file.

    The file image is built in memory first, so an invalid format never
    creates a file and a failed write never leaves a partial one behind.

    Raises:
        UnsupportedFormatError: If ``info`` describes an unwritable format.
        BufferTooSmallError: If ``samples`` is shorter than ``info.buffer_size``.
        IoFailureError: If the file cannot be written.
    """
    path = Path(path)
    image = build_wav(info, samples)

    with _open(path, "wb") as f:
        try:
            f.write(image)
        except OSError as e:
            f.close()
            path.unlink(missing_ok=True)
            raise IoFailureError(f"Error writing {path}") from e

    logger.debug("Wrote %d bytes to %s (%s)", len(image), path, info)
