"""MPEG audio Layer III decoding.

Frames are located by parsing their 4-byte headers:

    byte 0     byte 1     byte 2     byte 3
    11111111   111VVLLx   BBBBSSPx   MMxxxxxx

    V version, L layer, B bitrate index, S sample rate index,
    P padding, M channel mode

The sample data itself is decoded by libsndfile (through mpg123) using
:mod:`soundfile`, one header-declared frame at a time, so a cancelled decode
stops at a frame boundary.
"""

import io
import logging
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
import soundfile as sf

from wavetool.errors import UnsupportedFormatError
from wavetool.format.progress import report_progress
from wavetool.types import ProgressCallback

logger = logging.getLogger(__name__)

ID3V2_ID = b"ID3"
ID3V2_HEADER_SIZE = 10

MPEG1 = 3
MPEG2 = 2
MPEG25 = 0
LAYER_III = 1
MODE_MONO = 3

# kbit/s by bitrate index; index 0 is free format, 15 is invalid
_BITRATES_V1 = (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320)
_BITRATES_V2 = (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160)

_SAMPLE_RATES = {
    MPEG1: (44100, 48000, 32000),
    MPEG2: (22050, 24000, 16000),
    MPEG25: (11025, 12000, 8000),
}


@dataclass(frozen=True)
class MpegFrameHeader:
    """A parsed Layer III frame header."""

    offset: int
    version: int
    bitrate: int
    sample_rate: int
    padding: bool
    channel_mode: int

    @property
    def channels(self) -> int:
        return 1 if self.channel_mode == MODE_MONO else 2

    @property
    def samples_per_frame(self) -> int:
        return 1152 if self.version == MPEG1 else 576

    @property
    def frame_bytes(self) -> int:
        """Length of the whole frame, header included."""
        coefficient = 144 if self.version == MPEG1 else 72
        return coefficient * self.bitrate * 1000 // self.sample_rate + int(self.padding)


@dataclass
class Mp3Stream:
    """Decoded PCM, interleaved little-endian int16."""

    rate: int = 0
    channels: int = 0
    pcm: bytes = b""

    @property
    def frame_count(self) -> int:
        if self.channels < 1:
            return 0
        return len(self.pcm) // (2 * self.channels)


def parse_frame_header(data: bytes, offset: int = 0) -> MpegFrameHeader | None:
    """Parse a Layer III frame header at ``offset``.

    Returns None when the bytes there are not a valid, fixed-bitrate
    Layer III header.
    """
    if offset < 0 or offset + 4 > len(data):
        return None
    b0, b1, b2, b3 = data[offset : offset + 4]

    if b0 != 0xFF or (b1 & 0xE0) != 0xE0:
        return None

    version = (b1 >> 3) & 0x03
    layer = (b1 >> 1) & 0x03
    if version not in _SAMPLE_RATES or layer != LAYER_III:
        return None

    bitrate_index = (b2 >> 4) & 0x0F
    rate_index = (b2 >> 2) & 0x03
    if bitrate_index in (0, 15) or rate_index == 3:
        return None

    bitrates = _BITRATES_V1 if version == MPEG1 else _BITRATES_V2
    return MpegFrameHeader(
        offset=offset,
        version=version,
        bitrate=bitrates[bitrate_index],
        sample_rate=_SAMPLE_RATES[version][rate_index],
        padding=bool((b2 >> 1) & 0x01),
        channel_mode=(b3 >> 6) & 0x03,
    )


def id3v2_size(data: bytes) -> int:
    """Total length of a leading ID3v2 tag, or 0 if there is none."""
    if len(data) < ID3V2_HEADER_SIZE or data[:3] != ID3V2_ID:
        return 0
    # Tag size is a 28-bit syncsafe integer
    size = 0
    for byte in data[6:10]:
        size = (size << 7) | (byte & 0x7F)
    footer = ID3V2_HEADER_SIZE if data[5] & 0x10 else 0
    return ID3V2_HEADER_SIZE + size + footer


def iter_frames(data: bytes) -> Iterator[MpegFrameHeader]:
    """Walk the complete Layer III frames of an MP3 file image."""
    offset = id3v2_size(data)
    if offset:
        logger.debug("Skipping %d byte ID3v2 tag", offset)

    skipped = 0
    while offset + 4 <= len(data):
        header = parse_frame_header(data, offset)
        if header is None:
            offset += 1
            skipped += 1
            continue
        if offset + header.frame_bytes > len(data):
            logger.debug("Truncated frame at offset %d", offset)
            break
        if skipped:
            logger.debug("Resynced after %d bytes at offset %d", skipped, offset)
            skipped = 0
        yield header
        offset += header.frame_bytes


def decode_mp3(data: bytes, progress: ProgressCallback | None = None) -> Mp3Stream:
    """Decode an in-memory MP3 file to 16-bit PCM.

    Args:
        data: The complete file contents.
        progress: Called with the fraction of frames decoded.

    Returns:
        The decoded stream. A stream with ``rate == 0`` means no frame could
        be decoded.

    Raises:
        UnsupportedFormatError: If frames were found but the decoder rejects
            the stream or fails partway through it.
        CancelledByCallbackError: If ``progress`` returns False.
    """
    headers = list(iter_frames(data))
    stream = Mp3Stream()
    if not headers:
        logger.debug("No MPEG Layer III frames found")
        return stream

    # Start the decoder at the first frame the header walk accepted
    try:
        decoder = sf.SoundFile(io.BytesIO(data[headers[0].offset :]))
    except sf.LibsndfileError as e:
        raise UnsupportedFormatError(f"MP3 decoder rejected the stream: {e}") from e

    blocks: list[np.ndarray] = []
    with decoder:
        for index, header in enumerate(headers):
            try:
                block = decoder.read(header.samples_per_frame, dtype="int16", always_2d=True)
            except sf.LibsndfileError as e:
                raise UnsupportedFormatError(
                    f"MP3 decoder failed at frame {index} (offset {header.offset}): {e}"
                ) from e
            if len(block) == 0:
                break
            blocks.append(block)
            stream.rate = decoder.samplerate
            stream.channels = decoder.channels
            report_progress(progress, (index + 1) / len(headers))
    report_progress(progress, 1.0)

    if blocks:
        stream.pcm = np.concatenate(blocks).astype("<i2").tobytes()

    logger.debug(
        "Decoded %d MP3 frames: %d Hz, %d channels, %d sample frames",
        len(blocks),
        stream.rate,
        stream.channels,
        stream.frame_count,
    )
    return stream
