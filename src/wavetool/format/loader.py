"""Load a waveform from any supported file, picking the codec by extension."""

import logging
from pathlib import Path

import numpy as np

from wavetool.errors import IoFailureError, UnsupportedExtensionError, UnsupportedFormatError
from wavetool.format.codec import decode_samples
from wavetool.format.mp3 import decode_mp3
from wavetool.format.progress import block_ranges, report_progress
from wavetool.format.raw import raw_frame_count, read_raw_pcm
from wavetool.format.riff import read_wav_header, read_wav_samples
from wavetool.types import ProgressCallback, RawFormat, SampleArray, SampleEncoding
from wavetool.waveform import Waveform

logger = logging.getLogger(__name__)

WAV_EXTENSIONS = (".wav",)
MP3_EXTENSIONS = (".mp3",)
RAW_EXTENSIONS = (".raw", ".pcm")


def load(
    path: Path | str,
    progress: ProgressCallback | None = None,
    raw_format: RawFormat | None = None,
) -> Waveform:
    """Load an audio file.

    Args:
        path: File to read; ``.wav``, ``.mp3``, ``.raw`` or ``.pcm``
            (case-insensitive).
        progress: Called with the completion fraction; returning False
            cancels the load.
        raw_format: Layout of headerless files. Defaults to
            :class:`RawFormat` defaults.

    Returns:
        The fully loaded waveform.

    Raises:
        UnsupportedExtensionError: If the extension is not recognized. The
            filesystem is not touched in that case.
        CancelledByCallbackError: If ``progress`` returned False.
        WaveformError: Any codec failure.
    """
    path = Path(path)
    extension = path.suffix.lower()

    if extension in WAV_EXTENSIONS:
        return _load_wav(path, progress)
    if extension in MP3_EXTENSIONS:
        return _load_mp3(path, progress)
    if extension in RAW_EXTENSIONS:
        return _load_raw(path, progress, raw_format or RawFormat())
    raise UnsupportedExtensionError(path)


def _decode(
    data: bytes, encoding: SampleEncoding, progress: ProgressCallback | None
) -> SampleArray:
    """Decode sample bytes block by block, reporting progress after each block."""
    width = encoding.bytes_per_sample
    total = len(data) // width
    samples = np.empty(total, dtype=np.float32)
    view = memoryview(data)

    for start, stop in block_ranges(total):
        samples[start:stop] = decode_samples(view[start * width : stop * width], encoding)
        report_progress(progress, stop / total)

    if total == 0:
        report_progress(progress, 1.0)
    return samples


def _load_wav(path: Path, progress: ProgressCallback | None) -> Waveform:
    info = read_wav_header(path)
    data = read_wav_samples(path, info.buffer_size)
    logger.debug("Loading %s as WAV (%s, %d channels)", path, info.encoding, info.channels)

    samples = _decode(data, info.encoding, progress)
    wav = Waveform(info.rate, info.channels)
    wav.populate(info.frame_count, info.channels, samples)
    return wav


def _load_raw(path: Path, progress: ProgressCallback | None, raw_format: RawFormat) -> Waveform:
    encoding = raw_format.encoding
    if not encoding.supported:
        raise UnsupportedFormatError(f"Cannot read raw PCM as {encoding}")

    channels = raw_format.channels
    bytes_per_sample = raw_format.bytes_per_sample
    frame_count = raw_frame_count(path, channels, bytes_per_sample)
    buffer_size = frame_count * channels * bytes_per_sample
    data = read_raw_pcm(path, frame_count, channels, bytes_per_sample, buffer_size)
    logger.debug("Loading %s as raw PCM (%s, %d channels)", path, encoding, channels)

    samples = _decode(data, encoding, progress)
    wav = Waveform(raw_format.rate, channels)
    wav.populate(frame_count, channels, samples)
    return wav


def _load_mp3(path: Path, progress: ProgressCallback | None) -> Waveform:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise IoFailureError(f"Error reading {path}") from e

    stream = decode_mp3(data, progress)
    if stream.rate == 0:
        raise UnsupportedFormatError(f"No decodable MPEG audio frames in {path}")
    logger.debug("Loading %s as MP3 (%d Hz, %d channels)", path, stream.rate, stream.channels)

    samples = decode_samples(stream.pcm, SampleEncoding(16))
    wav = Waveform(stream.rate, stream.channels)
    wav.populate(stream.frame_count, stream.channels, samples)
    return wav
