"""Save a waveform to any supported file, picking the codec by extension."""

import logging
from collections.abc import Callable
from pathlib import Path

from numpy.typing import NDArray

from wavetool.errors import UnsupportedExtensionError, UnsupportedFormatError
from wavetool.format.codec import encode_samples
from wavetool.format.loader import MP3_EXTENSIONS, RAW_EXTENSIONS, WAV_EXTENSIONS
from wavetool.format.progress import block_ranges, report_progress
from wavetool.format.raw import write_raw_pcm
from wavetool.format.riff import write_wav
from wavetool.format.transcoder import encode_to_mp3
from wavetool.types import ProgressCallback, SampleEncoding, SaveOptions, WavInfo
from wavetool.waveform import Waveform

logger = logging.getLogger(__name__)

Mp3Encoder = Callable[[Path, Path], None]

# Encodings the WAV writer produces
WAV_ENCODINGS = (
    SampleEncoding(8),
    SampleEncoding(16),
    SampleEncoding(32),
    SampleEncoding(32, is_float=True),
)
MP3_INTERMEDIATE = SaveOptions(prefer_float=False, bytes_per_sample=2)


def save(
    path: Path | str,
    waveform: Waveform,
    options: SaveOptions = SaveOptions(),
    progress: ProgressCallback | None = None,
    mp3_encoder: Mp3Encoder = encode_to_mp3,
) -> None:
    """Save a waveform.

    Args:
        path: Destination; ``.wav``, ``.mp3``, ``.raw`` or ``.pcm``
            (case-insensitive).
        waveform: Audio to write.
        options: Sample encoding for WAV and raw output. Ignored for MP3,
            which always goes through a 16-bit intermediate WAV.
        progress: Called with the completion fraction; returning False
            cancels before anything is written.
        mp3_encoder: Converts the intermediate WAV to MP3.

    Raises:
        UnsupportedExtensionError: If the extension is not recognized.
        UnsupportedFormatError: If the target cannot store ``options``' encoding.
        CancelledByCallbackError: If ``progress`` returned False.
        ExternalToolError: If the MP3 encoder fails.
        WaveformError: Any other codec failure.
    """
    path = Path(path)
    extension = path.suffix.lower()

    if extension in WAV_EXTENSIONS:
        _save_wav(path, waveform, options, progress)
    elif extension in RAW_EXTENSIONS:
        _save_raw(path, waveform, options, progress)
    elif extension in MP3_EXTENSIONS:
        _save_mp3(path, waveform, progress, mp3_encoder)
    else:
        raise UnsupportedExtensionError(path)


def _encode(
    samples: NDArray, encoding: SampleEncoding, progress: ProgressCallback | None
) -> bytes:
    """Encode samples block by block, reporting progress after each block."""
    total = samples.size
    blocks = []
    for start, stop in block_ranges(total):
        blocks.append(encode_samples(samples[start:stop], encoding))
        report_progress(progress, stop / total)

    if total == 0:
        report_progress(progress, 1.0)
    return b"".join(blocks)


def wav_encoding(options: SaveOptions) -> SampleEncoding:
    """The WAV encoding to use for ``options``.

    64-bit float is narrowed to 32-bit float, the only float WAV written.

    Raises:
        UnsupportedFormatError: If the WAV writer cannot produce the encoding.
    """
    encoding = options.encoding
    if encoding.is_float and encoding.bit_depth == 64:
        encoding = SampleEncoding(32, is_float=True)
    if encoding not in WAV_ENCODINGS:
        raise UnsupportedFormatError(f"Cannot write WAV samples as {encoding}")
    return encoding


def _save_wav(
    path: Path, waveform: Waveform, options: SaveOptions, progress: ProgressCallback | None
) -> None:
    encoding = wav_encoding(options)
    info = WavInfo(
        rate=waveform.rate,
        channels=waveform.channels,
        bits=encoding.bit_depth,
        is_float=encoding.is_float,
        frame_count=waveform.frame_count,
    )
    logger.debug("Saving %s as WAV (%s)", path, encoding)
    write_wav(path, info, _encode(waveform.samples, encoding, progress))


def _save_raw(
    path: Path, waveform: Waveform, options: SaveOptions, progress: ProgressCallback | None
) -> None:
    encoding = options.encoding
    if not encoding.supported:
        raise UnsupportedFormatError(f"Cannot write raw PCM as {encoding}")

    logger.debug("Saving %s as raw PCM (%s)", path, encoding)
    data = _encode(waveform.samples, encoding, progress)
    write_raw_pcm(
        path, waveform.frame_count, waveform.channels, encoding.bytes_per_sample, data
    )


def _save_mp3(
    path: Path,
    waveform: Waveform,
    progress: ProgressCallback | None,
    mp3_encoder: Mp3Encoder,
) -> None:
    intermediate = path.with_name(path.name + ".wav")
    logger.debug("Saving %s as MP3 via %s", path, intermediate)
    try:
        _save_wav(intermediate, waveform, MP3_INTERMEDIATE, progress)
        mp3_encoder(intermediate, path)
    finally:
        intermediate.unlink(missing_ok=True)
