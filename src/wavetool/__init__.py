"""wavetool - Offline PCM audio editing toolkit.

This package loads WAV, MP3 and headerless PCM audio into an in-memory
:class:`Waveform`, edits it sample-accurately, and writes it back out.

Example Usage
-------------
>>> from wavetool import load, save
>>> from wavetool.dsp.gate import noise_gate
>>> wav = load("voice.wav")
>>> wav.resample(22050)
>>> report = noise_gate(wav, threshold=0.05, trim_leading=True)
>>> wav.normalize(-1.0)
>>> save("voice_clean.wav", wav)
"""

from wavetool.errors import (
    BufferTooSmallError,
    CancelledByCallbackError,
    DegenerateInputError,
    ExternalToolError,
    IoFailureError,
    NotAWaveFileError,
    OutOfRangeError,
    UnsupportedExtensionError,
    UnsupportedFormatError,
    WaveformError,
)
from wavetool.format import load, save
from wavetool.types import RawFormat, SampleEncoding, SaveOptions, WavInfo
from wavetool.waveform import Waveform

__version__ = "0.1.0"

__all__ = [
    # Data model
    "Waveform",
    "WavInfo",
    "SampleEncoding",
    "RawFormat",
    "SaveOptions",
    # File I/O
    "load",
    "save",
    # Errors
    "WaveformError",
    "NotAWaveFileError",
    "UnsupportedFormatError",
    "IoFailureError",
    "BufferTooSmallError",
    "OutOfRangeError",
    "DegenerateInputError",
    "UnsupportedExtensionError",
    "CancelledByCallbackError",
    "ExternalToolError",
]
