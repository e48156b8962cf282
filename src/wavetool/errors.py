"""Exception hierarchy for the waveform engine.

Every codec and waveform operation reports failure by raising one of these.
Operations check their arguments before touching any sample data, so a
raised error leaves the waveform exactly as it was.
"""


class WaveformError(Exception):
    """Base class for all waveform engine errors."""


class NotAWaveFileError(WaveformError):
    """The file does not carry a RIFF/WAVE/fmt signature."""


class UnsupportedFormatError(WaveformError):
    """Bit depth, channel count or encoding outside the supported set."""


class IoFailureError(WaveformError):
    """Open, read, write or seek failed at the OS boundary."""


class BufferTooSmallError(WaveformError):
    """A caller-provided buffer cannot hold the declared data."""


class OutOfRangeError(WaveformError):
    """A frame index or count lies outside the waveform."""


class DegenerateInputError(WaveformError):
    """The input has no usable span (zero-width range, zero frames, empty file)."""


class UnsupportedExtensionError(WaveformError):
    """No codec is registered for the file name extension."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"Unrecognized filename extension: {path}")


class CancelledByCallbackError(WaveformError):
    """A progress callback asked for the operation to stop."""


class ExternalToolError(WaveformError):
    """An external transcoder was missing or reported failure."""
