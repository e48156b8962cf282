"""In-memory PCM audio.

A :class:`Waveform` owns one contiguous float32 array of interleaved samples:

    frame 0            frame 1            frame 2
    [ch0, ch1, ...]    [ch0, ch1, ...]    [ch0, ch1, ...]

Every editing operation validates its arguments first and then either edits
that array in place or replaces it wholesale, so a failed call never leaves
a half-edited waveform. Positions and counts are in frames unless stated
otherwise.
"""

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

from wavetool.dsp.dynamics import agc_normalize
from wavetool.errors import (
    BufferTooSmallError,
    DegenerateInputError,
    OutOfRangeError,
    UnsupportedFormatError,
)
from wavetool.types import DEFAULT_RATE, MAX_CHANNELS, SampleArray

logger = logging.getLogger(__name__)

MIN_SPAN = 1e-6  # Smallest value range fit() will stretch


def _check_channels(channels: int) -> None:
    if not 1 <= channels <= MAX_CHANNELS:
        raise UnsupportedFormatError(
            f"Channel count must be between 1 and {MAX_CHANNELS}, got {channels}"
        )


class Waveform:
    """Interleaved float32 audio with a sample rate and channel count.

    Args:
        rate: Sample rate in Hz.
        channels: Number of interleaved channels, 1 to 256.
    """

    def __init__(self, rate: int = DEFAULT_RATE, channels: int = 1):
        _check_channels(channels)
        if rate < 1:
            raise DegenerateInputError(f"Sample rate must be positive, got {rate}")
        self._rate = rate
        self._channels = channels
        self._samples: SampleArray = np.zeros(0, dtype=np.float32)

    def __repr__(self) -> str:
        return (
            f"Waveform(rate={self._rate}, channels={self._channels}, "
            f"frame_count={self.frame_count})"
        )

    # Properties

    @property
    def rate(self) -> int:
        return self._rate

    @rate.setter
    def rate(self, value: int) -> None:
        if value < 1:
            raise DegenerateInputError(f"Sample rate must be positive, got {value}")
        self._rate = value

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def frame_count(self) -> int:
        return self._samples.size // self._channels

    @property
    def duration(self) -> float:
        """Length in seconds."""
        if self.frame_count == 0:
            return 0.0
        return self.frame_count / self._rate

    @property
    def total_bytes(self) -> int:
        """Size of the sample storage in bytes."""
        return self._samples.nbytes

    @property
    def samples(self) -> SampleArray:
        """Read-only view of the interleaved samples."""
        view = self._samples.view()
        view.flags.writeable = False
        return view

    def frames(self) -> NDArray[np.float32]:
        """Read-only ``(frame_count, channels)`` view of the samples."""
        view = self._samples.reshape(-1, self._channels)
        view.flags.writeable = False
        return view

    def copy(self) -> "Waveform":
        other = Waveform(self._rate, self._channels)
        other._samples = self._samples.copy()
        return other

    # Construction

    def populate(self, frame_count: int, channels: int, data: ArrayLike | None = None) -> None:
        """Replace the contents with ``frame_count`` frames.

        Args:
            frame_count: Number of frames to hold.
            channels: New channel count.
            data: Interleaved samples to copy; at least ``frame_count * channels``
                values. Zeros (silence) if omitted.

        Raises:
            UnsupportedFormatError: If ``channels`` is outside 1..256.
            BufferTooSmallError: If ``data`` holds too few values.
        """
        _check_channels(channels)
        if frame_count < 0:
            raise DegenerateInputError(f"Frame count cannot be negative, got {frame_count}")

        count = frame_count * channels
        if data is None:
            samples = np.zeros(count, dtype=np.float32)
        else:
            values = np.asarray(data, dtype=np.float32).ravel()
            if values.size < count:
                raise BufferTooSmallError(
                    f"Need {count} samples for {frame_count} frames x {channels} channels, "
                    f"got {values.size}"
                )
            samples = values[:count].copy()

        self._channels = channels
        self._samples = samples

    # Queries

    def index_to_time(self, frame: int) -> float:
        """Time in seconds of a frame index."""
        if self.frame_count == 0:
            return 0.0
        return frame / self.frame_count * self.duration

    def time_to_index(self, seconds: float) -> int:
        """Frame index nearest below a time in seconds."""
        duration = self.duration
        if seconds <= 0 or duration == 0.0:
            return 0
        return int(seconds / duration * self.frame_count)

    def get_sample(self, frame: int, channel: int = 0) -> float:
        """Value of one sample, or 0.0 if the position is out of range."""
        if not 0 <= frame < self.frame_count or not 0 <= channel < self._channels:
            return 0.0
        return float(self._samples[frame * self._channels + channel])

    def set_sample(self, frame: int, channel: int, value: float) -> None:
        if not 0 <= frame < self.frame_count or not 0 <= channel < self._channels:
            raise OutOfRangeError(
                f"Sample ({frame}, {channel}) is outside "
                f"{self.frame_count} frames x {self._channels} channels"
            )
        self._samples[frame * self._channels + channel] = value

    def highest_sample(self) -> float:
        """Largest sample value over all channels."""
        if self._samples.size == 0:
            return 0.0
        return float(self._samples.max())

    def lowest_sample(self) -> float:
        """Smallest sample value over all channels."""
        if self._samples.size == 0:
            return 0.0
        return float(self._samples.min())

    def find_highest(self, channel: int = 0) -> int:
        """Frame index of the largest sample on one channel."""
        if self._samples.size == 0 or not 0 <= channel < self._channels:
            return 0
        return int(np.argmax(self.frames()[:, channel]))

    def find_lowest(self, channel: int = 0) -> int:
        """Frame index of the smallest sample on one channel."""
        if self._samples.size == 0 or not 0 <= channel < self._channels:
            return 0
        return int(np.argmin(self.frames()[:, channel]))

    def peak(self) -> float:
        """Largest absolute sample value."""
        if self._samples.size == 0:
            return 0.0
        return float(np.abs(self._samples).max())

    # Channel layout

    def convert_to_mono(self) -> None:
        """Mix all channels down to one by averaging."""
        if self._channels == 1:
            return
        if self._samples.size == 0:
            self._channels = 1
            return

        frames = self._samples.reshape(-1, self._channels)
        mixed = frames.sum(axis=1, dtype=np.float64) / self._channels
        self._samples = np.ascontiguousarray(mixed, dtype=np.float32)
        self._channels = 1

    def convert_to_stereo(self) -> None:
        """Duplicate a mono waveform into two channels.

        Raises:
            UnsupportedFormatError: If there are more than two channels.
        """
        if self._channels == 2:
            return
        if self._channels != 1:
            raise UnsupportedFormatError(
                f"Only mono can be converted to stereo, got {self._channels} channels"
            )
        if self._samples.size > 0:
            self._samples = np.repeat(self._samples, 2)
        self._channels = 2

    # Editing

    def silence(self, start: int, count: int, soft: bool = True) -> None:
        """Zero ``count`` frames from ``start``, clamped to the waveform.

        With ``soft``, the first ``rate * channels // 10`` interleaved samples
        of the range fade linearly toward zero instead of dropping to it.
        """
        end = min(start + max(count, 0), self.frame_count)
        start = max(start, 0)
        if start >= end:
            return

        lo = start * self._channels
        hi = end * self._channels
        ramp_begin = lo
        if soft:
            ramp = self._rate * self._channels // 10
            n = min(ramp, hi - lo)
            if n > 0:
                factor = (ramp - 1 - np.arange(n, dtype=np.float64)) / ramp
                self._samples[lo : lo + n] *= factor.astype(np.float32)
                ramp_begin = lo + n
        self._samples[ramp_begin:hi] = 0.0

    def delete(self, start: int, count: int) -> None:
        """Remove ``count`` frames from ``start``. ``count`` is clamped to the end.

        Raises:
            OutOfRangeError: If ``start`` is not a frame of this waveform.
        """
        frame_count = self.frame_count
        if frame_count == 0:
            return
        if not 0 <= start < frame_count:
            raise OutOfRangeError(f"Cannot delete at frame {start} of {frame_count}")
        end = min(start + max(count, 0), frame_count)
        if end == start:
            return

        ch = self._channels
        self._samples = np.concatenate((self._samples[: start * ch], self._samples[end * ch :]))

    def insert(self, start: int, count: int) -> None:
        """Insert ``count`` silent frames before frame ``start``.

        Raises:
            OutOfRangeError: If ``start`` is past the end of the waveform.
        """
        frame_count = self.frame_count
        if count < 0:
            raise OutOfRangeError(f"Cannot insert {count} frames")
        if not 0 <= start <= frame_count or (frame_count == 0 and start != 0):
            raise OutOfRangeError(f"Cannot insert at frame {start} of {frame_count}")
        if count == 0:
            return
        if frame_count == 0:
            self.populate(count, self._channels)
            return

        ch = self._channels
        gap = np.zeros(count * ch, dtype=np.float32)
        self._samples = np.concatenate(
            (self._samples[: start * ch], gap, self._samples[start * ch :])
        )

    def stretch(self, new_frame_count: int) -> None:
        """Nearest-neighbour resize to ``new_frame_count`` frames.

        Pitch and duration change together; nothing is interpolated.

        Raises:
            DegenerateInputError: If ``new_frame_count`` is less than 1.
        """
        if new_frame_count < 1:
            raise DegenerateInputError(f"Cannot stretch to {new_frame_count} frames")
        old_frame_count = self.frame_count
        if old_frame_count == 0:
            return

        source = np.floor(
            np.arange(new_frame_count, dtype=np.float64) * old_frame_count / new_frame_count
        ).astype(np.int64)
        source = source[source < old_frame_count]

        stretched = np.zeros((new_frame_count, self._channels), dtype=np.float32)
        stretched[: source.size] = self._samples.reshape(-1, self._channels)[source]
        self._samples = stretched.ravel()

    def resample(self, rate: int) -> None:
        """Change the sample rate, stretching the frames to keep the duration.

        Raises:
            DegenerateInputError: If ``rate`` is less than 1.
        """
        if rate < 1:
            raise DegenerateInputError(f"Cannot resample to {rate} Hz")
        if self.frame_count > 0:
            new_frame_count = max(1, int(self.frame_count * rate / self._rate))
            logger.debug("Resampling %d Hz -> %d Hz (%d frames)", self._rate, rate, new_frame_count)
            self.stretch(new_frame_count)
        self._rate = rate

    # Gain

    def multiply(self, value: float) -> None:
        if self._samples.size > 0:
            self._samples *= np.float32(value)

    def add(self, value: float) -> None:
        if self._samples.size > 0:
            self._samples += np.float32(value)

    def clip(self, lo: float = -1.0, hi: float = 1.0) -> None:
        """Limit every sample to ``[lo, hi]``.

        Raises:
            DegenerateInputError: If ``lo >= hi``.
        """
        if lo >= hi:
            raise DegenerateInputError(f"Empty clip range [{lo}, {hi}]")
        np.clip(self._samples, lo, hi, out=self._samples)

    def fit(self, lo: float = -1.0, hi: float = 1.0) -> None:
        """Linearly map channel 0's value range onto ``[lo, hi]``.

        All channels get the same transform.

        Raises:
            DegenerateInputError: If either range is narrower than 1e-6.
        """
        if hi - lo < MIN_SPAN:
            raise DegenerateInputError(f"Target range [{lo}, {hi}] is too narrow")
        if self._samples.size == 0:
            return

        low = float(self._samples[self._channels * self.find_lowest(0)])
        high = float(self._samples[self._channels * self.find_highest(0)])
        span = high - low
        if span < MIN_SPAN:
            raise DegenerateInputError(f"Sample range [{low}, {high}] is too narrow to fit")

        scaled = (self._samples.astype(np.float64) - low) * ((hi - lo) / span) + lo
        self._samples = scaled.astype(np.float32)

    def normalize(self, db_level: float = -1.0) -> None:
        """Apply the chunked automatic gain control toward ``db_level`` dBFS."""
        if self._samples.size == 0:
            return
        self._samples = agc_normalize(self._samples, self._rate, self._channels, db_level)
