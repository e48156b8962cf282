from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, TypeAlias

import numpy as np
from numpy.typing import NDArray

SampleArray: TypeAlias = NDArray[np.float32]

ProgressCallback: TypeAlias = Callable[[float], bool | None]
"""Receives a completion value in [0, 1]; returning False cancels."""

BytesPerSample = Literal[1, 2, 4, 8]

DEFAULT_RATE = 48000
MAX_CHANNELS = 256


@dataclass(frozen=True)
class SampleEncoding:
    """How a single sample is stored on disk."""

    bit_depth: int
    is_float: bool = False

    @property
    def bytes_per_sample(self) -> int:
        return self.bit_depth // 8

    @property
    def supported(self) -> bool:
        if self.is_float:
            return self.bit_depth in (32, 64)
        return self.bit_depth in (8, 16, 32)

    @classmethod
    def from_bytes(cls, bytes_per_sample: int, is_float: bool) -> "SampleEncoding":
        return cls(bytes_per_sample * 8, is_float)

    def __str__(self) -> str:
        kind = "float" if self.is_float else "int"
        return f"{self.bit_depth}-bit {kind}"


@dataclass(frozen=True)
class WavInfo:
    """Format description of a WAV file's sample data."""

    rate: int = DEFAULT_RATE
    channels: int = 1
    bits: int = 16
    is_float: bool = False
    frame_count: int = 0

    @property
    def encoding(self) -> SampleEncoding:
        return SampleEncoding(self.bits, self.is_float)

    @property
    def buffer_size(self) -> int:
        """Bytes needed to hold the sample data."""
        return self.channels * (self.bits // 8) * self.frame_count


@dataclass(frozen=True)
class RawFormat:
    """Out-of-band description of a headerless PCM file."""

    rate: int = 22500
    bytes_per_sample: int = 2
    channels: int = 2
    is_float: bool = False

    @property
    def encoding(self) -> SampleEncoding:
        return SampleEncoding.from_bytes(self.bytes_per_sample, self.is_float)


@dataclass(frozen=True)
class SaveOptions:
    """Encoding preferences for formats that offer a choice."""

    prefer_float: bool = False
    bytes_per_sample: int = 2

    @property
    def encoding(self) -> SampleEncoding:
        return SampleEncoding.from_bytes(self.bytes_per_sample, self.prefer_float)
