"""Conversion between on-disk PCM samples and normalized float32 samples.

Supported encodings (all little-endian):

    +-------+---------+--------------------------------------+
    | bits  | kind    | decode                               |
    +-------+---------+--------------------------------------+
    | 8     | int     | unsigned, (v - 128) / 127            |
    | 16    | int     | signed, v / 32767                    |
    | 32    | int     | signed, v / 2147483647               |
    | 32    | float   | as is                                |
    | 64    | float   | narrowed to float32                  |
    +-------+---------+--------------------------------------+

Decoding never clamps. Encoding to an integer type clamps the scaled value to
the symmetric representable range first, so out-of-range floats saturate
instead of wrapping around, and then rounds it to the nearest integer rather
than truncating toward zero. Rounding makes a decode followed by an encode at
the same integer depth reproduce the original bytes exactly. Float targets
are written unclamped.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from wavetool.errors import UnsupportedFormatError
from wavetool.types import SampleEncoding

INT16_SCALE = 32767.0
INT32_SCALE = 2147483647.0
UINT8_SCALE = 127.0
UINT8_CENTER = 128.0


def decode_samples(
    data: bytes | bytearray | memoryview, encoding: SampleEncoding
) -> NDArray[np.float32]:
    """Decode a block of raw samples to float32.

    Trailing bytes that do not form a whole sample are ignored. An encoding
    outside the supported set decodes every sample to 0.0.
    """
    width = encoding.bytes_per_sample
    if width < 1:
        return np.zeros(0, dtype=np.float32)
    count = len(data) // width
    data = memoryview(data)[: count * width]

    if not encoding.supported:
        return np.zeros(count, dtype=np.float32)

    if encoding.is_float:
        return _decode_float(data, encoding.bit_depth)
    return _decode_int(data, encoding.bit_depth)


def _decode_float(data: memoryview, bit_depth: int) -> NDArray[np.float32]:
    if bit_depth == 32:
        return np.frombuffer(data, dtype="<f4").astype(np.float32)
    return np.frombuffer(data, dtype="<f8").astype(np.float32)


def _decode_int(data: memoryview, bit_depth: int) -> NDArray[np.float32]:
    if bit_depth == 8:
        samples = np.frombuffer(data, dtype=np.uint8)
        return ((samples.astype(np.float32) - UINT8_CENTER) / UINT8_SCALE).astype(np.float32)
    if bit_depth == 16:
        samples = np.frombuffer(data, dtype="<i2")
        return (samples.astype(np.float32) / np.float32(INT16_SCALE)).astype(np.float32)
    samples = np.frombuffer(data, dtype="<i4")
    return (samples.astype(np.float64) / INT32_SCALE).astype(np.float32)


def encode_samples(samples: ArrayLike, encoding: SampleEncoding) -> bytes:
    """Encode float samples to raw little-endian bytes.

    Raises:
        UnsupportedFormatError: If the encoding is not in the supported set.
    """
    if not encoding.supported:
        raise UnsupportedFormatError(f"Cannot encode samples as {encoding}")

    values = np.asarray(samples, dtype=np.float32).ravel()

    if encoding.is_float:
        dtype = "<f4" if encoding.bit_depth == 32 else "<f8"
        return values.astype(dtype).tobytes()

    scaled = values.astype(np.float64)
    if encoding.bit_depth == 8:
        scaled = np.clip(scaled * UINT8_SCALE + UINT8_CENTER, 0.0, 255.0)
        return np.rint(scaled).astype(np.uint8).tobytes()
    if encoding.bit_depth == 16:
        scaled = np.clip(scaled * INT16_SCALE, -INT16_SCALE, INT16_SCALE)
        return np.rint(scaled).astype("<i2").tobytes()
    scaled = np.clip(scaled * INT32_SCALE, -INT32_SCALE, INT32_SCALE)
    return np.rint(scaled).astype("<i4").tobytes()


def decode_sample(raw: bytes, encoding: SampleEncoding) -> float:
    """Decode one raw sample. Unsupported encodings or short input give 0.0."""
    decoded = decode_samples(raw[: encoding.bytes_per_sample], encoding)
    if decoded.size == 0:
        return 0.0
    return float(decoded[0])


def encode_sample(value: float, encoding: SampleEncoding) -> bytes:
    """Encode one float sample to its raw byte form."""
    return encode_samples([value], encoding)
