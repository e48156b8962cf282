"""Unit tests for the RIFF/WAVE reader and writer."""

import struct
from pathlib import Path

import numpy as np
import pytest
from scipy.io import wavfile

from wavetool.errors import (
    BufferTooSmallError,
    DegenerateInputError,
    IoFailureError,
    NotAWaveFileError,
    UnsupportedFormatError,
)
from wavetool.format.riff import (
    FORMAT_RECORD,
    build_wav,
    read_wav_header,
    read_wav_samples,
    write_wav,
)
from wavetool.types import WavInfo


def make_wav(
    data: bytes = b"\x00\x00" * 4,
    *,
    format_tag: int = 1,
    channels: int = 1,
    rate: int = 44100,
    bits: int = 16,
    riff_id: bytes = b"RIFF",
    wave_id: bytes = b"WAVE",
    fmt_extra: bytes = b"",
    junk: bytes | None = None,
    before_data: bytes = b"",
    data_chunk: bool = True,
) -> bytes:
    """Assemble a WAV image chunk by chunk."""
    block_align = channels * bits // 8
    fmt_record = FORMAT_RECORD.pack(
        format_tag, channels, rate, rate * block_align, block_align, bits
    )
    body = bytearray(wave_id)
    if junk is not None:
        body += b"JUNK" + struct.pack("<I", len(junk)) + junk
    body += b"fmt " + struct.pack("<I", len(fmt_record) + len(fmt_extra)) + fmt_record + fmt_extra
    body += before_data
    if data_chunk:
        body += b"data" + struct.pack("<I", len(data)) + data
    return riff_id + struct.pack("<I", len(body)) + bytes(body)


class TestReadHeader:
    """Tests for WAV header parsing."""

    def test_minimal_pcm16(self, tmp_path: Path) -> None:
        path = tmp_path / "a.wav"
        path.write_bytes(make_wav(b"\x00" * 40, channels=2, rate=22050))

        info = read_wav_header(path)

        assert info == WavInfo(rate=22050, channels=2, bits=16, is_float=False, frame_count=10)
        assert info.buffer_size == 40

    def test_float32_format_tag(self, tmp_path: Path) -> None:
        path = tmp_path / "f.wav"
        path.write_bytes(make_wav(b"\x00" * 16, format_tag=3, bits=32))

        info = read_wav_header(path)

        assert info.is_float
        assert info.bits == 32
        assert info.frame_count == 4

    def test_junk_chunk_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "junk.wav"
        path.write_bytes(make_wav(b"\x01\x00" * 3, junk=b"\xaa" * 28))

        assert read_wav_header(path).frame_count == 3
        assert read_wav_samples(path, 6) == b"\x01\x00" * 3

    def test_extended_fmt_chunk_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "ext.wav"
        path.write_bytes(make_wav(b"\x02\x00" * 2, fmt_extra=b"\x00\x00"))

        assert read_wav_header(path).frame_count == 2
        assert read_wav_samples(path, 4) == b"\x02\x00" * 2

    def test_unknown_chunks_before_data_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "list.wav"
        list_chunk = b"LIST" + struct.pack("<I", 8) + b"INFOabcd"
        path.write_bytes(make_wav(b"\x03\x00" * 5, before_data=list_chunk))

        assert read_wav_header(path).frame_count == 5

    def test_missing_data_chunk_means_zero_frames(self, tmp_path: Path) -> None:
        path = tmp_path / "nodata.wav"
        path.write_bytes(make_wav(data_chunk=False))

        assert read_wav_header(path).frame_count == 0


class TestCorruptionRejection:
    """Malformed or unsupported files are refused."""

    def test_not_riff(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.wav"
        path.write_bytes(make_wav(riff_id=b"RIFX"))
        with pytest.raises(NotAWaveFileError):
            read_wav_header(path)

    def test_not_wave(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.wav"
        path.write_bytes(make_wav(wave_id=b"AVI "))
        with pytest.raises(NotAWaveFileError):
            read_wav_header(path)

    def test_fmt_not_first(self, tmp_path: Path) -> None:
        """Only a JUNK chunk may come before fmt."""
        image = make_wav()
        image = image[:12] + b"LIST" + struct.pack("<I", 4) + b"abcd" + image[12:]
        path = tmp_path / "bad.wav"
        path.write_bytes(image)
        with pytest.raises(NotAWaveFileError):
            read_wav_header(path)

    def test_truncated_prologue(self, tmp_path: Path) -> None:
        path = tmp_path / "short.wav"
        path.write_bytes(b"RIFF\x00\x00")
        with pytest.raises(NotAWaveFileError):
            read_wav_header(path)

    def test_truncated_format_record(self, tmp_path: Path) -> None:
        path = tmp_path / "short.wav"
        path.write_bytes(make_wav()[:30])
        with pytest.raises(UnsupportedFormatError):
            read_wav_header(path)

    @pytest.mark.parametrize("bits", [4, 24, 64])
    def test_unsupported_bit_depth(self, tmp_path: Path, bits: int) -> None:
        path = tmp_path / "bits.wav"
        path.write_bytes(make_wav(bits=bits))
        with pytest.raises(UnsupportedFormatError):
            read_wav_header(path)

    def test_unsupported_format_tag(self, tmp_path: Path) -> None:
        path = tmp_path / "adpcm.wav"
        path.write_bytes(make_wav(format_tag=2))
        with pytest.raises(UnsupportedFormatError):
            read_wav_header(path)

    @pytest.mark.parametrize("channels", [0, 6])
    def test_unsupported_channel_count(self, tmp_path: Path, channels: int) -> None:
        path = tmp_path / "ch.wav"
        path.write_bytes(make_wav(channels=channels))
        with pytest.raises(UnsupportedFormatError):
            read_wav_header(path)

    def test_fmt_chunk_too_small(self, tmp_path: Path) -> None:
        image = bytearray(make_wav())
        # The fmt chunk size field follows "RIFF" size "WAVE" "fmt "
        image[16:20] = struct.pack("<I", 14)
        path = tmp_path / "small.wav"
        path.write_bytes(bytes(image))
        with pytest.raises(UnsupportedFormatError):
            read_wav_header(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(IoFailureError):
            read_wav_header(tmp_path / "missing.wav")


class TestReadSamples:
    """Tests for reading the data chunk."""

    def test_buffer_too_small(self, tmp_path: Path) -> None:
        path = tmp_path / "a.wav"
        path.write_bytes(make_wav(b"\x00" * 8))
        with pytest.raises(BufferTooSmallError):
            read_wav_samples(path, 7)

    def test_short_data_chunk(self, tmp_path: Path) -> None:
        """A data chunk declaring more bytes than the file holds fails to read."""
        path = tmp_path / "cut.wav"
        path.write_bytes(make_wav(b"\x00" * 100)[:-10])
        with pytest.raises(IoFailureError):
            read_wav_samples(path, 100)


class TestWrite:
    """Tests for the WAV writer."""

    def test_layout(self) -> None:
        info = WavInfo(rate=8000, channels=2, bits=16, frame_count=3)
        image = build_wav(info, b"\x01\x02" * 6)

        assert image[:4] == b"RIFF"
        assert struct.unpack("<I", image[4:8])[0] == len(image) - 8
        assert image[8:16] == b"WAVEfmt "
        assert struct.unpack("<I", image[16:20])[0] == 16
        tag, channels, rate, byte_rate, block_align, bits = FORMAT_RECORD.unpack(image[20:36])
        assert (tag, channels, rate, bits) == (1, 2, 8000, 16)
        assert block_align == 4
        assert byte_rate == 32000
        assert image[36:40] == b"data"
        assert struct.unpack("<I", image[40:44])[0] == 12
        assert len(image) == 44 + 12

    def test_float_tag(self) -> None:
        image = build_wav(WavInfo(bits=32, is_float=True, frame_count=1), b"\x00" * 4)
        assert FORMAT_RECORD.unpack(image[20:36])[0] == 3

    def test_zero_frames_refused(self) -> None:
        with pytest.raises(DegenerateInputError):
            build_wav(WavInfo(frame_count=0), b"")

    def test_unsupported_bits_refused(self, tmp_path: Path) -> None:
        path = tmp_path / "out.wav"
        with pytest.raises(UnsupportedFormatError):
            write_wav(path, WavInfo(bits=24, frame_count=1), b"\x00" * 3)
        assert not path.exists()

    def test_float64_refused(self) -> None:
        with pytest.raises(UnsupportedFormatError):
            build_wav(WavInfo(bits=64, is_float=True, frame_count=1), b"\x00" * 8)

    def test_short_samples_refused(self) -> None:
        with pytest.raises(BufferTooSmallError):
            build_wav(WavInfo(channels=2, frame_count=4), b"\x00" * 15)

    def test_unwritable_location(self, tmp_path: Path) -> None:
        with pytest.raises(IoFailureError):
            write_wav(tmp_path / "no" / "such" / "dir.wav", WavInfo(frame_count=1), b"\x00\x00")

    def test_scipy_reads_written_file(self, tmp_path: Path) -> None:
        samples = np.array([[0, 100], [-100, 32767], [-32767, 5]], dtype="<i2")
        path = tmp_path / "interop.wav"
        write_wav(path, WavInfo(rate=16000, channels=2, frame_count=3), samples.tobytes())

        rate, data = wavfile.read(path)

        assert rate == 16000
        np.testing.assert_array_equal(data, samples)

    def test_header_round_trip(self, tmp_path: Path) -> None:
        info = WavInfo(rate=11025, channels=3, bits=8, frame_count=7)
        path = tmp_path / "rt.wav"
        write_wav(path, info, bytes(range(21)))

        assert read_wav_header(path) == info
        assert read_wav_samples(path, info.buffer_size) == bytes(range(21))
