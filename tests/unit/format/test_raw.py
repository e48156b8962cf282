"""Unit tests for headerless PCM file I/O."""

from pathlib import Path

import pytest

from wavetool.errors import (
    BufferTooSmallError,
    DegenerateInputError,
    IoFailureError,
    UnsupportedFormatError,
)
from wavetool.format.raw import raw_file_size, raw_frame_count, read_raw_pcm, write_raw_pcm


class TestRawPcm:
    """Tests for raw PCM reading and writing."""

    def test_file_size(self, tmp_path: Path) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 123)
        assert raw_file_size(path) == 123

    def test_file_size_missing(self, tmp_path: Path) -> None:
        with pytest.raises(IoFailureError):
            raw_file_size(tmp_path / "missing.raw")

    def test_frame_count_ignores_partial_frame(self, tmp_path: Path) -> None:
        """Stereo 16-bit frames are 4 bytes; 10 bytes hold 2 whole frames."""
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 10)
        assert raw_frame_count(path, channels=2, bytes_per_sample=2) == 2

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.raw"
        path.write_bytes(b"")
        with pytest.raises(DegenerateInputError):
            raw_frame_count(path, 2, 2)

    def test_less_than_one_frame(self, tmp_path: Path) -> None:
        path = tmp_path / "tiny.raw"
        path.write_bytes(b"\x00" * 3)
        with pytest.raises(DegenerateInputError):
            raw_frame_count(path, 2, 2)

    @pytest.mark.parametrize("channels", [0, -1, 257])
    def test_frame_count_invalid_channels(self, tmp_path: Path, channels: int) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 16)
        with pytest.raises(UnsupportedFormatError):
            raw_frame_count(path, channels, 2)

    def test_frame_count_invalid_sample_size(self, tmp_path: Path) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 16)
        with pytest.raises(UnsupportedFormatError):
            raw_frame_count(path, 2, 0)

    def test_read_exact_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(bytes(range(10)))
        assert read_raw_pcm(path, 2, 2, 2, buffer_size=8) == bytes(range(8))

    def test_read_buffer_too_small(self, tmp_path: Path) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 16)
        with pytest.raises(BufferTooSmallError):
            read_raw_pcm(path, 4, 2, 2, buffer_size=15)

    def test_read_short_file(self, tmp_path: Path) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 6)
        with pytest.raises(IoFailureError):
            read_raw_pcm(path, 2, 2, 2, buffer_size=8)

    def test_write_flat_dump(self, tmp_path: Path) -> None:
        path = tmp_path / "out.pcm"
        write_raw_pcm(path, 3, 1, 2, bytes(range(8)))
        assert path.read_bytes() == bytes(range(6))

    def test_write_short_buffer(self, tmp_path: Path) -> None:
        path = tmp_path / "out.pcm"
        with pytest.raises(BufferTooSmallError):
            write_raw_pcm(path, 3, 2, 2, b"\x00" * 11)
        assert not path.exists()
