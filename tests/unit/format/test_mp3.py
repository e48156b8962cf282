"""Unit tests for MPEG Layer III frame parsing and decoding."""

from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from wavetool.format.mp3 import (
    MPEG1,
    MPEG2,
    MPEG25,
    decode_mp3,
    id3v2_size,
    iter_frames,
    parse_frame_header,
)

requires_mp3 = pytest.mark.skipif(
    "MP3" not in sf.available_formats(), reason="libsndfile built without MP3 support"
)


def frame_header(
    version_bits: int = 0b11,
    bitrate_index: int = 9,
    rate_index: int = 0,
    padding: bool = False,
    mode: int = 0,
    layer_bits: int = 0b01,
) -> bytes:
    """Build the 4 header bytes of a frame (defaults: MPEG1 L3 128 kbit/s 44.1 kHz)."""
    b1 = 0xE0 | (version_bits << 3) | (layer_bits << 1) | 0x01
    b2 = (bitrate_index << 4) | (rate_index << 2) | (int(padding) << 1)
    b3 = mode << 6
    return bytes([0xFF, b1, b2, b3])


def frame(**kwargs) -> bytes:
    """A complete frame: header plus zero payload of the declared length."""
    header = frame_header(**kwargs)
    parsed = parse_frame_header(header)
    assert parsed is not None
    return header + b"\x00" * (parsed.frame_bytes - 4)


class TestParseFrameHeader:
    """Tests for frame header parsing."""

    def test_mpeg1_128k(self) -> None:
        header = parse_frame_header(frame_header())

        assert header is not None
        assert header.version == MPEG1
        assert header.bitrate == 128
        assert header.sample_rate == 44100
        assert header.samples_per_frame == 1152
        assert header.frame_bytes == 417
        assert header.channels == 2

    def test_padding_adds_one_byte(self) -> None:
        header = parse_frame_header(frame_header(padding=True))
        assert header is not None
        assert header.frame_bytes == 418

    def test_mono_mode(self) -> None:
        header = parse_frame_header(frame_header(mode=3))
        assert header is not None
        assert header.channels == 1

    def test_mpeg2(self) -> None:
        header = parse_frame_header(frame_header(version_bits=0b10, bitrate_index=8, rate_index=0))

        assert header is not None
        assert header.version == MPEG2
        assert header.bitrate == 64
        assert header.sample_rate == 22050
        assert header.samples_per_frame == 576
        assert header.frame_bytes == 72 * 64000 // 22050

    def test_mpeg25(self) -> None:
        header = parse_frame_header(frame_header(version_bits=0b00, bitrate_index=1, rate_index=2))

        assert header is not None
        assert header.version == MPEG25
        assert header.sample_rate == 8000
        assert header.bitrate == 8

    def test_offset(self) -> None:
        data = b"\x00\x00" + frame_header()
        assert parse_frame_header(data, 0) is None
        header = parse_frame_header(data, 2)
        assert header is not None
        assert header.offset == 2

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"bitrate_index": 0},  # free format
            {"bitrate_index": 15},
            {"rate_index": 3},
            {"version_bits": 0b01},  # reserved
            {"layer_bits": 0b11},  # layer I
            {"layer_bits": 0b10},  # layer II
        ],
    )
    def test_rejected_headers(self, kwargs: dict[str, int]) -> None:
        assert parse_frame_header(frame_header(**kwargs)) is None

    def test_no_sync(self) -> None:
        assert parse_frame_header(b"\xfe\xfb\x90\x00") is None
        assert parse_frame_header(b"\xff") is None


class TestIterFrames:
    """Tests for walking frames through a file image."""

    def test_consecutive_frames(self) -> None:
        data = frame() + frame(padding=True) + frame(mode=3)
        headers = list(iter_frames(data))

        assert [h.offset for h in headers] == [0, 417, 835]
        assert headers[2].channels == 1

    def test_resync_past_garbage(self) -> None:
        data = b"garbage!" + frame() + b"\x00\x01\x02" + frame()
        assert [h.offset for h in iter_frames(data)] == [8, 428]

    def test_id3v2_tag_skipped(self) -> None:
        # 10-byte header, syncsafe size 0x0101 = 129 bytes of payload
        tag = b"ID3\x04\x00\x00\x00\x00\x01\x01" + b"\xff\xfb" * 64 + b"\x00"
        assert id3v2_size(tag) == 139

        headers = list(iter_frames(tag + frame()))
        assert [h.offset for h in headers] == [139]

    def test_truncated_last_frame_dropped(self) -> None:
        data = frame() + frame()[:100]
        assert len(list(iter_frames(data))) == 1

    def test_no_frames(self) -> None:
        assert list(iter_frames(b"\x00" * 1000)) == []


class TestDecode:
    """Tests for decoding through libsndfile."""

    def test_no_frames_gives_empty_stream(self) -> None:
        stream = decode_mp3(b"not an mp3 at all")

        assert stream.rate == 0
        assert stream.frame_count == 0

    @requires_mp3
    def test_decode_sine(self, tmp_path: Path) -> None:
        rate = 44100
        t = np.arange(rate // 2) / rate
        tone = (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
        path = tmp_path / "tone.mp3"
        sf.write(path, np.column_stack([tone, tone]), rate, format="MP3")

        fractions: list[float] = []
        stream = decode_mp3(path.read_bytes(), progress=fractions.append)

        assert stream.rate == rate
        assert stream.channels == 2
        assert stream.frame_count > rate // 4
        assert fractions == sorted(fractions)
        assert fractions[-1] == 1.0

        pcm = np.frombuffer(stream.pcm, dtype="<i2").reshape(-1, 2)
        assert np.abs(pcm).max() > 8000

    @requires_mp3
    def test_decode_after_leading_garbage(self, tmp_path: Path) -> None:
        rate = 22050
        t = np.arange(rate // 4) / rate
        tone = (0.5 * np.sin(2 * np.pi * 330 * t)).astype(np.float32)
        path = tmp_path / "tone.mp3"
        sf.write(path, tone, rate, format="MP3")

        stream = decode_mp3(b"\x00" * 3000 + path.read_bytes())

        assert stream.rate == rate
        assert stream.channels == 1
        assert stream.frame_count > 0
