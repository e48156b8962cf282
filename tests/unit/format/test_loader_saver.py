"""Unit tests for extension-based loading and saving."""

from pathlib import Path

import numpy as np
import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from numpy.testing import assert_allclose, assert_array_equal

from wavetool.errors import (
    CancelledByCallbackError,
    DegenerateInputError,
    ExternalToolError,
    UnsupportedExtensionError,
    UnsupportedFormatError,
)
from wavetool.format import load, save
from wavetool.format.riff import read_wav_header
from wavetool.format.saver import wav_encoding
from wavetool.types import RawFormat, SampleEncoding, SaveOptions
from wavetool.waveform import Waveform

# Largest decode/encode error per bit depth, in full-scale units
QUANTIZATION = {1: 1 / 127, 2: 1 / 32767, 4: 1e-6}


def make_waveform(frame_count: int = 100, channels: int = 2, rate: int = 44100) -> Waveform:
    rng = np.random.default_rng(1234)
    wav = Waveform(rate, channels)
    wav.populate(frame_count, channels, rng.uniform(-1, 1, frame_count * channels))
    return wav


class TestDispatch:
    """Tests for codec selection by extension."""

    def test_unknown_extension_does_not_touch_filesystem(self, tmp_path: Path) -> None:
        missing = tmp_path / "no_such_dir" / "file.ogg"
        with pytest.raises(UnsupportedExtensionError) as e:
            load(missing)
        assert e.value.path == missing

        with pytest.raises(UnsupportedExtensionError):
            save(missing, make_waveform())
        assert not missing.parent.exists()

    def test_no_extension(self, tmp_path: Path) -> None:
        with pytest.raises(UnsupportedExtensionError):
            save(tmp_path / "audio", make_waveform())

    @pytest.mark.parametrize("name", ["LOUD.WAV", "Mixed.Wav", "x.RAW", "y.Pcm"])
    def test_extension_case_insensitive(self, tmp_path: Path, name: str) -> None:
        path = tmp_path / name
        wav = make_waveform()
        save(path, wav)
        assert load(path).frame_count == wav.frame_count


class TestWavRoundTrip:
    """save() then load() preserves rate, length and samples."""

    @pytest.mark.parametrize(
        "options",
        [
            SaveOptions(False, 1),
            SaveOptions(False, 2),
            SaveOptions(False, 4),
            SaveOptions(True, 4),
        ],
    )
    @pytest.mark.parametrize("channels", [1, 2, 5])
    def test_round_trip(self, tmp_path: Path, options: SaveOptions, channels: int) -> None:
        wav = make_waveform(frame_count=257, channels=channels, rate=22050)
        path = tmp_path / "rt.wav"

        save(path, wav, options)
        loaded = load(path)

        assert loaded.rate == 22050
        assert loaded.channels == channels
        assert loaded.frame_count == 257
        tolerance = 0.0 if options.prefer_float else QUANTIZATION[options.bytes_per_sample]
        assert_allclose(loaded.samples, wav.samples, atol=tolerance)

    @given(values=st.lists(st.integers(-32767, 32767), min_size=2, max_size=400))
    @settings(max_examples=25, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_int16_same_depth_exact(self, tmp_path: Path, values: list[int]) -> None:
        """Samples that came from a 16-bit file are written back unchanged."""
        wav = Waveform(8000, 1)
        wav.populate(len(values), 1, np.array(values, dtype=np.float32) / np.float32(32767))
        first = tmp_path / "first.wav"
        second = tmp_path / "second.wav"

        save(first, wav)
        save(second, load(first))

        assert first.read_bytes() == second.read_bytes()

    def test_float64_written_as_float32(self, tmp_path: Path) -> None:
        path = tmp_path / "f.wav"
        save(path, make_waveform(), SaveOptions(prefer_float=True, bytes_per_sample=8))

        info = read_wav_header(path)
        assert info.is_float
        assert info.bits == 32

    def test_unwritable_encodings(self) -> None:
        with pytest.raises(UnsupportedFormatError):
            wav_encoding(SaveOptions(prefer_float=False, bytes_per_sample=8))
        with pytest.raises(UnsupportedFormatError):
            wav_encoding(SaveOptions(prefer_float=True, bytes_per_sample=2))
        assert wav_encoding(SaveOptions(True, 8)) == SampleEncoding(32, is_float=True)

    def test_empty_waveform_refused(self, tmp_path: Path) -> None:
        with pytest.raises(DegenerateInputError):
            save(tmp_path / "empty.wav", Waveform())
        assert not (tmp_path / "empty.wav").exists()


class TestRaw:
    """Tests for headerless files through the dispatcher."""

    def test_default_format(self, tmp_path: Path) -> None:
        """Defaults are 22500 Hz stereo 16-bit integer."""
        path = tmp_path / "a.raw"
        path.write_bytes(np.array([0, 32767, -32767, 0, 16384, 0], dtype="<i2").tobytes())

        wav = load(path)

        assert wav.rate == 22500
        assert wav.channels == 2
        assert wav.frame_count == 3
        assert wav.get_sample(0, 1) == pytest.approx(1.0)
        assert wav.get_sample(1, 0) == pytest.approx(-1.0)

    @pytest.mark.parametrize("bytes_per_sample", [4, 8])
    def test_float_round_trip(self, tmp_path: Path, bytes_per_sample: int) -> None:
        wav = make_waveform(channels=1)
        path = tmp_path / "f.pcm"
        save(path, wav, SaveOptions(prefer_float=True, bytes_per_sample=bytes_per_sample))

        fmt = RawFormat(rate=44100, bytes_per_sample=bytes_per_sample, channels=1, is_float=True)
        loaded = load(path, raw_format=fmt)

        assert path.stat().st_size == wav.frame_count * bytes_per_sample
        assert_array_equal(loaded.samples, wav.samples)

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.raw"
        path.write_bytes(b"")
        with pytest.raises(DegenerateInputError):
            load(path)

    def test_unsupported_raw_format(self, tmp_path: Path) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 12)
        with pytest.raises(UnsupportedFormatError):
            load(path, raw_format=RawFormat(bytes_per_sample=3))

    def test_zero_channel_raw_format(self, tmp_path: Path) -> None:
        path = tmp_path / "a.raw"
        path.write_bytes(b"\x00" * 12)
        with pytest.raises(UnsupportedFormatError):
            load(path, raw_format=RawFormat(channels=0))


class TestProgress:
    """Tests for progress reporting and cancellation."""

    def test_fractions_non_decreasing_and_complete(self, tmp_path: Path) -> None:
        path = tmp_path / "big.wav"
        save(path, make_waveform(frame_count=100_000))

        fractions: list[float] = []
        load(path, progress=fractions.append)

        assert len(fractions) > 1
        assert fractions == sorted(fractions)
        assert all(0.0 <= f <= 1.0 for f in fractions)
        assert fractions[-1] == 1.0

    def test_cancel_load(self, tmp_path: Path) -> None:
        path = tmp_path / "a.wav"
        save(path, make_waveform(frame_count=100_000))

        with pytest.raises(CancelledByCallbackError):
            load(path, progress=lambda fraction: fraction < 0.5)

    def test_cancel_save_writes_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "a.wav"
        with pytest.raises(CancelledByCallbackError):
            save(path, make_waveform(), progress=lambda fraction: False)
        assert not path.exists()

    def test_none_continues(self, tmp_path: Path) -> None:
        path = tmp_path / "a.wav"
        save(path, make_waveform(), progress=lambda fraction: None)
        assert path.exists()


class TestMp3:
    """Tests for MP3 loading and saving through the dispatcher."""

    def test_save_uses_temporary_16bit_wav(self, tmp_path: Path) -> None:
        calls: list[tuple[Path, Path]] = []

        def fake_encoder(wav_path: Path, mp3_path: Path) -> None:
            calls.append((wav_path, mp3_path))
            info = read_wav_header(wav_path)
            assert info.bits == 16
            assert not info.is_float
            mp3_path.write_bytes(b"fake mp3")

        out = tmp_path / "song.mp3"
        save(out, make_waveform(), SaveOptions(True, 4), mp3_encoder=fake_encoder)

        assert calls == [(tmp_path / "song.mp3.wav", out)]
        assert out.read_bytes() == b"fake mp3"
        assert not (tmp_path / "song.mp3.wav").exists()

    def test_encoder_failure_propagates_and_cleans_up(self, tmp_path: Path) -> None:
        def failing_encoder(wav_path: Path, mp3_path: Path) -> None:
            raise ExternalToolError("encoder exploded")

        with pytest.raises(ExternalToolError):
            save(tmp_path / "song.mp3", make_waveform(), mp3_encoder=failing_encoder)
        assert list(tmp_path.iterdir()) == []

    def test_load_without_frames(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.mp3"
        path.write_bytes(b"\x00" * 2048)
        with pytest.raises(UnsupportedFormatError):
            load(path)
