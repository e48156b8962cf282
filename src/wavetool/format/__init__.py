"""Audio file formats.

The codec is chosen from the file name extension:

    +-------------------+-----------+------------------------------------+
    | extension         | read      | write                              |
    +-------------------+-----------+------------------------------------+
    | .wav              | yes       | int 8/16/32, float 32              |
    | .raw, .pcm        | yes       | int 8/16/32, float 32/64           |
    | .mp3              | yes       | via ffmpeg and a temporary WAV     |
    +-------------------+-----------+------------------------------------+

Headerless files carry no format information, so reading one needs a
:class:`~wavetool.types.RawFormat`.

Example Usage
-------------
>>> from wavetool.format import load, save
>>> from wavetool.types import SaveOptions
>>> wav = load("input.mp3")
>>> wav.convert_to_mono()
>>> save("output.wav", wav, SaveOptions(prefer_float=True, bytes_per_sample=4))
"""

from wavetool.format.loader import load
from wavetool.format.mp3 import Mp3Stream, MpegFrameHeader, decode_mp3, parse_frame_header
from wavetool.format.riff import read_wav_header, read_wav_samples, write_wav
from wavetool.format.saver import save
from wavetool.format.transcoder import encode_to_mp3

__all__ = [
    "load",
    "save",
    "read_wav_header",
    "read_wav_samples",
    "write_wav",
    "decode_mp3",
    "parse_frame_header",
    "Mp3Stream",
    "MpegFrameHeader",
    "encode_to_mp3",
]
