"""External MP3 encoding through ffmpeg.

MP3 encoding is not done in-process. The saver writes a temporary 16-bit
WAV and hands it to :func:`encode_to_mp3`, which shells out to ffmpeg.
Set ``WAVETOOL_FFMPEG`` to use a binary that is not on ``PATH``.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

from wavetool.errors import ExternalToolError

logger = logging.getLogger(__name__)

FFMPEG_ENV = "WAVETOOL_FFMPEG"


def find_ffmpeg() -> str:
    """Locate the ffmpeg binary.

    Raises:
        ExternalToolError: If neither ``$WAVETOOL_FFMPEG`` nor ``PATH`` has one.
    """
    configured = os.environ.get(FFMPEG_ENV)
    if configured:
        return configured

    found = shutil.which("ffmpeg")
    if found is None:
        raise ExternalToolError(f"ffmpeg not found on PATH; set {FFMPEG_ENV} to its location")
    return found


def encode_to_mp3(wav_path: Path | str, mp3_path: Path | str) -> None:
    """Encode a WAV file to MP3.

    Args:
        wav_path: Source WAV file.
        mp3_path: Destination, overwritten if present.

    Raises:
        ExternalToolError: If ffmpeg is missing or exits with an error.
    """
    cmd = [find_ffmpeg(), "-y", "-i", str(wav_path), "-acodec", "mp3", str(mp3_path)]
    logger.debug("Running %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as e:
        raise ExternalToolError(f"Could not run {cmd[0]}: {e}") from e

    if result.returncode != 0:
        raise ExternalToolError(f"{cmd[0]} exited with status {result.returncode}")
