"""Text rendering of a waveform's amplitude over time.

Each row covers a run of frames and marks the span between the lowest and
highest sample in that run (over all channels):

            -1                   1
             +-------------------+
           0 |      #######      |
         100 |    ###########    |
             +-------------------+
            -1                   1
"""

from wavetool.errors import DegenerateInputError, OutOfRangeError
from wavetool.waveform import Waveform

ROW_PREFIX = 11  # width of the "%8d |" prefix plus the closing border
DEFAULT_ROWS = 40


def render_graph(
    wav: Waveform,
    start: int = 0,
    count: int = 0,
    per_line: int = 0,
    y_min: float = -1.0,
    y_max: float = 1.0,
    width: int = 60,
) -> list[str]:
    """Render the amplitude graph of a range of frames as lines of text.

    Args:
        wav: Waveform to draw
        start: First frame to draw
        count: Number of frames; 0 or too many means up to the end
        per_line: Frames per row; 0 picks enough to fill about 40 rows
        y_min: Amplitude at the left edge
        y_max: Amplitude at the right edge
        width: Total width in characters, prefix included

    Raises:
        OutOfRangeError: If ``start`` is not a frame of the waveform.
        DegenerateInputError: If ``y_min`` is not below ``y_max``.
    """
    frame_count = wav.frame_count
    if not 0 <= start < frame_count:
        raise OutOfRangeError(f"Starting sample {start} out of range")
    if y_min >= y_max:
        raise DegenerateInputError(f"Empty amplitude range [{y_min}, {y_max}]")

    if count <= 0 or start + count > frame_count:
        count = frame_count - start
    if per_line <= 0:
        per_line = max(1, -(-count // DEFAULT_ROWS))
    if width > ROW_PREFIX:
        width -= ROW_PREFIX
    span = y_max - y_min

    labels = f"{y_min:10g}" + " " * width + f"{y_max:g}"
    border = " " * 9 + "+" + "-" * width + "+"
    lines = [labels, border]

    frames = wav.frames()
    for offset in range(0, count, per_line):
        first = start + offset
        chunk = frames[first : start + min(offset + per_line, count)]
        lowest = max(float(chunk.min()), y_min)
        highest = min(float(chunk.max()), y_max)

        right = min(max(int((highest - y_min) * width / span), 0), width - 1)
        left = min(max(int((lowest - y_min) * width / span), 0), right)
        bar = " " * left + "#" * (right - left + 1) + " " * (width - right - 1)
        lines.append(f"{first:8d} |{bar}|")

    lines.extend([border, labels])
    return lines
