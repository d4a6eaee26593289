"""
smotree.timecode - Frame-accurate timecode math.

Converts between wall-clock seconds, zero-based frame numbers and
non-drop-frame ``HH:MM:SS:FF`` timecode strings for a given framerate.

Frame numbers are the canonical representation. Timecodes are derived from
them and convert back to the same frame number. Fractional framerates
(23.976, 29.97, 59.94) are treated as real rates: the ``HH:MM:SS`` part is
wall-clock time and ``FF`` counts frames inside that second, so the frame
field is always below the framerate. Drop-frame timecode is not modeled.

Every function here is pure. Frame derivation always floors, never rounds.
"""

from __future__ import annotations

import math
import re

from smotree.exceptions import InvalidArgumentError, TimecodeFormatError, TimecodeRangeError

COMMON_FRAMERATES: tuple[float, ...] = (23.976, 24.0, 25.0, 29.97, 30.0, 50.0, 59.94, 60.0)

# Products closer than this to an integer are float noise, not a sub-frame offset.
_SNAP_TOLERANCE = 1e-6

_DIGITS = re.compile(r"[0-9]+")


def _check_framerate(framerate: float) -> float:
    if isinstance(framerate, bool) or not isinstance(framerate, (int, float)):
        raise InvalidArgumentError(f"Framerate must be a number, got {framerate!r}")
    if not math.isfinite(framerate) or framerate <= 0:
        raise InvalidArgumentError(f"Framerate must be positive, got {framerate}")
    return framerate


def _check_seconds(seconds: float) -> float:
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise InvalidArgumentError(f"Seconds must be a number, got {seconds!r}")
    if not math.isfinite(seconds) or seconds < 0:
        raise InvalidArgumentError(f"Seconds must be non-negative, got {seconds}")
    return seconds


def _check_frame(frame: int) -> int:
    if isinstance(frame, bool) or not isinstance(frame, int):
        raise InvalidArgumentError(f"Frame must be an integer, got {frame!r}")
    if frame < 0:
        raise InvalidArgumentError(f"Frame must be non-negative, got {frame}")
    return frame


def _integral_rate(framerate: float) -> int | None:
    if float(framerate).is_integer():
        return int(framerate)
    return None


def _snap_floor(value: float) -> int:
    nearest = round(value)
    if abs(value - nearest) < _SNAP_TOLERANCE:
        return int(nearest)
    return math.floor(value)


def _snap_ceil(value: float) -> int:
    nearest = round(value)
    if abs(value - nearest) < _SNAP_TOLERANCE:
        return int(nearest)
    return math.ceil(value)


def seconds_to_frame(seconds: float, framerate: float) -> int:
    """Convert a playback position to the frame showing at that time.

    Args:
        seconds: Time in seconds, must be >= 0 (callers clamp first)
        framerate: Frames per second, must be > 0

    Returns:
        ``floor(seconds * framerate)``

    Raises:
        InvalidArgumentError: For negative seconds or a non-positive framerate
    """
    _check_framerate(framerate)
    _check_seconds(seconds)
    return _snap_floor(seconds * framerate)


def frame_to_seconds(frame: int, framerate: float) -> float:
    """Start time of a frame in seconds."""
    _check_framerate(framerate)
    _check_frame(frame)
    return frame / framerate


def frame_to_timecode(frame: int, framerate: float) -> str:
    """Convert a frame number to an ``HH:MM:SS:FF`` timecode.

    Hours widen past two digits for very long videos instead of wrapping.

    Args:
        frame: Zero-based frame number
        framerate: Frames per second

    Returns:
        Timecode string, every field zero-padded to at least two digits
    """
    _check_framerate(framerate)
    _check_frame(frame)

    rate = _integral_rate(framerate)
    if rate is not None:
        total_seconds, ff = divmod(frame, rate)
    else:
        total_seconds = _snap_floor(frame / framerate)
        ff = max(0, _snap_floor(frame - total_seconds * framerate))

    hh, remainder = divmod(total_seconds, 3600)
    mm, ss = divmod(remainder, 60)

    return f"{hh:02d}:{mm:02d}:{ss:02d}:{ff:02d}"


def seconds_to_timecode(seconds: float, framerate: float) -> str:
    """Timecode of the frame showing at ``seconds``."""
    return frame_to_timecode(seconds_to_frame(seconds, framerate), framerate)


def parse_timecode(timecode: str) -> tuple[int, int, int, int]:
    """Split a timecode into its four integer fields.

    Only the shape is checked here; ranges depend on the framerate.

    Raises:
        TimecodeFormatError: If the string is not four colon-separated
            unsigned decimal fields. Drop-frame separators (``;``) are
            rejected as well.
    """
    if not isinstance(timecode, str):
        raise TimecodeFormatError(repr(timecode), "not a string")

    text = timecode.strip()
    if ";" in text:
        raise TimecodeFormatError(timecode, "drop-frame timecode is not supported")

    parts = text.split(":")
    if len(parts) != 4:
        raise TimecodeFormatError(timecode, f"expected 4 fields, got {len(parts)}")

    for part in parts:
        if not _DIGITS.fullmatch(part):
            raise TimecodeFormatError(timecode, f"non-numeric field {part!r}")

    hh, mm, ss, ff = (int(part) for part in parts)
    return hh, mm, ss, ff


def _parse_in_range(timecode: str, framerate: float) -> tuple[int, int, int, int]:
    _check_framerate(framerate)
    hh, mm, ss, ff = parse_timecode(timecode)

    if mm >= 60:
        raise TimecodeRangeError(timecode, "minutes", mm, 60)
    if ss >= 60:
        raise TimecodeRangeError(timecode, "seconds", ss, 60)
    if ff >= framerate:
        raise TimecodeRangeError(timecode, "frame", ff, framerate)

    return hh, mm, ss, ff


def timecode_to_frame(timecode: str, framerate: float) -> int:
    """Convert an ``HH:MM:SS:FF`` timecode back to its frame number.

    Inverse of :func:`frame_to_timecode` for every timecode it produces.

    Raises:
        TimecodeFormatError: Wrong shape (field count or non-numeric field)
        TimecodeRangeError: Frame field >= framerate, or minutes/seconds >= 60
    """
    hh, mm, ss, ff = _parse_in_range(timecode, framerate)
    total_seconds = hh * 3600 + mm * 60 + ss

    rate = _integral_rate(framerate)
    if rate is not None:
        return total_seconds * rate + ff
    return _snap_ceil(total_seconds * framerate + ff)


def timecode_to_seconds(timecode: str, framerate: float) -> float:
    """Convert a timecode to seconds by field arithmetic.

    ``(HH*3600 + MM*60 + SS) + FF/framerate``. This is the only
    timecode-to-seconds path in the package; it does not go through a frame
    number.
    """
    hh, mm, ss, ff = _parse_in_range(timecode, framerate)
    return (hh * 3600 + mm * 60 + ss) + ff / framerate


def parse_position(text: str, framerate: float) -> float:
    """Parse a user-entered position: plain seconds or a timecode.

    Returns:
        Position in seconds
    """
    value = text.strip()
    if ":" in value or ";" in value:
        return timecode_to_seconds(value, framerate)
    try:
        seconds = float(value)
    except ValueError:
        raise TimecodeFormatError(text, "expected seconds or HH:MM:SS:FF") from None
    return _check_seconds(seconds)


def normalize_framerate(measured: float) -> float:
    """Snap a measured framerate to the nearest common rate.

    Ties go to the first (lowest) rate in COMMON_FRAMERATES.

    Args:
        measured: Any positive framerate, e.g. 29.5 or 23.98

    Returns:
        One of 23.976, 24, 25, 29.97, 30, 50, 59.94, 60
    """
    _check_framerate(measured)
    return min(COMMON_FRAMERATES, key=lambda rate: abs(rate - measured))


def format_duration(seconds: float) -> str:
    """Format seconds as H:MM:SS or M:SS.

    Not frame-accurate; hours are never zero-padded.
    """
    seconds = max(0.0, seconds)
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
