"""Relative (0-1000) to absolute pixel coordinate conversion."""

from typing import Tuple

RELATIVE_SCALE = 1000


def to_absolute(rel_x: int, rel_y: int, screen_width: int, screen_height: int) -> Tuple[int, int]:
    """
    Convert a relative coordinate to absolute device pixels.

    Args:
        rel_x: X position on the 0-1000 scale.
        rel_y: Y position on the 0-1000 scale.
        screen_width: Device width in pixels.
        screen_height: Device height in pixels.

    Returns:
        Tuple of (x, y) in pixels, floored.

    Example:
        >>> to_absolute(500, 500, 1080, 2400)
        (540, 1200)
    """
    # multiply first so integer division floors exactly
    abs_x = (rel_x * screen_width) // RELATIVE_SCALE
    abs_y = (rel_y * screen_height) // RELATIVE_SCALE
    return abs_x, abs_y
