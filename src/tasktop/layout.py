"""Fit the process table into the terminal."""

from tasktop.models import Viewport

SUMMARY_LINES = 3  # two content lines + blank separator
TABLE_HEADER_LINES = 2  # column header + rule
SLACK_LINES = 1  # avoids scrolling on an exact fit
RESERVED_LINES = SUMMARY_LINES + TABLE_HEADER_LINES + SLACK_LINES

FALLBACK_ROWS = 24


def resolve_max_rows(viewport: Viewport, user_cap: int = 0, fallback_rows: int = FALLBACK_ROWS) -> int:
    """
    Return how many process rows fit on screen.

    Args:
        viewport: Terminal geometry; ``rows == 0`` means unknown.
        user_cap: Row cap requested by the user, 0 for auto.
        fallback_rows: Height assumed when the viewport is unknown.

    Returns:
        Row limit. An explicit cap wins when the viewport leaves no room,
        otherwise the result never exceeds the visible capacity.
    """
    rows = viewport.rows or fallback_rows
    visible = max(0, rows - RESERVED_LINES)

    if user_cap > 0:
        if visible > 0:
            return min(visible, user_cap)
        return user_cap
    return visible
