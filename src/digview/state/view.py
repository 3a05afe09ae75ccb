"""
The visible plot window and the zoom/offset arithmetic behind the range
controls.

The window is shared between operator gestures and server-forced ranges
(autoscale, forced x-range). While a gesture is in progress the operator
wins: forced ranges are dropped until the gesture settles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from digview.types.params import time_unit_label
from digview.util.defaults import (
    MIN_SELECTION_SPAN,
    RANGE_OFFSET,
    X_MAX_RANGE,
    X_MIN_RANGE,
    Y_MAX_RANGE,
    Y_MIN_RANGE,
)
from digview.util.range_steps import nearest_ranges

UNIT_SECONDS = {"ns": 1e-9, "µs": 1e-6, "ms": 1e-3, "s": 1.0}


@dataclass
class ViewWindow:
    """Visible ranges; a None bound means "auto" (fit the data)."""

    xmin: Optional[float] = None
    xmax: Optional[float] = None
    ymin: Optional[float] = None
    ymax: Optional[float] = None
    gesture_active: bool = False

    @property
    def x_range(self) -> Optional[tuple[float, float]]:
        if self.xmin is None or self.xmax is None:
            return None
        return self.xmin, self.xmax

    @property
    def y_range(self) -> Optional[tuple[float, float]]:
        if self.ymin is None or self.ymax is None:
            return None
        return self.ymin, self.ymax

    def has_x_range(self) -> bool:
        return self.x_range is not None

    def set_x(self, xmin: Optional[float], xmax: Optional[float]) -> None:
        self.xmin, self.xmax = xmin, xmax

    def set_y(self, ymin: Optional[float], ymax: Optional[float]) -> None:
        self.ymin, self.ymax = ymin, ymax

    def force_x(self, xmin, xmax) -> bool:
        """Server-forced x-range. Returns False if a gesture held it off."""
        if self.gesture_active:
            logger.debug("Gesture in progress, ignoring forced x-range.")
            return False
        if xmin is None or xmax is None:
            return False
        self.set_x(xmin, xmax)
        return True

    def force(self, xmin, xmax, ymin, ymax) -> bool:
        """Server-forced x and y ranges (autoscale result)."""
        if self.gesture_active:
            logger.debug("Gesture in progress, ignoring forced ranges.")
            return False
        if None in (xmin, xmax, ymin, ymax):
            return False
        self.set_x(xmin, xmax)
        self.set_y(ymin, ymax)
        return True

    def copy(self) -> ViewWindow:
        return ViewWindow(self.xmin, self.xmax, self.ymin, self.ymax)


# ============================================================================


def zoom_about_centre(lo: float, hi: float, span: float) -> tuple[float, float]:
    """New bounds of width `span` sharing the centre of [lo, hi]."""
    centre = (lo + hi) / 2
    half = span / 2
    return centre - half, centre + half


def offset_range(
    lo: float, hi: float, direction: int, percent: float = RANGE_OFFSET
) -> tuple[float, float]:
    """Shift [lo, hi] by `percent` of its span; direction is +1 or -1."""
    offset = (hi - lo) * percent / 100
    if direction < 0:
        offset = -offset
    return lo + offset, hi + offset


def clamp_selection(
    lo: float, hi: float, min_span: float = MIN_SELECTION_SPAN
) -> tuple[float, float]:
    """Stop selection zoom from collapsing to nothing."""
    if hi - lo < min_span:
        hi = lo + min_span
    return lo, hi


@dataclass(frozen=True)
class RangeControls:
    """State of the four step-zoom buttons.

    A None step means that direction would leave the allowed span and the
    control is disabled. Steps are expressed in `x_unit` / `y_unit`.
    """

    x_span: float
    x_unit: str
    y_span: float
    y_unit: str
    x_prev: Optional[float]
    x_next: Optional[float]
    y_prev: Optional[float]
    y_next: Optional[float]

    def x_step_in_axis_units(self, step: float) -> float:
        # the x axis is in the instrument's time unit; ns only exists for display
        return step / 1000 if self.x_unit == "ns" else step

    def y_step_in_axis_units(self, step: float) -> float:
        return step / 1000 if self.y_unit == "mV" else step


def range_controls(x_span: float, y_span: float, time_units) -> RangeControls:
    """Nearest nice zoom steps for both axes, with the hard span limits
    applied.

    x is limited to [X_MIN_RANGE, X_MAX_RANGE] seconds. For y, zooming out is
    disabled once a step covers Y_MAX_RANGE and zooming in below
    Y_MIN_RANGE. Spans under one unit are shown one unit down (µs to ns,
    V to mV) and the y limits scale with them.
    """
    x_unit = time_unit_label(time_units)
    y_unit = ""
    y_max_range = Y_MAX_RANGE
    y_min_range = Y_MIN_RANGE

    if x_unit == "µs" and x_span < 1:
        x_span *= 1000
        x_unit = "ns"
    seconds = UNIT_SECONDS[x_unit]

    if y_span < 1:
        y_unit = "mV"
        y_span *= 1000
        y_max_range *= 1000
        y_min_range *= 1000

    nearest_x = nearest_ranges(x_span)
    nearest_y = nearest_ranges(y_span)

    x_next = nearest_x.next
    if x_next is None or x_next * seconds > X_MAX_RANGE:
        x_next = None
    x_prev = nearest_x.prev
    if x_prev is None or x_prev * seconds < X_MIN_RANGE:
        x_prev = None

    y_next = nearest_y.next
    if y_next is None or nearest_y.prev is None or y_next - nearest_y.prev >= y_max_range:
        y_next = None
    y_prev = nearest_y.prev
    if y_prev is None or y_prev < y_min_range:
        y_prev = None

    return RangeControls(
        x_span=x_span,
        x_unit=x_unit,
        y_span=y_span,
        y_unit=y_unit,
        x_prev=x_prev,
        x_next=x_next,
        y_prev=y_prev,
        y_next=y_next,
    )
