"""Client-side state: parameter snapshots and the visible view window."""

from .param_store import ParamStore
from .view import (
    RangeControls,
    ViewWindow,
    clamp_selection,
    offset_range,
    range_controls,
    zoom_about_centre,
)

__all__ = [
    "ParamStore",
    "RangeControls",
    "ViewWindow",
    "clamp_selection",
    "offset_range",
    "range_controls",
    "zoom_about_centre",
]
