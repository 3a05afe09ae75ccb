"""Waveform rendering: decimated channel series plus the trigger overlay."""

from .coordinator import CHANNEL_NAMES, N_CHANNELS, RenderCoordinator
from .overlay import OVERLAY_POINTS, TriggerOverlayBuilder
from .surface import HeadlessSurface, MplSurface, PlotSeries

__all__ = [
    "CHANNEL_NAMES",
    "N_CHANNELS",
    "OVERLAY_POINTS",
    "HeadlessSurface",
    "MplSurface",
    "PlotSeries",
    "RenderCoordinator",
    "TriggerOverlayBuilder",
]
