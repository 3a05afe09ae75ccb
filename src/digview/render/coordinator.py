"""
Frame building: channel selection, decimation and the trigger overlay.

The coordinator owns the most recent sample series (replaced wholesale on
every poll) and the set of visible channels. Each `redraw` works from the
stored, undecimated series so a change of surface width is honoured even
when no new data has arrived.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from loguru import logger

from digview.render.overlay import TriggerOverlayBuilder
from digview.render.surface import PlotSeries
from digview.state.param_store import ParamStore
from digview.state.view import ViewWindow
from digview.types.protocols import PlotSurface
from digview.util.decimate import decimate
from digview.util.defaults import POINTS_PER_PX

CHANNEL_NAMES = ("Video", "Trigger", "Azimuth / ACP", "Heading / ARP")
N_CHANNELS = len(CHANNEL_NAMES)
AUTOSCALE_MARGIN = 0.1


def _read_only(arr) -> np.ndarray:
    arr = np.array(arr, dtype=float).reshape(-1, 2)
    arr.setflags(write=False)
    return arr


class RenderCoordinator:
    def __init__(
        self,
        surface: PlotSurface,
        store: ParamStore,
        view: ViewWindow,
        points_per_px: Optional[float] = POINTS_PER_PX,
        overlay: Optional[TriggerOverlayBuilder] = None,
    ):
        self.surface = surface
        self.store = store
        self.view = view
        self.points_per_px = points_per_px
        self.overlay = overlay or TriggerOverlayBuilder()
        self.visible_channels: set[int] = set(range(N_CHANNELS))
        self._series: list[np.ndarray] = []

    @property
    def series(self) -> list[np.ndarray]:
        return list(self._series)

    def set_series(self, channels: Sequence) -> None:
        """Replace all sample series with a new poll's data."""
        self._series = [
            c if isinstance(c, np.ndarray) and not c.flags.writeable else _read_only(c)
            for c in channels
        ]

    # ------------------------------------------------------------------------
    # channel selection

    def toggle_channel(self, channel: int) -> bool:
        """Flip a channel's visibility, returns the new state."""
        if not 0 <= channel < N_CHANNELS:
            raise ValueError(f"No channel {channel}")
        if channel in self.visible_channels:
            self.visible_channels.discard(channel)
            return False
        self.visible_channels.add(channel)
        return True

    def show_all_channels(self) -> None:
        self.visible_channels = set(range(N_CHANNELS))

    def visible_series(self) -> list[tuple[int, np.ndarray]]:
        # a channel the server did not send this time is skipped
        return [
            (i, s)
            for i, s in enumerate(self._series[:N_CHANNELS])
            if i in self.visible_channels
        ]

    # ------------------------------------------------------------------------
    # extents

    def data_x_extent(self) -> Optional[tuple[float, float]]:
        """x-extent of the first visible channel holding data."""
        for _, s in self.visible_series():
            if len(s):
                return float(s[0, 0]), float(s[-1, 0])
        return None

    def data_y_extent(self) -> Optional[tuple[float, float]]:
        ys = [s[:, 1] for _, s in self.visible_series() if len(s)]
        if not ys:
            return None
        ys = np.concatenate(ys)
        return float(ys.min()), float(ys.max())

    def effective_x_range(self) -> tuple[float, float]:
        return self.view.x_range or self.data_x_extent() or (0.0, 1.0)

    def autoscale_y(self) -> Optional[tuple[float, float]]:
        """Fit the y-range to the visible data with a 10% margin."""
        extent = self.data_y_extent()
        if extent is None:
            return None
        datamin, datamax = extent
        ymin = datamin - abs(datamin) * AUTOSCALE_MARGIN
        ymax = datamax + abs(datamax) * AUTOSCALE_MARGIN
        self.view.set_y(ymin, ymax)
        return ymin, ymax

    # ------------------------------------------------------------------------

    def build_frame(self) -> list[PlotSeries]:
        width = self.surface.width()
        x_range = self.view.x_range
        frame = []
        for i, s in self.visible_series():
            if x_range is not None and len(s):
                s = s[(s[:, 0] >= x_range[0]) & (s[:, 0] <= x_range[1])]
            frame.append(
                PlotSeries(
                    decimate(s, width, self.points_per_px),
                    label=CHANNEL_NAMES[i],
                    channel=i,
                )
            )
        frame.extend(
            self.overlay.build(
                self.store.local, self.effective_x_range(), self.view.y_range
            )
        )
        return frame

    def redraw(self) -> list[PlotSeries]:
        frame = self.build_frame()
        logger.trace("Redrawing {} series", len(frame))
        self.surface.draw(frame, self.view)
        return frame
