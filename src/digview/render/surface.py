"""Plot surfaces: what a prepared frame is drawn onto.

`HeadlessSurface` keeps the last frame in memory (CLI without a display,
tests). `MplSurface` draws onto a matplotlib axes; pyplot is only imported
when one is constructed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np
from loguru import logger

if TYPE_CHECKING:
    from digview.state.view import ViewWindow

DEFAULT_SURFACE_WIDTH = 800  # px


@dataclass
class PlotSeries:
    """One drawable series: an (N, 2) array of x, y pairs."""

    data: np.ndarray
    label: str = ""
    channel: Optional[int] = None  # None for overlay series
    marker: Optional[str] = None
    lines: bool = True

    def __len__(self):
        return len(self.data)

    @property
    def x(self) -> np.ndarray:
        return self.data[:, 0]

    @property
    def y(self) -> np.ndarray:
        return self.data[:, 1]


class HeadlessSurface:
    """Surface with a fixed pixel width that records what it was asked to draw."""

    def __init__(self, width: int = DEFAULT_SURFACE_WIDTH):
        self._width = int(width)
        self.frame: list[PlotSeries] = []
        self.view: Optional[ViewWindow] = None
        self.n_draws = 0

    def width(self) -> int:
        return self._width

    def resize(self, width: int) -> None:
        self._width = int(width)

    def draw(self, series: Sequence[PlotSeries], view: ViewWindow) -> None:
        self.frame = list(series)
        self.view = view.copy()
        self.n_draws += 1
        logger.trace(
            "Frame {}: {} series, {} points",
            self.n_draws,
            len(self.frame),
            sum(len(s) for s in self.frame),
        )


class MplSurface:
    """Live matplotlib view.

    Channel series are drawn as lines, overlay series as unconnected markers.
    Bounds of the view that are None are left to matplotlib's autoscaling.
    """

    _MARKERS = {"+": "+", "-": "_"}

    def __init__(self, figsize=(10, 5), title: str = "digview"):
        import matplotlib.pyplot as plt

        self._plt = plt
        self.fig, self.ax = plt.subplots(figsize=figsize)
        self.fig.canvas.manager.set_window_title(title)
        self.ax.grid(True, alpha=0.3)

    def width(self) -> int:
        return max(int(self.ax.get_window_extent().width), 1)

    def is_open(self) -> bool:
        return self._plt.fignum_exists(self.fig.number)

    def draw(self, series: Sequence[PlotSeries], view: ViewWindow) -> None:
        self.ax.clear()
        self.ax.grid(True, alpha=0.3)
        for s in series:
            if s.lines:
                self.ax.plot(s.x, s.y, label=s.label, linewidth=1)
            else:
                self.ax.plot(
                    s.x,
                    s.y,
                    linestyle="none",
                    marker=self._MARKERS.get(s.marker, s.marker),
                    color="black",
                    markersize=10,
                    markeredgewidth=0.5,
                )
        if view.x_range is not None:
            self.ax.set_xlim(*view.x_range)
        if view.y_range is not None:
            self.ax.set_ylim(*view.y_range)
        if any(s.label for s in series):
            self.ax.legend(loc="upper right")
        self.fig.canvas.draw_idle()

    def pause(self, interval: float) -> None:
        """Let the GUI event loop run."""
        self._plt.pause(interval)

    def close(self) -> None:
        self._plt.close(self.fig)
