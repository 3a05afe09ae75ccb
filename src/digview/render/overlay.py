"""
Trigger-level overlay.

The excite and relax levels of the selected trigger source are shown as two
flat rows of markers ("+" for excite, "-" for relax) across the plot, so the
two stay distinguishable when they coincide.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import numpy as np

from digview.render.surface import PlotSeries
from digview.types.params import (
    TRIG_MODE_CONTINUOUS,
    excite_param_name,
    relax_param_name,
)

OVERLAY_POINTS = 40


def _outside(level: float, y_range: tuple[float, float]) -> bool:
    return level < y_range[0] or level > y_range[1]


class TriggerOverlayBuilder:
    def __init__(self, n_points: int = OVERLAY_POINTS):
        self.n_points = n_points

    @staticmethod
    def levels(params: Mapping[str, Any]) -> Optional[tuple[float, float]]:
        """(excite, relax) for the selected trigger source, None if the source
        has no levels or they are not in `params`."""
        source = params.get("trig_source")
        excite_key = excite_param_name(source)
        relax_key = relax_param_name(source)
        if excite_key is None or relax_key is None:
            return None
        try:
            return float(params[excite_key]), float(params[relax_key])
        except (KeyError, TypeError, ValueError):
            return None

    def build(
        self,
        params: Optional[Mapping[str, Any]],
        x_range: tuple[float, float],
        y_range: Optional[tuple[float, float]] = None,
    ) -> list[PlotSeries]:
        """Overlay series for `params`, or an empty list when suppressed.

        Suppressed when the trigger mode is continuous, or when both levels lie
        outside `y_range` (None means the y-range is automatic, so nothing is
        outside it).
        """
        if not params:
            return []
        if params.get("trig_mode") == TRIG_MODE_CONTINUOUS:
            return []
        levels = self.levels(params)
        if levels is None:
            return []
        excite, relax = levels
        if y_range is not None and _outside(excite, y_range) and _outside(relax, y_range):
            return []

        xs = np.linspace(x_range[0], x_range[1], self.n_points)
        return [
            PlotSeries(
                np.column_stack((xs, np.full(self.n_points, excite))),
                marker="+",
                lines=False,
            ),
            PlotSeries(
                np.column_stack((xs, np.full(self.n_points, relax))),
                marker="-",
                lines=False,
            ),
        ]
