"""Protocols for the collaborators the sync engine talks to.

The scheduler and render pipeline never talk to HTTP or to a charting
library directly. They depend on these protocols instead, which keeps them
testable with in-memory fakes:

1. Transport
   - The asynchronous side of the instrument server: read the current
     dataset, push parameters, ensure the application is running.
   - Implemented by `digview.client.ConnectionManager`.

2. PlotSurface
   - The external chart: reports its pixel width and draws a prepared frame.
   - Implemented by `digview.render.HeadlessSurface` and
     `digview.render.MplSurface`.

See Also
--------
digview.client.scheduler : Poll/push loop built on Transport
digview.render.coordinator : Frame building on top of PlotSurface
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from digview.render.surface import PlotSeries
    from digview.state.view import ViewWindow
    from digview.types.messages import DataResponse


@runtime_checkable
class Transport(Protocol):
    async def fetch(self, timeout: float) -> DataResponse:
        """Read the current dataset (poll endpoint)."""
        ...

    async def push(self, params: dict[str, Any], timeout: float) -> DataResponse:
        """Send a parameter snapshot (push endpoint)."""
        ...

    async def start_app(self, timeout: float) -> DataResponse:
        """Ensure the application is running on the server (idempotent)."""
        ...


@runtime_checkable
class PlotSurface(Protocol):
    def width(self) -> int:
        """Drawable width in pixels."""
        ...

    def draw(self, series: Sequence[PlotSeries], view: ViewWindow) -> None:
        """Replace everything drawn with `series`, clipped to `view`."""
        ...
