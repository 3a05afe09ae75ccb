"""
Operator actions on a live instrument session.

`ScopeSession` wires the parameter store, the view window, the render
coordinator and the sync scheduler together, and offers the actions an
operator has in the instrument's web UI: trigger settings, zoom and offset
steps, autoscale, run/stop and single shot, configuration store/load and
parameter files.

Actions that need parameters log a warning and do nothing until the first
poll has returned them.

Examples
--------
```python
session = ScopeSession.connect("http://192.168.1.100")
await session.start()
await session.set_trigger_mode(TRIG_MODE_NORMAL)
await session.set_excite_level(0.25)
session.close()
```
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Optional

from loguru import logger

from digview.client import ConnectionManager, SyncScheduler
from digview.render import HeadlessSurface, RenderCoordinator
from digview.state import (
    ParamStore,
    RangeControls,
    ViewWindow,
    clamp_selection,
    offset_range,
    range_controls,
    zoom_about_centre,
)
from digview.types import CommsError, ErrorNotice, PlotSurface, Transport
from digview.types.params import (
    CLOCK_TICK_NS,
    TRIG_MODE_SINGLE,
    TRIG_SOURCE_IMMEDIATE,
    excite_param_name,
    latency_param_name,
    relax_param_name,
)
from digview.util import ClientSettings, load_params_file, save_params_file
from digview.util.defaults import (
    DEFAULT_APP_ID,
    DEFAULT_TIMEOUT,
    LONG_TIMEOUT,
    POINTS_PER_PX,
    RESET_XMAX,
    RESET_XMIN,
    TIME_RANGE_MAX,
    TRIGGER_LEVEL_DECIMAL_PLACES,
    UPDATE_INTERVAL,
    XDECIMAL_PLACES,
)
from digview.util.units import convert_hz, convert_sec

DEFAULT_RESET_Y_RANGE = 2.0


class ScopeSession:
    def __init__(
        self,
        transport: Transport,
        surface: Optional[PlotSurface] = None,
        *,
        app_id: str = DEFAULT_APP_ID,
        update_interval: float = UPDATE_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        long_timeout: float = LONG_TIMEOUT,
        points_per_px: Optional[float] = POINTS_PER_PX,
        **scheduler_kwargs,
    ):
        self.transport = transport
        self.store = ParamStore()
        self.view = ViewWindow()
        self.renderer = RenderCoordinator(
            surface or HeadlessSurface(), self.store, self.view, points_per_px
        )
        self.scheduler = SyncScheduler(
            transport,
            self.store,
            self.view,
            self.renderer,
            app_id=app_id,
            update_interval=update_interval,
            timeout=timeout,
            long_timeout=long_timeout,
            **scheduler_kwargs,
        )

    @classmethod
    def connect(
        cls,
        root_url: Optional[str] = None,
        surface: Optional[PlotSurface] = None,
        settings: Optional[ClientSettings] = None,
    ) -> ScopeSession:
        """Session over HTTP, configured from the client settings file.

        `root_url` overrides the url stored in the settings.
        """
        settings = settings or ClientSettings()
        manager = ConnectionManager()
        manager.connect(root_url or settings.root_url, settings.app_id)
        return cls(
            manager,
            surface,
            app_id=settings.app_id,
            update_interval=settings.update_interval,
            timeout=settings.timeout,
            long_timeout=settings.long_timeout,
            points_per_px=settings.points_per_px,
        )

    @property
    def notifications(self) -> asyncio.Queue:
        return self.scheduler.notifications

    def _require_params(self, action: str) -> bool:
        if not self.store.is_loaded:
            logger.warning("No parameters received yet, ignoring {}.", action)
            return False
        return True

    # ========================================================================
    # lifecycle
    # ========================================================================

    async def start(self) -> None:
        await self.scheduler.start()

    def close(self) -> None:
        """Stop the loop, stop the application on the server (best effort) and
        close the connection."""
        self.scheduler.stop()
        stop_app = getattr(self.transport, "stop_app", None)
        if stop_app is not None:
            try:
                stop_app()
            except (CommsError, RuntimeError) as e:
                logger.warning("Could not stop the application: {}", e)
        disconnect = getattr(self.transport, "disconnect", None)
        if disconnect is not None:
            disconnect()

    async def retry(self) -> None:
        await self.scheduler.retry()

    def acknowledge(self) -> None:
        self.scheduler.acknowledge()

    def begin_edit(self) -> None:
        self.scheduler.begin_edit()

    def end_edit(self) -> None:
        self.scheduler.end_edit()

    @asynccontextmanager
    async def editing(self):
        """Hold the edit guard over a burst of edits, such as a slider drag.

        Responses arriving meanwhile leave the local edits alone. The final
        values are pushed on a clean exit.

        ```python
        async with session.editing():
            for level in levels:
                await session.set_excite_level(level)
        ```
        """
        self.scheduler.begin_edit()
        try:
            yield self
        finally:
            self.scheduler.end_edit()
        await self.scheduler.push()

    # ========================================================================
    # parameters
    # ========================================================================

    async def set_param(
        self, key: str, value: Any, refresh: bool = False, force: bool = False
    ) -> bool:
        """Edit a local parameter and push it."""
        if not self._require_params(f"set {key}"):
            return False
        self.store.set(key, value)
        return await self.scheduler.push(refresh=refresh, force=force)

    async def set_trigger_mode(self, mode: int) -> bool:
        """Continuous, normal or single. Single stops the polling loop."""
        if not self._require_params("trigger mode"):
            return False
        running = int(mode) != TRIG_MODE_SINGLE
        if not running:
            await self.scheduler.set_running(False)
        else:
            self.scheduler.autorun = True
        pushed = await self.set_param("trig_mode", int(mode), refresh=True)
        if running and not pushed:
            await self.scheduler.set_running(True)
        return pushed

    async def set_trigger_source(self, source: int) -> bool:
        return await self.set_param("trig_source", int(source))

    async def _set_source_field(self, field: Optional[str], value, what: str) -> bool:
        if field is None:
            logger.warning(
                "Trigger source {} has no {} setting.", self.store.get("trig_source"), what
            )
            return False
        return await self.set_param(field, value)

    async def set_excite_level(self, level: float) -> bool:
        field = excite_param_name(self.store.get("trig_source"))
        return await self._set_source_field(field, level, "excite level")

    async def set_relax_level(self, level: float) -> bool:
        field = relax_param_name(self.store.get("trig_source"))
        return await self._set_source_field(field, level, "relax level")

    async def set_trigger_delay(self, delay_ns: float) -> bool:
        return await self.set_param("digdar_trig_delay", delay_ns / CLOCK_TICK_NS)

    async def set_latency(self, latency_ns: float) -> bool:
        field = latency_param_name(self.store.get("trig_source"))
        return await self._set_source_field(
            field, latency_ns / CLOCK_TICK_NS, "latency"
        )

    async def set_trigger_level_from_plot(self, y: float) -> bool:
        """Trigger level dragged to `y` in plot units."""
        if not self._require_params("trigger level"):
            return False
        key = "scale_ch1" if self.store.get("trig_source") == TRIG_SOURCE_IMMEDIATE else "scale_ch2"
        scale = self.store.get(key) or 1
        level = round(y, TRIGGER_LEVEL_DECIMAL_PLACES) / scale
        self.renderer.redraw()
        return await self.set_param("trig_level", level)

    async def toggle_averaging(self) -> bool:
        if not self._require_params("averaging"):
            return False
        enabled = 0 if self.store.get("en_avg_at_dec") else 1
        return await self.set_param("en_avg_at_dec", enabled, refresh=True, force=True)

    # ========================================================================
    # channels and ranges
    # ========================================================================

    def toggle_channel(self, channel: int) -> bool:
        shown = self.renderer.toggle_channel(channel)
        if not self.scheduler.downloading:
            self.renderer.redraw()
        return shown

    def _x_bounds(self) -> Optional[tuple[float, float]]:
        return self.view.x_range or self.renderer.data_x_extent()

    def _y_bounds(self) -> Optional[tuple[float, float]]:
        return self.view.y_range or self.renderer.data_y_extent()

    def range_controls(self) -> Optional[RangeControls]:
        """Current zoom steps, None until there is something to measure."""
        x, y = self._x_bounds(), self._y_bounds()
        if x is None or y is None or x[1] <= x[0] or y[1] <= y[0]:
            return None
        return range_controls(x[1] - x[0], y[1] - y[0], self.store.get("time_units"))

    async def _push_x_range(self, xmin: float, xmax: float) -> bool:
        self.view.set_x(xmin, xmax)
        self.renderer.redraw()
        if not self.store.is_loaded:
            return False
        self.store.set("xmin", xmin)
        self.store.set("xmax", xmax)
        return await self.scheduler.push(refresh=True)

    async def step_x_range(self, direction: int) -> bool:
        """Zoom the x-axis out (+1) or in (-1) to the next nice span."""
        controls = self.range_controls()
        if controls is None:
            return False
        step = controls.x_next if direction > 0 else controls.x_prev
        if step is None:
            logger.debug("x zoom limit reached.")
            return False
        lo, hi = zoom_about_centre(*self._x_bounds(), controls.x_step_in_axis_units(step))
        return await self._push_x_range(lo, hi)

    def step_y_range(self, direction: int) -> bool:
        """Zoom the y-axis out (+1) or in (-1). Display only."""
        controls = self.range_controls()
        if controls is None:
            return False
        step = controls.y_next if direction > 0 else controls.y_prev
        if step is None:
            logger.debug("y zoom limit reached.")
            return False
        lo, hi = zoom_about_centre(*self._y_bounds(), controls.y_step_in_axis_units(step))
        self.view.set_y(lo, hi)
        self.renderer.redraw()
        return True

    async def offset_x(self, direction: int) -> bool:
        bounds = self._x_bounds()
        if bounds is None:
            return False
        return await self._push_x_range(*offset_range(*bounds, direction))

    def offset_y(self, direction: int) -> bool:
        bounds = self._y_bounds()
        if bounds is None:
            return False
        self.view.set_y(*offset_range(*bounds, direction))
        self.renderer.redraw()
        return True

    async def select_zoom(self, xmin: float, xmax: float, ymin: float, ymax: float) -> bool:
        """Zoom to a rectangle selected on the plot."""
        xmin, xmax = clamp_selection(xmin, xmax)
        ymin, ymax = clamp_selection(ymin, ymax)
        self.view.set_y(ymin, ymax)
        return await self._push_x_range(
            round(xmin, XDECIMAL_PLACES), round(xmax, XDECIMAL_PLACES)
        )

    def pan_zoom(self, xmin: float, xmax: float) -> None:
        """One pan or wheel-zoom event; pushed once the gesture settles."""
        self.view.set_x(xmin, xmax)
        self.scheduler.note_view_gesture()
        self.renderer.redraw()

    def autoscale_y(self) -> bool:
        """Fit the y-axis to the visible data, client side only."""
        if self.renderer.autoscale_y() is None:
            return False
        self.renderer.redraw()
        return True

    async def server_autoscale(self) -> bool:
        """Ask the instrument to pick ranges for the current signal."""
        if not self._require_params("autoscale"):
            return False
        self.store.set("auto_flag", 1)
        # auto_flag never shows up as dirty, so the push has to be forced
        return await self.scheduler.push(refresh=True, force=True)

    async def reset_zoom(self) -> bool:
        """x back to automatic, y to the instrument's reset range, all
        channels shown."""
        if not self._require_params("reset zoom"):
            return False
        self.renderer.show_all_channels()
        confirmed = self.store.confirmed
        half = confirmed.get("gui_reset_y_range", DEFAULT_RESET_Y_RANGE) / 2
        self.view.set_x(None, None)
        self.view.set_y(-half, half)
        self.store.set("xmin", RESET_XMIN)
        self.store.set("xmax", RESET_XMAX)
        self.renderer.redraw()
        return await self.scheduler.push(refresh=True, force=True)

    async def update_zoom(self) -> bool:
        """Show the full span of the selected time range."""
        if not self._require_params("time range zoom"):
            return False
        time_range = int(self.store.get("time_range", 0))
        if not 0 <= time_range < len(TIME_RANGE_MAX):
            logger.warning("Unknown time range {}.", time_range)
            return False
        xmax = TIME_RANGE_MAX[time_range]
        self.view.set_x(0, xmax)
        self.store.set("xmin", 0)
        self.store.set("xmax", xmax)
        self.renderer.redraw()
        return await self.scheduler.push(refresh=True, force=True)

    # ========================================================================
    # run control
    # ========================================================================

    async def set_running(self, running: bool) -> None:
        await self.scheduler.set_running(running)

    async def single_shot(self) -> bool:
        return await self.scheduler.single_shot()

    # ========================================================================
    # configuration
    # ========================================================================

    async def _call(self, name: str, *args):
        return await asyncio.to_thread(getattr(self.transport, name), *args)

    async def store_config(self) -> bool:
        """Store the local parameters on the instrument."""
        if not self._require_params("store"):
            return False
        try:
            await self._call("store_params", self.store.snapshot())
        except CommsError as e:
            self.scheduler.notify(ErrorNotice(message=str(e), ignore=True))
            return False
        return True

    async def load_config(self, factory: bool = False) -> Optional[dict[str, Any]]:
        """Load the stored (or factory) parameters into the local snapshot.

        Nothing reaches the instrument until the next push.
        """
        try:
            params = await self._call("load_factory_params" if factory else "load_params")
        except CommsError as e:
            self.scheduler.notify(ErrorNotice(message=str(e), ignore=True))
            return None
        self.store.replace_local(params)
        logger.info("Loaded {} {} parameters.", len(params), "factory" if factory else "stored")
        return params

    def download_params(self, path: str) -> str:
        """Write the local parameters to a JSON file."""
        return save_params_file(self.store.snapshot(), path)

    async def upload_params(self, path: str) -> bool:
        """Replace the local parameters with a JSON file's content and push."""
        params = load_params_file(path)
        self.store.replace_local(params)
        return await self.scheduler.push()

    # ========================================================================
    # readouts
    # ========================================================================

    def readouts(self) -> dict[str, str]:
        """Formatted measurements reported by the instrument."""
        p = self.store.confirmed
        if p is None:
            return {}
        out = {}
        if "digdar_trig_rate" in p:
            rate = p["digdar_trig_rate"]
            out["trigger rate"] = convert_hz(rate)
            out["trigger period"] = convert_sec(1.0 / rate) if rate else "---.-"
        if "digdar_capture_rate" in p:
            out["capture rate"] = convert_hz(p["digdar_capture_rate"])
        if "digdar_acp_rate" in p:
            out["ACP rate"] = convert_hz(p["digdar_acp_rate"])
        if "digdar_acps_per_arp" in p:
            out["ACPs per ARP"] = str(p["digdar_acps_per_arp"])
        if "digdar_arps_rate" in p:
            out["ARP rate"] = str(round(p["digdar_arps_rate"] * 10) / 10)
        return out
