"""
Poll/push loop keeping the client in step with the instrument.

Everything here runs on one asyncio event loop. The only suspension points
are transport calls and timers, so the flags below need no locking, but the
order in which they are checked and set matters:

- at most one poll in flight (`downloading`)
- at most one push in flight (`DispatchState.sending`); push requests made
  meanwhile collapse into a single trailing replay (`DispatchState.queued`)
- a poll flushes dirty edits with a push before reading, so a read can never
  overwrite an edit with stale server state

Failures are reported as notifications on an asyncio queue. Automatic polling
stops at every error notice: a non-fatal one until the operator calls
`acknowledge`, a fatal one until `retry`.
"""

from __future__ import annotations

import asyncio
import enum
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Type

from loguru import logger

from digview.render.coordinator import RenderCoordinator
from digview.state.param_store import ParamStore
from digview.state.view import ViewWindow
from digview.types import (
    AppSwitchNotice,
    CommsError,
    DataResponse,
    ErrorNotice,
    Notification,
    ResponseFormatError,
    SingleShotReady,
    Transport,
)
from digview.types.params import TRIG_MODE_SINGLE
from digview.util.defaults import (
    DEFAULT_APP_ID,
    DEFAULT_PARAMS,
    DEFAULT_TIMEOUT,
    LONG_TIMEOUT,
    PUSH_REPLAY_DELAY,
    UPDATE_INTERVAL,
    XDECIMAL_PLACES,
    ZOOMPAN_SETTLE,
)


class SyncState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    PUSH_PENDING = "push_pending"
    REPLAYING = "replaying"


@dataclass
class DispatchState:
    sending: bool = False
    queued: bool = False  # one more push is owed after the current one
    refresh: bool = False  # a coalesced request asked for a poll afterwards


class SyncScheduler:
    """Drives polling and parameter pushes against a `Transport`.

    Parameters
    ----------
    transport : Transport
        Async access to the instrument server.
    store : ParamStore
        Confirmed/local parameter snapshots.
    view : ViewWindow
        Visible window, shared with the operator's gestures.
    renderer : RenderCoordinator, optional
        Receives new sample series and redraws after every accepted response.
    notifications : asyncio.Queue, optional
        Where notices for the operator are put. A fresh queue by default.
    app_id : str
        Application the client expects the server to run.
    update_interval : float
        Seconds between polls in continuous run.
    timeout, long_timeout : float
        Request timeouts. The long one covers the cycle after an autoscale.
    replay_delay : float
        Delay before a coalesced push is replayed.
    settle_delay : float
        Quiet time after the last pan/zoom event before the new x-range is
        pushed.
    """

    def __init__(
        self,
        transport: Transport,
        store: ParamStore,
        view: ViewWindow,
        renderer: Optional[RenderCoordinator] = None,
        notifications: Optional[asyncio.Queue] = None,
        *,
        app_id: str = DEFAULT_APP_ID,
        update_interval: float = UPDATE_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        long_timeout: float = LONG_TIMEOUT,
        replay_delay: float = PUSH_REPLAY_DELAY,
        settle_delay: float = ZOOMPAN_SETTLE,
    ):
        self.transport = transport
        self.store = store
        self.view = view
        self.renderer = renderer
        self.notifications: asyncio.Queue = notifications or asyncio.Queue()
        self.app_id = app_id
        self.update_interval = update_interval
        self.timeout = timeout
        self.long_timeout = long_timeout
        self.replay_delay = replay_delay
        self.settle_delay = settle_delay

        self.dispatch = DispatchState()
        self.downloading = False
        self.app_started = False
        self.autorun = True
        self.editing = False
        self.halted = False
        self.awaiting_ack = False
        self.closed = False
        self.use_long_timeout = False
        self._last_get_failed = False

        self._push_idle = asyncio.Event()
        self._push_idle.set()
        self._poll_timer: Optional[asyncio.TimerHandle] = None
        self._replay_timer: Optional[asyncio.TimerHandle] = None
        self._settle_timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> SyncState:
        if self.dispatch.sending:
            return SyncState.PUSH_PENDING
        if self._replay_timer is not None:
            return SyncState.REPLAYING
        if self.downloading:
            return SyncState.POLLING
        return SyncState.IDLE

    def _current_timeout(self) -> float:
        return self.long_timeout if self.use_long_timeout else self.timeout

    # ========================================================================
    # timers & tasks
    # ========================================================================

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error("Background sync task failed.")

    def _schedule_poll(self, delay: float) -> None:
        if self.halted or self.awaiting_ack or self.closed:
            return
        self._cancel_poll_timer()
        self._poll_timer = asyncio.get_running_loop().call_later(
            delay, self._fire_poll
        )

    def _fire_poll(self) -> None:
        self._poll_timer = None
        self._spawn(self.poll())

    def _cancel_poll_timer(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None

    def _schedule_replay(self, refresh: bool) -> None:
        if self._replay_timer is not None:
            self._replay_timer.cancel()
        self._replay_timer = asyncio.get_running_loop().call_later(
            self.replay_delay, self._fire_replay, refresh
        )

    def _fire_replay(self, refresh: bool) -> None:
        self._replay_timer = None
        if self.closed:
            return
        self._spawn(self.push(refresh=refresh, force=True))

    # ========================================================================
    # notifications
    # ========================================================================

    def notify(self, notif: Notification) -> None:
        """Put a notice on the queue. Error notices hold automatic polling
        until acknowledged; fatal ones and application switches halt the loop."""
        if isinstance(notif, ErrorNotice):
            self.awaiting_ack = True
            self._cancel_poll_timer()
            if notif.fatal:
                logger.error("Fatal: {}", notif.message)
                self._halt()
            else:
                logger.warning("Error: {}", notif.message)
        elif isinstance(notif, AppSwitchNotice):
            logger.error(
                "Server runs application '{}', expected '{}'", notif.app_id, self.app_id
            )
            self._halt()
        else:
            logger.info("Notification: {}", notif)
        self.notifications.put_nowait(notif)

    def _halt(self) -> None:
        self.halted = True
        self._cancel_poll_timer()

    # ========================================================================
    # parameters
    # ========================================================================

    def _adopt(self, params: dict[str, Any], guard: bool = False) -> None:
        editing = self.editing or guard
        params = dict(params)
        # the server's xmin/xmax only matter for autoscale and forced ranges,
        # which are applied to the view before this point
        x_range = self.view.x_range
        if x_range is not None:
            params["xmin"], params["xmax"] = x_range
        self.store.adopt(params, editing=editing)
        if not editing:
            self.autorun = params.get("trig_mode") != TRIG_MODE_SINGLE

    def _redraw(self) -> None:
        if self.renderer is not None:
            self.renderer.redraw()

    # ========================================================================
    # poll
    # ========================================================================

    async def poll(self) -> None:
        """One read cycle. Schedules the next one when continuous run is on."""
        if self.downloading or self.halted or self.awaiting_ack or self.closed:
            return
        self._cancel_poll_timer()
        self.downloading = True
        follow_up: Optional[Callable[[], Awaitable]] = None
        try:
            if self.dispatch.sending:
                await self._push_idle.wait()
            if self.store.is_dirty():
                await self.push()
                if self.awaiting_ack:
                    return
            follow_up = await self._fetch_and_apply()
        finally:
            self.downloading = False
        if follow_up is not None:
            await follow_up()

    async def _fetch_and_apply(self) -> Optional[Callable[[], Awaitable]]:
        """Returns what has to run once the poll has finished, if anything."""
        autorun_before = self.autorun
        long_timeout_used = self.use_long_timeout
        try:
            resp = await self.transport.fetch(self._current_timeout())
        except ResponseFormatError as e:
            self._last_get_failed = False
            self.notify(
                ErrorNotice(
                    message=f"Wrong application data received: {e}",
                    fatal=True,
                    retry=True,
                    restart=True,
                )
            )
            return None
        except CommsError as e:
            if not self._last_get_failed:
                logger.warning("Data receiving failed ({}), trying once more.", e)
                self._last_get_failed = True
                return self.poll
            self._last_get_failed = False
            self.notify(
                ErrorNotice(
                    message=f"Data receiving failed: {e}",
                    fatal=True,
                    retry=True,
                    restart=True,
                )
            )
            return None
        finally:
            if long_timeout_used:
                self.use_long_timeout = False
        self._last_get_failed = False

        if resp.is_error:
            if not self.app_started:
                logger.info("Application not running, starting it.")
                return self.start_app
            self.notify(
                ErrorNotice(
                    message=resp.reason or "Application error.",
                    fatal=True,
                    retry=True,
                    restart=True,
                )
            )
            return None

        if not resp.has_params:
            self.notify(
                ErrorNotice(
                    message="Wrong application data received.",
                    fatal=True,
                    retry=True,
                    restart=True,
                )
            )
            return None

        if resp.app_id != self.app_id:
            if not self.app_started:
                logger.info("Server runs '{}', starting '{}'.", resp.app_id, self.app_id)
                return self.start_app
            self.notify(AppSwitchNotice(app_id=resp.app_id or ""))
            return None

        self.app_started = True
        params = resp.params
        if params.get("forcex_flag") == 1:
            self.view.force_x(params.get("xmin"), params.get("xmax"))

        autorun_after = self.autorun
        self._adopt(params)
        if not self.editing and autorun_before != autorun_after:
            # run/stop was changed by the operator while the request was out
            self.autorun = autorun_after

        if self.renderer is not None:
            self.renderer.set_series(resp.channels)
        self._redraw()

        if self.closed:
            return None
        if resp.is_again:
            self._schedule_poll(0)
        elif self.autorun:
            self._schedule_poll(self.update_interval)
        else:
            self.notify(SingleShotReady())
        return None

    # ========================================================================
    # push
    # ========================================================================

    async def push(
        self, refresh: bool = False, force: bool = False, single: bool = False
    ) -> bool:
        """Send the local snapshot if it differs from the confirmed one.

        Parameters
        ----------
        refresh : bool
            Poll once the push has been accepted.
        force : bool
            Send even when nothing is dirty.
        single : bool
            Ask the instrument for a single acquisition.

        Returns
        -------
        bool
            True if a request was sent and its response accepted.
        """
        if self.dispatch.sending:
            self.dispatch.queued = True
            self.dispatch.refresh = self.dispatch.refresh or refresh
            logger.trace("Push in flight, queued another one.")
            return False
        if not self.store.is_loaded:
            logger.warning("No parameters received yet, nothing to push.")
            return False
        if not force and not self.store.is_dirty():
            self.dispatch.queued = False
            return False

        # the server always answers with auto_flag cleared
        auto_flag = self.store.get("auto_flag", 0)
        self.store.set("single_btn", 1 if single else 0)
        self.use_long_timeout = bool(auto_flag)
        params = self.store.snapshot()

        self.dispatch.sending = True
        self._push_idle.clear()
        accepted = False
        try:
            resp = await self.transport.push(params, self._current_timeout())
            accepted = self._apply_push_response(resp, auto_flag)
        except ResponseFormatError as e:
            self.notify(
                ErrorNotice(
                    message=f"Error while sending data (E2): {e}",
                    restart=True,
                    ignore=True,
                )
            )
        except CommsError as e:
            self.notify(
                ErrorNotice(
                    message=f"Error while sending data (E3): {e}",
                    restart=True,
                    ignore=True,
                )
            )
        finally:
            self.dispatch.sending = False
            self._push_idle.set()
            if self.dispatch.queued:
                replay_refresh = self.dispatch.refresh
                self.dispatch.queued = False
                self.dispatch.refresh = False
                self._schedule_replay(replay_refresh)

        if accepted and refresh and not self.downloading:
            await self.poll()
        return accepted

    def _apply_push_response(self, resp: DataResponse, auto_flag) -> bool:
        if resp.has_params:
            params = resp.params
            if auto_flag == 1 and params.get("min_y") != params.get("max_y"):
                self.view.force(
                    params.get("xmin"),
                    params.get("xmax"),
                    params.get("min_y"),
                    params.get("max_y"),
                )
                if self.renderer is not None:
                    self.renderer.show_all_channels()
            elif not auto_flag and params.get("forcex_flag") == 1:
                self.view.force_x(params.get("xmin"), params.get("xmax"))
            # edits made while this push was out belong to the replay
            self._adopt(params, guard=self.dispatch.queued)
            self._redraw()
            return True

        if resp.is_error:
            self.dispatch.queued = False
            self.notify(
                ErrorNotice(
                    message=resp.reason or "Error while sending data (E1).",
                    restart=True,
                    ignore=True,
                )
            )
        else:
            self.notify(
                ErrorNotice(
                    message="Error while sending data (E2).", restart=True, ignore=True
                )
            )
        return False

    # ========================================================================
    # application lifecycle
    # ========================================================================

    async def start_app(self) -> bool:
        """Start the application on the server, post the default parameters
        and resume polling."""
        try:
            resp = await self.transport.start_app(self.timeout)
        except CommsError as e:
            self.notify(
                ErrorNotice(
                    message=f"Could not start the application: {e}", fatal=True, retry=True
                )
            )
            return False
        if resp.is_error:
            self.notify(
                ErrorNotice(
                    message=resp.reason or "Could not start the application.",
                    fatal=True,
                    retry=True,
                )
            )
            return False
        try:
            await self.transport.push(dict(DEFAULT_PARAMS), self.timeout)
        except CommsError as e:
            self.notify(
                ErrorNotice(
                    message=f"Could not initialize the application with default parameters: {e}",
                    fatal=True,
                    restart=True,
                )
            )
            return False
        logger.info("Application '{}' started.", self.app_id)
        self.app_started = True
        await self.poll()
        return True

    # ========================================================================
    # operator controls
    # ========================================================================

    async def start(self) -> None:
        """Begin polling."""
        self.closed = False
        await self.poll()

    def stop(self) -> None:
        """Cancel every timer. Requests already in flight complete, but
        schedule nothing further."""
        self.closed = True
        self._cancel_poll_timer()
        for timer in (self._replay_timer, self._settle_timer):
            if timer is not None:
                timer.cancel()
        self._replay_timer = None
        self._settle_timer = None

    async def set_running(self, running: bool) -> None:
        """Continuous run on/off."""
        self.autorun = running
        if running:
            await self.poll()
        else:
            self._cancel_poll_timer()

    async def single_shot(self) -> bool:
        """Request one acquisition while continuous run is off."""
        if self.autorun:
            logger.debug("Continuous run active, ignoring single shot.")
            return False
        return await self.push(refresh=True, force=True, single=True)

    async def retry(self) -> None:
        """Resume after a fatal notice."""
        self.halted = False
        self.awaiting_ack = False
        self._last_get_failed = False
        await self.poll()

    def acknowledge(self) -> None:
        """Dismiss the pending notice.

        Polling resumes unless a fatal notice halted the loop; that takes
        `retry`.
        """
        self.awaiting_ack = False
        if self.autorun and not self.halted:
            self._schedule_poll(0)

    def begin_edit(self) -> None:
        self.editing = True

    def end_edit(self) -> None:
        self.editing = False

    def note_view_gesture(self) -> None:
        """Record a pan/zoom event.

        The view's x-range is written to the local parameters and pushed once
        no further gesture has arrived for `settle_delay` seconds.
        """
        self.view.gesture_active = True
        if self._settle_timer is not None:
            self._settle_timer.cancel()
        self._settle_timer = asyncio.get_running_loop().call_later(
            self.settle_delay, self._gesture_settled
        )

    def _gesture_settled(self) -> None:
        self._settle_timer = None
        self.view.gesture_active = False
        x_range = self.view.x_range
        if x_range is None or not self.store.is_loaded or self.closed:
            return
        self.store.set("xmin", round(float(x_range[0]), XDECIMAL_PLACES))
        self.store.set("xmax", round(float(x_range[1]), XDECIMAL_PLACES))
        self._spawn(self.push(refresh=True))

    async def wait_idle(self) -> None:
        """Wait until spawned background tasks have finished (tests, shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# ============================================================================
# notification queue helpers
# ============================================================================


def clean_queue(qu: asyncio.Queue):
    while not qu.empty():
        try:
            qu.get_nowait()
        except asyncio.QueueEmpty:
            break


def queue_to_list(qu: asyncio.Queue, nitems: int = 10) -> list:
    lst = []
    i = 0
    while not qu.empty():
        i += 1
        if i > nitems:
            break
        lst.append(qu.get_nowait())
    return lst


async def wait_for_notif(
    qu: asyncio.Queue, notif_type: Type[Notification], timeout=DEFAULT_TIMEOUT
):
    start = time.time()
    while time.time() - start < timeout:
        try:
            notif = qu.get_nowait()
            if isinstance(notif, notif_type):
                return notif
        except asyncio.QueueEmpty:
            pass
        await asyncio.sleep(0.01)
    raise TimeoutError(f"Timeout waiting for {notif_type} notification.")
