"""
Confirmed/local parameter snapshots.

The instrument's state is a flat mapping of parameter names to scalars. The
client keeps two copies of it:

- `confirmed`: the last snapshot acknowledged by the server
- `local`: the same snapshot plus any edits the operator has not sent yet

Both are replaced wholesale whenever a poll or push response is accepted,
never merged field by field, so stale values cannot survive a round trip.
The one exception is the operator-editing case, where only the
unit-tracking fields follow the server and everything else in `local` is
left alone so an in-progress edit is not clobbered.

Until the first server round trip completes both snapshots are None and
anything depending on parameters is disabled.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping, Optional

from loguru import logger

from digview.types.params import PUSH_ONLY_FIELDS, UNIT_TRACKING_FIELDS

_MISSING = object()


class ParamStore:
    def __init__(self):
        self._confirmed: Optional[dict[str, Any]] = None
        self._local: Optional[dict[str, Any]] = None

    @property
    def confirmed(self) -> Optional[Mapping[str, Any]]:
        """Read-only view of the server-confirmed snapshot."""
        if self._confirmed is None:
            return None
        return MappingProxyType(self._confirmed)

    @property
    def local(self) -> Optional[Mapping[str, Any]]:
        """Read-only view of the local snapshot, edits included."""
        if self._local is None:
            return None
        return MappingProxyType(self._local)

    @property
    def is_loaded(self) -> bool:
        return self._confirmed is not None

    def adopt(self, server_params: Mapping[str, Any], editing: bool = False) -> None:
        """Accept a parameter snapshot reported by the server.

        Parameters
        ----------
        server_params : Mapping[str, Any]
            Parameters from a poll or push response. Non-mapping input is
            ignored.
        editing : bool, optional
            The operator is mid-edit. Only the unit-tracking fields are merged
            into both snapshots; the rest of `local` is preserved. Ignored
            before the first snapshot has been adopted.
        """
        if not isinstance(server_params, Mapping):
            logger.warning("Ignoring non-mapping parameters: {}", server_params)
            return

        if editing and self._confirmed is not None:
            for key in UNIT_TRACKING_FIELDS:
                if key in server_params:
                    self._confirmed[key] = server_params[key]
                    self._local[key] = server_params[key]
            return

        self._confirmed = dict(server_params)
        self._local = dict(self._confirmed)

    def dirty_keys(self) -> set[str]:
        """Keys whose local value differs from the confirmed one.

        Computed on every call. Push-only fields are excluded: the server
        always reports them cleared.
        """
        if self._confirmed is None:
            return set()
        return {
            key
            for key, value in self._confirmed.items()
            if key not in PUSH_ONLY_FIELDS
            and self._local.get(key, _MISSING) != value
        }

    def is_dirty(self) -> bool:
        return bool(self.dirty_keys())

    def get(self, key: str, default=None):
        if self._local is None:
            return default
        return self._local.get(key, default)

    def set(self, key: str, value) -> None:
        """Edit a local value. Raises RuntimeError before any snapshot exists."""
        if self._local is None:
            raise RuntimeError("No parameters loaded from the server yet")
        self._local[key] = value

    def replace_local(self, params: Mapping[str, Any]) -> None:
        """Replace the local snapshot wholesale (config load, file upload).

        `confirmed` is untouched, so the replacement only reaches the
        instrument with the next push.
        """
        if not isinstance(params, Mapping):
            raise TypeError(f"Expected a mapping of parameters, got {type(params)}")
        self._local = dict(params)
        if self._confirmed is not None:
            # keep local a superset of confirmed
            for key, value in self._confirmed.items():
                self._local.setdefault(key, value)

    def snapshot(self) -> dict[str, Any]:
        """Copy of the local snapshot, as sent by a push."""
        return dict(self._local) if self._local is not None else {}
