"""Message types for client-server communication and client notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
from mashumaro import DataClassDictMixin
from mashumaro.types import Discriminator

STATUS_OK = "OK"
STATUS_ERROR = "ERROR"
STATUS_AGAIN = "AGAIN"  # more data ready, poll again without waiting


def _channels_from_json(value) -> list[np.ndarray]:
    """Each channel arrives either as a bare list of [x, y] pairs or as a
    series object carrying the pairs under "data"."""
    channels = []
    for chan in value:
        if isinstance(chan, dict):
            chan = chan.get("data", [])
        arr = np.asarray(chan, dtype=float).reshape(-1, 2)
        arr.setflags(write=False)
        channels.append(arr)
    return channels


def _channels_to_json(value: list[np.ndarray]) -> list:
    return [np.asarray(chan).tolist() for chan in value]


@dataclass
class Message(DataClassDictMixin):
    """Base class for all messages."""

    def __repr__(self):
        msg = self.__class__.__name__ + "("
        for i, (name, val) in enumerate(self.__dict__.items()):
            if i not in (0, len(self.__dict__)):
                msg += ", "
            if isinstance(val, np.ndarray):
                msg += f"{name}=<Array>"
            elif isinstance(val, list) and val and isinstance(val[0], np.ndarray):
                msg += f"{name}=<{len(val)} series>"
            else:
                msg += f"{name}={getattr(self, name)}"
        return msg + ")"


@dataclass(kw_only=True, repr=False)
class AppInfo(Message):
    id: str = ""


@dataclass(kw_only=True, repr=False)
class Datasets(Message):
    params: Optional[dict[str, Any]] = None
    g1: list[np.ndarray] = field(
        default_factory=list,
        metadata={"serialize": _channels_to_json, "deserialize": _channels_from_json},
    )


@dataclass(kw_only=True, repr=False)
class DataResponse(Message):
    """Response of the data endpoint, for both poll (GET) and push (POST).

    Push responses carry extra derived fields inside `params` (`forcex_flag`,
    `min_y`, `max_y`) used to apply server computed ranges. The start endpoint
    answers with the same shape minus the datasets.
    """

    status: str = STATUS_OK
    app: Optional[AppInfo] = None
    datasets: Optional[Datasets] = None
    reason: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.status == STATUS_ERROR

    @property
    def is_again(self) -> bool:
        return self.status == STATUS_AGAIN

    @property
    def has_params(self) -> bool:
        return self.datasets is not None and self.datasets.params is not None

    @property
    def params(self) -> Optional[dict[str, Any]]:
        return self.datasets.params if self.datasets is not None else None

    @property
    def channels(self) -> list[np.ndarray]:
        return self.datasets.g1 if self.datasets is not None else []

    @property
    def app_id(self) -> Optional[str]:
        return self.app.id if self.app is not None else None


@dataclass(kw_only=True, repr=False)
class PushRequest(Message):
    params: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {"datasets": {"params": dict(self.params)}}


# ============================================================================
# Notifications: pushed onto the client's notification queue for the UI
# ============================================================================


@dataclass(kw_only=True, repr=False)
class Notification(Message):
    type: str

    class Config:
        discriminator = Discriminator(field="type", include_subtypes=True)


@dataclass(kw_only=True, repr=False)
class ErrorNotice(Notification):
    """A user-visible failure. Fatal notices halt automatic polling until the
    operator retries or acknowledges them."""

    type: str = "error_notice"
    message: str
    fatal: bool = False
    retry: bool = False
    restart: bool = False
    ignore: bool = False


@dataclass(kw_only=True, repr=False)
class AppSwitchNotice(Notification):
    """The server runs a different application than this client expects."""

    type: str = "app_switch"
    app_id: str


@dataclass(kw_only=True, repr=False)
class SingleShotReady(Notification):
    """Continuous run is off; the loop stopped and waits for a single shot."""

    type: str = "single_shot_ready"
