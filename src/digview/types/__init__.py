"""
Message types, protocols, parameter conventions and exceptions.

The digview.types package provides:

1. Client-Server Communication
    - `DataResponse` / `PushRequest` dataclasses for the instrument's JSON
      endpoints, deserialized with mashumaro
    - `ClientConnection` holding the HTTP session

2. Notifications
    - `ErrorNotice`, `AppSwitchNotice`, `SingleShotReady`, put on the
      client's notification queue for whatever UI is attached

3. Protocols
    - `Transport` and `PlotSurface`, the seams to the outside world

4. Parameter conventions
    - trigger modes/sources and the source dependent level field names

Examples
--------
Handling notices:
```python
from digview.types import ErrorNotice
notif = await queue.get()
if isinstance(notif, ErrorNotice) and notif.fatal:
    print(f"Error: {notif.message}")
```

See Also
--------
digview.client : Transport and scheduler
digview.types.messages : Message class definitions
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from .messages import (
    STATUS_AGAIN,
    STATUS_ERROR,
    STATUS_OK,
    AppInfo,
    AppSwitchNotice,
    DataResponse,
    Datasets,
    ErrorNotice,
    Message,
    Notification,
    PushRequest,
    SingleShotReady,
)
from .protocols import PlotSurface, Transport


@dataclass
class ClientConnection:
    """Client-side connection information."""

    session: requests.Session
    root_url: str  # e.g. http://192.168.1.100, no trailing slash
    app_id: str


# Exceptions
class CommsError(Exception):
    """Base exception for communication errors."""

    pass


class ResponseFormatError(CommsError):
    """Raised when the server answers with something that is not the expected
    JSON shape."""

    pass


__all__ = [
    "ClientConnection",
    "Message",
    "AppInfo",
    "Datasets",
    "DataResponse",
    "PushRequest",
    "Notification",
    "ErrorNotice",
    "AppSwitchNotice",
    "SingleShotReady",
    "STATUS_OK",
    "STATUS_ERROR",
    "STATUS_AGAIN",
    "PlotSurface",
    "Transport",
    "CommsError",
    "ResponseFormatError",
]
