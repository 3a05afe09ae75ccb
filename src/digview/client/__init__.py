"""
Client side of the instrument interface: HTTP transport, connection
management and the poll/push scheduler.
"""

from .connection_manager import ConnectionManager
from .scheduler import (
    DispatchState,
    SyncScheduler,
    SyncState,
    clean_queue,
    queue_to_list,
    wait_for_notif,
)

__all__ = [
    "ConnectionManager",
    "DispatchState",
    "SyncScheduler",
    "SyncState",
    "clean_queue",
    "queue_to_list",
    "wait_for_notif",
]
