"""
Connection manager for the instrument's HTTP interface.

This class owns the connection lifecycle and exposes the blocking protocol
functions of `digview.client.transport` in two ways:

- the three calls the sync loop needs (`fetch`, `push`, `start_app`) as
  coroutines run in a worker thread, so it satisfies the `Transport` protocol
- everything else by delegation with the connection injected
  (`manager.load_params()` calls `transport.load_params(connection)`)
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from loguru import logger

import digview.client.transport as client
from digview.types import ClientConnection, DataResponse
from digview.util import DEFAULT_APP_ID, DEFAULT_ROOT_URL


class ConnectionManager:
    """
    Manages the client-side connection to the instrument.

    Connection state lives here; the protocol itself lives in the transport
    module's functions, which this class wraps as methods.
    """

    def __init__(self):
        self._connection: Optional[ClientConnection] = None

    @property
    def connection(self) -> Optional[ClientConnection]:
        """Get the current connection."""
        return self._connection

    def is_connected(self) -> bool:
        """Check if a session is open."""
        return self._connection is not None

    def connect(
        self, root_url: str = DEFAULT_ROOT_URL, app_id: str = DEFAULT_APP_ID
    ) -> None:
        """Open a session to the instrument."""
        if self._connection:
            logger.warning("Already connected, disconnecting first")
            self.disconnect()
        self._connection = client.open_connection(root_url, app_id)

    def disconnect(self) -> None:
        """Close the session."""
        if self._connection:
            client.close_connection(self._connection)
            self._connection = None

    def _require_connection(self) -> ClientConnection:
        if not self._connection:
            raise RuntimeError("Not connected to server")
        return self._connection

    # ========================================================================
    # Transport protocol, used by the sync loop
    # ========================================================================

    async def fetch(self, timeout: float) -> DataResponse:
        conn = self._require_connection()
        return await asyncio.to_thread(client.get_data, conn, timeout)

    async def push(self, params: dict[str, Any], timeout: float) -> DataResponse:
        conn = self._require_connection()
        return await asyncio.to_thread(client.post_data, conn, params, timeout)

    async def start_app(self, timeout: float) -> DataResponse:
        conn = self._require_connection()
        return await asyncio.to_thread(client.start_app, conn, timeout)

    # ========================================================================
    # Access transport.py functions 'through' the connection manager w
    # automatic check if connection is open.
    # ========================================================================

    def __getattr__(self, name: str) -> Any:
        """
        Delegate unknown attributes to transport protocol functions.

        Examples:
            manager = ConnectionManager()
            manager.connect("http://192.168.1.100")

            manager.store_params(params)  # transport.store_params(connection, params)
            params = manager.load_factory_params()
            manager.stop_app()

        Raises:
            RuntimeError: If not connected to server
            AttributeError: If no matching transport function exists
        """
        if not name.startswith("_") and hasattr(client, name):
            func = getattr(client, name)

            def wrapper(*args, **kwargs):
                return func(self._require_connection(), *args, **kwargs)

            return wrapper
        raise AttributeError(f"'{self.__class__.__name__}' has no attribute '{name}'")
