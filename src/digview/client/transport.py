# -*- coding: utf-8 -*-
"""
HTTP side of the client-server interface.

The instrument runs a small web server exposing the application's state as
JSON. Every function here takes a `ClientConnection` as its first argument
and performs one blocking request; `ConnectionManager` wraps them for use
from the event loop.

Endpoints (relative to the connection's root url):

    GET  /data                  current dataset (poll)
    POST /data                  push parameters, answers like a poll
    GET  /bazaar?start=<app>    ensure the application is running
    GET  /bazaar?stop=          stop it
    POST /store_params          store a parameter snapshot on the instrument
    GET  /load_params           read back the stored snapshot
    GET  /load_factory_params   read the factory default snapshot

Transport failures (connection refused, timeouts, HTTP error statuses) are
raised as `CommsError`, responses that are not the expected JSON shape as
`ResponseFormatError`.
"""

# ============================================================================

from __future__ import annotations

from typing import Any, Optional

import requests
import simplejson as json
from loguru import logger
from mashumaro.exceptions import InvalidFieldValue, MissingField

from digview.types import (
    ClientConnection,
    CommsError,
    DataResponse,
    PushRequest,
    ResponseFormatError,
)
from digview.util import DEFAULT_APP_ID, DEFAULT_ROOT_URL, DEFAULT_TIMEOUT

# ============================================================================

DATA_PATH = "/data"
BAZAAR_PATH = "/bazaar"
STORE_PARAMS_PATH = "/store_params"
LOAD_PARAMS_PATH = "/load_params"
LOAD_FACTORY_PARAMS_PATH = "/load_factory_params"

# ============================================================================
# ----------------------------------
# Connection
# ----------------------------------
# ============================================================================


def open_connection(
    root_url: str = DEFAULT_ROOT_URL, app_id: str = DEFAULT_APP_ID
) -> ClientConnection:
    """Prepare an HTTP session for the instrument at `root_url`.

    No request is made; the first poll tells whether the server is there.

    Parameters
    ----------
    root_url : str, optional
        Base url of the instrument, by default DEFAULT_ROOT_URL
    app_id : str, optional
        Application the client drives, by default DEFAULT_APP_ID

    Returns
    -------
    ClientConnection
        The connection object passed to every other function in this module
    """
    if "://" not in root_url:
        root_url = "http://" + root_url
    session = requests.Session()
    # responses must never be served from a cache
    session.headers.update({"Cache-Control": "no-cache", "Pragma": "no-cache"})
    logger.info("Opening session to {} for application '{}'.", root_url, app_id)
    return ClientConnection(session, root_url.rstrip("/"), app_id)


def close_connection(client_connection: ClientConnection):
    """Close the HTTP session."""
    logger.info("Closing connection.")
    client_connection.session.close()


# ============================================================================
# ----------------------------------
# Requests
# ----------------------------------
# ============================================================================


def _url(client_connection: ClientConnection, path: str) -> str:
    return client_connection.root_url + path


def _get(
    client_connection: ClientConnection,
    path: str,
    timeout: float,
    params: Optional[dict] = None,
) -> requests.Response:
    url = _url(client_connection, path)
    logger.debug("*REQUEST* (client->): GET {} {}", url, params or "")
    try:
        resp = client_connection.session.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning("GET {} failed: {}", url, e)
        raise CommsError(f"GET {path} failed: {e}") from e
    logger.debug("*RESPONSE* (client<-): {} ({} bytes)", resp.status_code, len(resp.content))
    return resp


def _post(
    client_connection: ClientConnection, path: str, body: Any, timeout: float
) -> requests.Response:
    url = _url(client_connection, path)
    data = json.dumps(body)
    logger.debug("*REQUEST* (client->): POST {} {}", url, data)
    try:
        resp = client_connection.session.post(url, data=data, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning("POST {} failed: {}", url, e)
        raise CommsError(f"POST {path} failed: {e}") from e
    logger.debug("*RESPONSE* (client<-): {} ({} bytes)", resp.status_code, len(resp.content))
    return resp


def _decode(resp: requests.Response) -> Any:
    try:
        return json.loads(resp.text)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"Response is not JSON: {e}") from e


def parse_data_response(payload: Any) -> DataResponse:
    """Deserialize the JSON body of the data/start endpoints.

    Raises
    ------
    ResponseFormatError
        If `payload` is not an object or its fields have the wrong shape
    """
    if not isinstance(payload, dict):
        raise ResponseFormatError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return DataResponse.from_dict(payload)
    except (MissingField, InvalidFieldValue, TypeError, ValueError) as e:
        raise ResponseFormatError(f"Unexpected response shape: {e}") from e


def _decode_params(resp: requests.Response) -> dict[str, Any]:
    params = _decode(resp)
    # stored snapshots come back as a JSON encoded string
    if isinstance(params, str):
        try:
            params = json.loads(params)
        except json.JSONDecodeError as e:
            raise ResponseFormatError(f"Stored parameters are not JSON: {e}") from e
    if not isinstance(params, dict):
        raise ResponseFormatError(
            f"Expected a parameter object, got {type(params).__name__}"
        )
    return params


# ============================================================================
# ----------------------------------
# Protocol
# ----------------------------------
# ============================================================================


def get_data(
    client_connection: ClientConnection, timeout: float = DEFAULT_TIMEOUT
) -> DataResponse:
    """Poll the current dataset and parameters."""
    resp = _get(client_connection, DATA_PATH, timeout)
    data = parse_data_response(_decode(resp))
    logger.trace("*RESPONSE* (client<-): {}", data)
    return data


def post_data(
    client_connection: ClientConnection,
    params: dict[str, Any],
    timeout: float = DEFAULT_TIMEOUT,
) -> DataResponse:
    """Push a parameter snapshot; the server answers with its new state."""
    request = PushRequest(params=params)
    resp = _post(client_connection, DATA_PATH, request.to_payload(), timeout)
    return parse_data_response(_decode(resp))


def start_app(
    client_connection: ClientConnection, timeout: float = DEFAULT_TIMEOUT
) -> DataResponse:
    """Ensure the client's application is running on the server."""
    logger.info("Starting application '{}' on server.", client_connection.app_id)
    resp = _get(
        client_connection,
        BAZAAR_PATH,
        timeout,
        params={"start": client_connection.app_id},
    )
    return parse_data_response(_decode(resp))


def stop_app(
    client_connection: ClientConnection, timeout: float = DEFAULT_TIMEOUT
) -> bool:
    """Stop the running application. Best effort: failures are logged, not
    raised, since this runs on teardown."""
    logger.info("Stopping application on server.")
    try:
        _get(client_connection, BAZAAR_PATH, timeout, params={"stop": ""})
    except CommsError as e:
        logger.warning("Could not stop the application: {}", e)
        return False
    return True


def store_params(
    client_connection: ClientConnection,
    params: dict[str, Any],
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """Store a parameter snapshot on the instrument."""
    _post(client_connection, STORE_PARAMS_PATH, params, timeout)
    logger.info("Stored {} parameters on the instrument.", len(params))


def load_params(
    client_connection: ClientConnection, timeout: float = DEFAULT_TIMEOUT
) -> dict[str, Any]:
    """Read back the snapshot last stored with `store_params`."""
    return _decode_params(_get(client_connection, LOAD_PARAMS_PATH, timeout))


def load_factory_params(
    client_connection: ClientConnection, timeout: float = DEFAULT_TIMEOUT
) -> dict[str, Any]:
    """Read the instrument's factory default snapshot."""
    return _decode_params(_get(client_connection, LOAD_FACTORY_PARAMS_PATH, timeout))
