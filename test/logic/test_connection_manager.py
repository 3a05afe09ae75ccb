"""Tests for ConnectionManager class"""

from unittest.mock import patch

import pytest
from loguru import logger

import digview
from digview.client import ConnectionManager
from digview.types import Transport
from digview.util import TEST_LOGLEVEL

from conftest import data_response, make_params


class TestConnectionManager:
    @pytest.fixture(autouse=True, scope="class")
    def client_log(self):
        digview.util.start_client_log(
            log_level=TEST_LOGLEVEL, log_to_stdout=True, log_to_file=False
        )
        yield
        digview.util.shutdown_client_log()

    @pytest.fixture(autouse=True)
    def log(self, request):
        logger.warning("STARTED Test '{}'".format(request.node.originalname))

        def fin():
            logger.warning("COMPLETED Test '{}' \n".format(request.node.originalname))

        request.addfinalizer(fin)

    @pytest.fixture
    def manager(self):
        manager = ConnectionManager()
        yield manager
        manager.disconnect()

    def test_initial_state(self, manager: ConnectionManager):
        """Test initial state of ConnectionManager"""
        assert not manager.is_connected()
        assert manager.connection is None

    def test_connect_disconnect(self, manager: ConnectionManager):
        manager.connect("http://192.168.1.7", "digdar")
        assert manager.is_connected()
        assert manager.connection.root_url == "http://192.168.1.7"

        manager.connect("192.168.1.8")
        assert manager.connection.root_url == "http://192.168.1.8"

        manager.disconnect()
        assert not manager.is_connected()
        assert manager.connection is None

    def test_is_transport(self, manager: ConnectionManager):
        assert isinstance(manager, Transport)

    def test_requires_connection(self, manager: ConnectionManager):
        with pytest.raises(RuntimeError):
            manager.load_params()

    def test_unknown_attribute(self, manager: ConnectionManager):
        with pytest.raises(AttributeError):
            manager.not_a_protocol_function()
        with pytest.raises(AttributeError):
            manager._get

    def test_delegation_injects_connection(self, manager: ConnectionManager):
        manager.connect("http://instrument")
        with patch("digview.client.transport.load_params") as load_params:
            load_params.return_value = {"trig_mode": 1}
            assert manager.load_params(5) == {"trig_mode": 1}
            load_params.assert_called_once_with(manager.connection, 5)

    @pytest.mark.asyncio
    async def test_fetch_runs_get_data(self, manager: ConnectionManager):
        manager.connect("http://instrument")
        with patch("digview.client.transport.get_data") as get_data:
            get_data.return_value = data_response(make_params())
            resp = await manager.fetch(2)
            get_data.assert_called_once_with(manager.connection, 2)
        assert resp.params["trig_mode"] == 1

    @pytest.mark.asyncio
    async def test_push_runs_post_data(self, manager: ConnectionManager):
        manager.connect("http://instrument")
        with patch("digview.client.transport.post_data") as post_data:
            post_data.return_value = data_response(make_params())
            await manager.push({"trig_mode": 1}, 20)
            post_data.assert_called_once_with(manager.connection, {"trig_mode": 1}, 20)

    @pytest.mark.asyncio
    async def test_fetch_requires_connection(self, manager: ConnectionManager):
        with pytest.raises(RuntimeError):
            await manager.fetch(1)
