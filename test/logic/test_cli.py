from unittest.mock import patch

import click.testing
import pytest
import simplejson as json

from digview.cli import cli
from digview.types import CommsError

from conftest import data_response, make_params


@pytest.fixture
def cli_runner():
    return click.testing.CliRunner()


@pytest.fixture
def log_args(tmp_path, temp_config_dir):
    return ["--no-log-to-file", "--log-path", str(tmp_path / "client.log")]


class TestTree:
    def test_tree(self, cli_runner):
        result = cli_runner.invoke(cli, ["--tree"])
        assert result.exit_code == 0
        for name in ("load", "params", "run", "stop", "store"):
            assert f"└── {name}" in result.output


class TestParamsCLI:
    @patch("digview.client.transport.get_data")
    def test_prints_params(self, mock_get_data, cli_runner, log_args):
        mock_get_data.return_value = data_response(make_params())
        result = cli_runner.invoke(cli, ["params", "-u", "http://instrument", *log_args])
        assert result.exit_code == 0
        assert "trig_mode = 1" in result.output
        conn = mock_get_data.call_args[0][0]
        assert conn.root_url == "http://instrument"

    @patch("digview.client.transport.get_data")
    def test_json_output(self, mock_get_data, cli_runner, log_args):
        mock_get_data.return_value = data_response(make_params())
        result = cli_runner.invoke(cli, ["params", "--json", *log_args])
        assert result.exit_code == 0
        assert json.loads(result.output)["digdar_trig_excite"] == 0.5

    @patch("digview.client.transport.get_data")
    def test_unreachable(self, mock_get_data, cli_runner, log_args):
        mock_get_data.side_effect = CommsError("GET /data failed")
        result = cli_runner.invoke(cli, ["params", *log_args])
        assert result.exit_code != 0
        assert "GET /data failed" in result.output

    @patch("digview.client.transport.get_data")
    def test_application_error(self, mock_get_data, cli_runner, log_args):
        mock_get_data.return_value = data_response(status="ERROR", reason="not loaded")
        result = cli_runner.invoke(cli, ["params", *log_args])
        assert result.exit_code != 0
        assert "not loaded" in result.output


class TestConfigCLI:
    @patch("digview.client.transport.store_params")
    @patch("digview.client.transport.get_data")
    def test_store_current(self, mock_get_data, mock_store, cli_runner, log_args):
        mock_get_data.return_value = data_response(make_params())
        result = cli_runner.invoke(cli, ["store", *log_args])
        assert result.exit_code == 0
        assert mock_store.call_args[0][1] == make_params()

    @patch("digview.client.transport.store_params")
    def test_store_file(self, mock_store, cli_runner, log_args, tmp_path):
        path = tmp_path / "params.json"
        path.write_text(json.dumps({"trig_mode": 2}))
        result = cli_runner.invoke(cli, ["store", "-f", str(path), *log_args])
        assert result.exit_code == 0
        assert mock_store.call_args[0][1] == {"trig_mode": 2}
        assert "Stored 1 parameters." in result.output

    @patch("digview.client.transport.load_factory_params")
    def test_load_factory_to_file(self, mock_load, cli_runner, log_args, tmp_path):
        mock_load.return_value = {"trig_mode": 0}
        out = tmp_path / "factory.json"
        result = cli_runner.invoke(cli, ["load", "--factory", "-o", str(out), *log_args])
        assert result.exit_code == 0
        assert json.loads(out.read_text()) == {"trig_mode": 0}

    @patch("digview.client.transport.load_params")
    def test_load_prints(self, mock_load, cli_runner, log_args):
        mock_load.return_value = {"trig_mode": 1}
        result = cli_runner.invoke(cli, ["load", *log_args])
        assert result.exit_code == 0
        assert "trig_mode = 1" in result.output


class TestStopCLI:
    @patch("digview.client.transport.stop_app")
    def test_stop(self, mock_stop, cli_runner, log_args):
        mock_stop.return_value = True
        result = cli_runner.invoke(cli, ["stop", *log_args])
        assert result.exit_code == 0
        assert "Application stopped." in result.output

    @patch("digview.client.transport.stop_app")
    def test_stop_failed(self, mock_stop, cli_runner, log_args):
        mock_stop.return_value = False
        result = cli_runner.invoke(cli, ["stop", *log_args])
        assert result.exit_code != 0


class TestRunCLI:
    @patch("digview.client.transport.stop_app")
    @patch("digview.client.transport.get_data")
    def test_headless_run(self, mock_get_data, mock_stop, cli_runner, log_args):
        mock_get_data.return_value = data_response(
            make_params(digdar_trig_rate=1000), channels=[]
        )
        mock_stop.return_value = True
        result = cli_runner.invoke(cli, ["run", "-d", "0.2", *log_args])
        assert result.exit_code == 0
        assert "trigger rate: 1.000 kHz" in result.output
        mock_stop.assert_called_once()

    @patch("digview.client.transport.stop_app")
    @patch("digview.client.transport.get_data")
    def test_fatal_error_ends_run(self, mock_get_data, mock_stop, cli_runner, log_args):
        mock_get_data.side_effect = CommsError("refused")
        result = cli_runner.invoke(cli, ["run", "-d", "5", *log_args])
        assert result.exit_code == 0
        assert "Data receiving failed" in result.output
