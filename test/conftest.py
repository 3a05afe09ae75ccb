import asyncio
from typing import Optional

import numpy as np
import pytest

from digview.types import STATUS_OK, AppInfo, DataResponse, Datasets
from digview.util import ClientSettings


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "slow: marks test as slow running test")


def make_params(**overrides) -> dict:
    params = {
        "trig_mode": 1,
        "trig_source": 3,
        "trig_level": 0.1,
        "digdar_trig_excite": 0.5,
        "digdar_trig_relax": 0.3,
        "digdar_trig_delay": 0,
        "digdar_trig_latency": 10,
        "digdar_acp_excite": 0.5,
        "digdar_acp_relax": 0.3,
        "digdar_acp_latency": 10,
        "digdar_arp_excite": 0.5,
        "digdar_arp_relax": 0.3,
        "digdar_arp_latency": 10,
        "time_units": 0,
        "time_range": 0,
        "xmin": 0,
        "xmax": 10,
        "auto_flag": 0,
        "forcex_flag": 0,
        "min_y": 0,
        "max_y": 0,
        "en_avg_at_dec": 1,
        "gui_reset_y_range": 2,
        "scale_ch1": 1,
        "scale_ch2": 1,
    }
    params.update(overrides)
    return params


def make_channels(n_points: int = 1000, n_channels: int = 4) -> list[np.ndarray]:
    x = np.linspace(0, 10, n_points)
    return [np.column_stack((x, np.sin(x + i))) for i in range(n_channels)]


def data_response(
    params: Optional[dict] = None,
    status: str = STATUS_OK,
    app_id: str = "digdar",
    channels: Optional[list] = None,
    reason: Optional[str] = None,
) -> DataResponse:
    datasets = None
    if params is not None or channels is not None:
        datasets = Datasets(params=params, g1=channels or [])
    return DataResponse(
        status=status, app=AppInfo(id=app_id), datasets=datasets, reason=reason
    )


class FakeTransport:
    """In-memory instrument server.

    `fetch_results` / `push_results` / `start_results` are consumed first
    (exceptions are raised); once empty the fake answers like a healthy server
    echoing pushed parameters back. Gates, when set, hold the matching call
    until released.
    """

    def __init__(self, params: Optional[dict] = None):
        self.server_params = dict(params if params is not None else make_params())
        self.channels = make_channels()
        self.fetch_results: list = []
        self.push_results: list = []
        self.start_results: list = []
        self.fetch_gate: Optional[asyncio.Event] = None
        self.push_gate: Optional[asyncio.Event] = None
        self.calls: list[str] = []
        self.fetches: list[float] = []
        self.pushes: list[tuple[dict, float]] = []
        self.stored: Optional[dict] = None
        self.factory = make_params(trig_mode=0, digdar_trig_excite=0.2)
        self.stop_calls = 0

    @staticmethod
    def _next(results: list):
        result = results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def fetch(self, timeout: float) -> DataResponse:
        self.calls.append("fetch")
        self.fetches.append(timeout)
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        await asyncio.sleep(0)
        if self.fetch_results:
            return self._next(self.fetch_results)
        return data_response(dict(self.server_params), channels=self.channels)

    async def push(self, params: dict, timeout: float) -> DataResponse:
        self.calls.append("push")
        self.pushes.append((dict(params), timeout))
        if self.push_gate is not None:
            await self.push_gate.wait()
        await asyncio.sleep(0)
        if self.push_results:
            return self._next(self.push_results)
        self.server_params.update(params)
        self.server_params["auto_flag"] = 0
        return data_response(dict(self.server_params))

    async def start_app(self, timeout: float) -> DataResponse:
        self.calls.append("start")
        await asyncio.sleep(0)
        if self.start_results:
            return self._next(self.start_results)
        return data_response()

    def stop_app(self, timeout=None) -> bool:
        self.stop_calls += 1
        return True

    def store_params(self, params: dict) -> None:
        self.stored = dict(params)

    def load_params(self) -> dict:
        return dict(self.stored or {})

    def load_factory_params(self) -> dict:
        return dict(self.factory)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def temp_config_dir(tmp_path, monkeypatch):
    """Keep ClientSettings away from the real home directory."""
    config_dir = tmp_path / ".digview"
    monkeypatch.setattr(ClientSettings, "config_dir", config_dir)
    return config_dir
