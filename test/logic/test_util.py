import numpy as np
import pytest

from digview.util import convert_hz, convert_sec, load_params_file, save_params_file, shorten_float


class TestUnits:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, "---.- Hz"),
            (1.5, "1.500 Hz"),
            (1500, "1.500 kHz"),
            (25000, "25.00 kHz"),
            (2.5e6, "2.500 MHz"),
        ],
    )
    def test_convert_hz(self, value, expected):
        assert convert_hz(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            (5e-9, "5.000 ns"),
            (2e-6, "2.000 µs"),
            (0.25, "250.0 ms"),
            (3, "3.000 s"),
        ],
    )
    def test_convert_sec(self, value, expected):
        assert convert_sec(value) == expected

    def test_shorten_float(self):
        assert shorten_float(12.345) == "12.3"
        assert shorten_float(1.23456) == "1.235"


class TestParamsFile:
    def test_round_trip(self, tmp_path):
        params = {"trig_mode": np.int64(1), "digdar_trig_excite": np.float32(0.5), "xmax": 10}
        path = save_params_file(params, str(tmp_path / "sub" / "params.json"))
        loaded = load_params_file(path)
        assert loaded == {"trig_mode": 1, "digdar_trig_excite": 0.5, "xmax": 10}

    def test_rejects_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError):
            load_params_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_params_file(str(tmp_path / "nope.json"))
