# -*- coding: utf-8 -*-
"""
Utility functions and constants for digview.

This module provides:

- Logging configuration and management
- Default constants (addresses, intervals, timeouts, zoom limits)
- Client settings stored in an INI file
- Stride decimation of sample series for display
- "Nice number" zoom steps
- Human readable unit formatting
- Parameter snapshot files

Examples
--------
Decimating a channel before drawing it:
```python
from digview.util import decimate
shown = decimate(series, width=500, points_per_px=5)
```

Finding the next zoom step:
```python
from digview.util import nearest_ranges
nearest_ranges(3.0)  # RangeStep(prev=2.0, next=5.0)
```

See Also
--------
digview.util.logging : Logging configuration
digview.util.settings : INI backed client settings
"""

from .decimate import decimate, decimation_stride
from .defaults import (
    DEFAULT_APP_ID,
    DEFAULT_LOGLEVEL,
    DEFAULT_ROOT_URL,
    DEFAULT_TIMEOUT,
    LONG_TIMEOUT,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    get_log_filename,
    log_default_path_client,
    shutdown_client_log,
    start_client_log,
)
from .range_steps import RangeStep, nearest_ranges
from .save import load_params_file, save_params_file
from .settings import ClientSettings
from .units import convert_hz, convert_sec, shorten_float

__all__ = [
    "DEFAULT_APP_ID",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_ROOT_URL",
    "DEFAULT_TIMEOUT",
    "LONG_TIMEOUT",
    "TEST_LOGLEVEL",
    "ClientSettings",
    "RangeStep",
    "clear_log",
    "convert_hz",
    "convert_sec",
    "decimate",
    "decimation_stride",
    "get_log_filename",
    "load_params_file",
    "log_default_path_client",
    "nearest_ranges",
    "save_params_file",
    "shorten_float",
    "shutdown_client_log",
    "start_client_log",
]
