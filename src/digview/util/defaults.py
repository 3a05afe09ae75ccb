# -*- coding: utf-8 -*-

DEFAULT_ROOT_URL = "http://192.168.1.100"  # default instrument address
DEFAULT_APP_ID = "digdar"
DEFAULT_TIMEOUT = 3  # seconds, poll/push request timeout
LONG_TIMEOUT = 20  # seconds, used for one cycle after an autoscale push
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"

UPDATE_INTERVAL = 0.05  # seconds between polls, desktop
UPDATE_INTERVAL_MOBILE = 0.5  # seconds between polls, touch devices
PUSH_REPLAY_DELAY = 0.1  # seconds before a coalesced push is replayed
ZOOMPAN_SETTLE = 0.25  # seconds after the last pan/zoom event before pushing

POINTS_PER_PX = 5  # None disables client side decimation
XDECIMAL_PLACES = 2
TRIGGER_LEVEL_DECIMAL_PLACES = 4
RANGE_OFFSET = 1  # percent of the span moved per offset click
MIN_SELECTION_SPAN = 1e-5

# view x-range sent when the operator resets the zoom
RESET_XMIN = -1000000
RESET_XMAX = 1000000

RANGE_STEPS = (0.5, 1, 2, 5, 10, 20, 50, 100)
TIME_RANGE_MAX = (130, 1000, 8, 130, 1, 8)  # indexed by the time_range param

# hard zoom limits
X_MAX_RANGE = 10.0  # seconds
X_MIN_RANGE = 20e-9  # seconds
Y_MAX_RANGE = 2  # relative units
Y_MIN_RANGE = 1e-4  # relative units

# posted once the server side app has been started
DEFAULT_PARAMS = {
    "en_avg_at_dec": 1,
    "trig_source": 3,
    "trig_mode": 1,
}
