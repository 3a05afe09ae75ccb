"""Parameter names and enumerations used by the digdar application.

The instrument exposes its state as a flat mapping of parameter names to
scalars. Most names are fixed, but trigger levels and latencies live in
different fields depending on which trigger source is selected, so lookups
go through the helpers below.
"""

from __future__ import annotations

from typing import Optional

# trig_mode
TRIG_MODE_CONTINUOUS = 0  # "auto": free running, no discrete trigger
TRIG_MODE_NORMAL = 1
TRIG_MODE_SINGLE = 2

# trig_source
TRIG_SOURCE_IMMEDIATE = 0
TRIG_SOURCE_EXTERNAL = 2
TRIG_SOURCE_DIGDAR = 3
TRIG_SOURCE_ACP = 4
TRIG_SOURCE_ARP = 5

# time_units
TIME_UNIT_LABELS = {0: "µs", 1: "ms", 2: "s"}

# fields that always track the server, even while the operator is editing
UNIT_TRACKING_FIELDS = ("time_units",)

# fields that are written by the client but never confirmed by the server
PUSH_ONLY_FIELDS = ("auto_flag",)

# trigger delay / latency fields are stored in 8 ns clock ticks
CLOCK_TICK_NS = 8

_EXCITE_FIELDS = {
    TRIG_SOURCE_IMMEDIATE: "trig_level",
    TRIG_SOURCE_DIGDAR: "digdar_trig_excite",
    TRIG_SOURCE_ACP: "digdar_acp_excite",
    TRIG_SOURCE_ARP: "digdar_arp_excite",
}

_RELAX_FIELDS = {
    TRIG_SOURCE_IMMEDIATE: "trig_level",
    TRIG_SOURCE_DIGDAR: "digdar_trig_relax",
    TRIG_SOURCE_ACP: "digdar_acp_relax",
    TRIG_SOURCE_ARP: "digdar_arp_relax",
}

_LATENCY_FIELDS = {
    TRIG_SOURCE_DIGDAR: "digdar_trig_latency",
    TRIG_SOURCE_ACP: "digdar_acp_latency",
    TRIG_SOURCE_ARP: "digdar_arp_latency",
}


def excite_param_name(trig_source) -> Optional[str]:
    """Field holding the excite (arming) level for a trigger source."""
    return _EXCITE_FIELDS.get(trig_source)


def relax_param_name(trig_source) -> Optional[str]:
    """Field holding the relax (re-arm) level for a trigger source."""
    return _RELAX_FIELDS.get(trig_source)


def latency_param_name(trig_source) -> Optional[str]:
    return _LATENCY_FIELDS.get(trig_source)


def time_unit_label(time_units) -> str:
    return TIME_UNIT_LABELS.get(time_units, "s")
