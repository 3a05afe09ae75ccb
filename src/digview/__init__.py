# -*- coding: utf-8 -*-
"""# digview Documentation

`Digitizer View`

A (python) client for the digdar remote digitizing instrument (radar /
oscilloscope front end). It polls the instrument's HTTP server for waveform
samples and parameter state, lets an operator edit instrument parameters, and
reconciles local edits with the server-confirmed state under a live,
auto-refreshing view.

Layout:

- `digview.state`: confirmed/local parameter snapshots and the view window.
- `digview.client`: HTTP transport, app lifecycle and the poll/push scheduler.
- `digview.render`: decimation, trigger overlays and plot surfaces.
- `digview.session`: the operator-facing façade tying it all together.
- `digview.cli`: command-line entry point.
"""

from ._version import __version__
