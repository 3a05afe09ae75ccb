"""
Command-line interface for digview.

Built with click; every command accepts `--url` to override the instrument
address stored in `~/.digview/client.ini`, plus the usual logging options.

Examples
--------
Live view for one minute:
```bash
$ digview run --plot -d 60 -u http://192.168.1.100
```

Saving the factory defaults to a file:
```bash
$ digview load --factory -o factory.json
```

CLI Tree
--------

```
$ digview --tree
cli
└── load
└── params
└── run
└── stop
└── store
```
"""

from .base import cli, tree_option

__all__ = ["cli", "tree_option"]
