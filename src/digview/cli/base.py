import asyncio

import click
import simplejson as json

from digview.types import AppSwitchNotice, CommsError, ErrorNotice, SingleShotReady
from digview.util import (
    ClientSettings,
    get_log_filename,
    DEFAULT_LOGLEVEL,
    save_params_file,
    load_params_file,
    start_client_log,
)


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def connection_options(f):
    """--url and the logging options shared by every command."""
    options = [
        click.option(
            "--url",
            "-u",
            default="",
            help="Instrument base url (default: from ~/.digview/client.ini)",
        ),
        click.option(
            "--log-to-file/--no-log-to-file",
            "-ltf/",
            default=True,
            help="Enable/disable logging to file (default: enabled)",
        ),
        click.option(
            "--log-to-stdout/--no-log-to-stdout",
            "-lts/",
            default=False,
            help="Enable/disable console logging (default: disabled)",
        ),
        click.option(
            "--log-path", "-lp", default="", help="Custom path for log file"
        ),
        click.option(
            "--log-level",
            "-ll",
            default=DEFAULT_LOGLEVEL,
            help="Logging level (DEBUG, INFO, WARNING, ERROR) (default: INFO)",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _setup(url, log_to_file, log_to_stdout, log_path, log_level):
    start_client_log(
        log_to_file=log_to_file,
        log_to_stdout=log_to_stdout,
        log_path=log_path,
        log_level=log_level,
    )
    settings = ClientSettings()
    return settings, url or settings.root_url


def _manager(settings: ClientSettings, url: str):
    from digview.client import ConnectionManager

    manager = ConnectionManager()
    manager.connect(url, settings.app_id)
    return manager


@click.group()
@tree_option
def cli():
    """digview - client for the digdar radar digitizer.

    Polls the instrument's web server for waveforms and parameters, and
    pushes parameter changes back:

    - Live view of the four channels (video, trigger, ACP, ARP)

    - Parameter readout and configuration store/load

    - Application start/stop on the instrument
    """
    pass


@cli.command()
@connection_options
@click.option(
    "--plot/--headless",
    default=False,
    help="Show a live matplotlib window (default: headless)",
)
@click.option(
    "--duration",
    "-d",
    default=0.0,
    type=float,
    help="Seconds to run for, 0 runs until interrupted (default: 0)",
)
def run(url, log_to_file, log_to_stdout, log_path, log_level, plot, duration):
    """Run the acquisition loop.

    Starts the application on the instrument if needed, then polls it
    continuously. Errors reported by the loop are printed; a fatal one ends
    the run.
    """
    settings, url = _setup(url, log_to_file, log_to_stdout, log_path, log_level)
    from digview.render import MplSurface
    from digview.session import ScopeSession

    if log_to_file:
        click.echo(f"Logging to {get_log_filename()}")
    surface = MplSurface() if plot else None
    session = ScopeSession.connect(url, surface, settings)
    try:
        asyncio.run(_run(session, surface, duration))
    except KeyboardInterrupt:
        click.echo("Interrupted.")
    finally:
        session.close()


async def _run(session, surface, duration: float) -> None:
    loop = asyncio.get_running_loop()
    t_end = loop.time() + duration if duration > 0 else None
    await session.start()
    while t_end is None or loop.time() < t_end:
        if surface is not None:
            if not surface.is_open():
                break
            surface.pause(0.05)
        await asyncio.sleep(0.05)
        while not session.notifications.empty():
            notif = session.notifications.get_nowait()
            if isinstance(notif, ErrorNotice):
                click.echo(f"Error: {notif.message}", err=True)
                if notif.fatal:
                    return
                session.acknowledge()
            elif isinstance(notif, AppSwitchNotice):
                click.echo(f"Instrument runs '{notif.app_id}' instead.", err=True)
                return
            elif isinstance(notif, SingleShotReady):
                click.echo("Single mode: acquisition stopped.")
    for key, value in session.readouts().items():
        click.echo(f"{key}: {value}")


@cli.command()
@connection_options
@click.option("--json", "as_json", is_flag=True, help="Print parameters as JSON")
def params(url, log_to_file, log_to_stdout, log_path, log_level, as_json):
    """Print the instrument's current parameters."""
    settings, url = _setup(url, log_to_file, log_to_stdout, log_path, log_level)
    manager = _manager(settings, url)
    try:
        resp = manager.get_data(settings.timeout)
    except CommsError as e:
        raise click.ClickException(str(e))
    finally:
        manager.disconnect()
    if resp.is_error or not resp.has_params:
        raise click.ClickException(resp.reason or "No parameters in response.")
    _echo_params(resp.params, as_json)


def _echo_params(p: dict, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(p, indent=2, sort_keys=True))
        return
    for key in sorted(p):
        click.echo(f"{key} = {p[key]}")


@cli.command()
@connection_options
@click.option(
    "--file",
    "-f",
    "path",
    default="",
    help="Store the parameters in this JSON file instead of the current ones",
)
def store(url, log_to_file, log_to_stdout, log_path, log_level, path):
    """Store parameters on the instrument."""
    settings, url = _setup(url, log_to_file, log_to_stdout, log_path, log_level)
    manager = _manager(settings, url)
    try:
        if path:
            p = load_params_file(path)
        else:
            resp = manager.get_data(settings.timeout)
            if not resp.has_params:
                raise click.ClickException(resp.reason or "No parameters in response.")
            p = resp.params
        manager.store_params(p, settings.timeout)
    except (CommsError, ValueError) as e:
        raise click.ClickException(str(e))
    finally:
        manager.disconnect()
    click.echo(f"Stored {len(p)} parameters.")


@cli.command()
@connection_options
@click.option("--factory", is_flag=True, help="Load the factory defaults")
@click.option("--output", "-o", default="", help="Write to this JSON file")
@click.option("--json", "as_json", is_flag=True, help="Print parameters as JSON")
def load(url, log_to_file, log_to_stdout, log_path, log_level, factory, output, as_json):
    """Read the stored (or factory) parameters from the instrument."""
    settings, url = _setup(url, log_to_file, log_to_stdout, log_path, log_level)
    manager = _manager(settings, url)
    try:
        if factory:
            p = manager.load_factory_params(settings.timeout)
        else:
            p = manager.load_params(settings.timeout)
    except CommsError as e:
        raise click.ClickException(str(e))
    finally:
        manager.disconnect()
    if output:
        click.echo(f"Saved to {save_params_file(p, output)}")
    else:
        _echo_params(p, as_json)


@cli.command()
@connection_options
def stop(url, log_to_file, log_to_stdout, log_path, log_level):
    """Stop the application running on the instrument."""
    settings, url = _setup(url, log_to_file, log_to_stdout, log_path, log_level)
    manager = _manager(settings, url)
    try:
        ok = manager.stop_app(settings.timeout)
    finally:
        manager.disconnect()
    if not ok:
        raise click.ClickException("Could not stop the application.")
    click.echo("Application stopped.")
