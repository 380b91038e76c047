"""Typer CLI entrypoint and command definitions for redeye."""

from pathlib import Path

import typer

from redeye.core.defaults import DEFAULT_FS_POLL_SECONDS, DEFAULT_HOST, DEFAULT_LOG_LEVEL, DEFAULT_PORT

app = typer.Typer()

_CONFIG_PATH_HELP = "Path to config.json (default: per-user location or $REDEYE_CONFIG_PATH)"


def _open_store(config_path: str | None):  # type: ignore[no-untyped-def]
    from redeye.core.config import ConfigurationStore

    return ConfigurationStore(Path(config_path) if config_path else None)


# -- serve --------------------------------------------------------------------


@app.command("serve")
def serve_cmd(
    host: str = typer.Option(DEFAULT_HOST, help="Interface to bind the WebSocket server to"),
    port: int = typer.Option(DEFAULT_PORT, help="WebSocket server port"),
    config_path: str | None = typer.Option(None, "--config-path", help=_CONFIG_PATH_HELP),
    log_level: str = typer.Option(DEFAULT_LOG_LEVEL, help="fault|error|warning|info|debug|trace"),
    fs_poll_seconds: float = typer.Option(
        DEFAULT_FS_POLL_SECONDS, help="Seconds between filesystem monitor polls"
    ),
) -> None:
    """Run the event bus, monitors and WebSocket control server until interrupted."""
    import uvicorn

    from redeye.core.bus import EventBus
    from redeye.core.logging import configure_logging
    from redeye.core.types import LogLevel
    from redeye.monitors.filesystem import FileSystemMonitor
    from redeye.monitors.lifecycle import MonitorLifecycle
    from redeye.server.app import create_app

    if log_level.lower() not in LogLevel.__members__:
        typer.echo(f"Unknown log level: {log_level}", err=True)
        raise typer.Exit(code=1)
    configure_logging(log_level)

    store = _open_store(config_path)
    bus = EventBus()
    lifecycle = MonitorLifecycle(store, [FileSystemMonitor(bus, poll_seconds=fs_poll_seconds)])
    lifecycle.start_all()

    typer.echo(f"Config: {store.path}")
    typer.echo(f"Listening on ws://{host}:{port}/")
    try:
        uvicorn.run(create_app(store, bus), host=host, port=port, log_config=None)
    finally:
        lifecycle.stop_all()


# -- config -------------------------------------------------------------------
config_app = typer.Typer()
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show_cmd(
    config_path: str | None = typer.Option(None, "--config-path", help=_CONFIG_PATH_HELP),
) -> None:
    """Print the current configuration as JSON (creating the file with defaults if absent)."""
    from redeye.core.store import dumps_canonical

    store = _open_store(config_path)
    typer.echo(dumps_canonical(store.get_current_config().to_wire()), nl=False)


@config_app.command("reset")
def config_reset_cmd(
    config_path: str | None = typer.Option(None, "--config-path", help=_CONFIG_PATH_HELP),
) -> None:
    """Overwrite the configuration file with the built-in defaults."""
    from redeye.core.config import ConfigPersistenceError

    store = _open_store(config_path)
    try:
        store.reset_to_defaults()
    except ConfigPersistenceError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Reset configuration at {store.path}")


@config_app.command("path")
def config_path_cmd(
    config_path: str | None = typer.Option(None, "--config-path", help=_CONFIG_PATH_HELP),
) -> None:
    """Print where the configuration file lives, without creating it."""
    from redeye.core.defaults import default_config_path

    typer.echo(str(Path(config_path) if config_path else default_config_path()))


# -- capabilities -------------------------------------------------------------


@app.command("capabilities")
def capabilities_cmd(
    config_path: str | None = typer.Option(None, "--config-path", help=_CONFIG_PATH_HELP),
) -> None:
    """Print monitors, event types and settings fields as JSON."""
    from redeye.core.store import dumps_canonical

    store = _open_store(config_path)
    typer.echo(dumps_canonical(store.get_capabilities()), nl=False)
