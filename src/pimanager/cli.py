"""CLI entry point for pi-manager."""

from __future__ import annotations

import sys

import click

from pimanager.config import ConfigError, Settings
from pimanager.logging import setup_logging


@click.group()
@click.version_option(package_name="pi-manager")
def main() -> None:
    """pi-manager - run and watch project pipelines on this machine."""
    pass


@main.command()
@click.option("--addr", default=None, help="Bind address for the HTTP server (host:port).")
@click.option(
    "--state",
    "state_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to persist state snapshots.",
)
@click.option(
    "--allow-actions/--no-allow-actions",
    default=None,
    help="Allow the API to execute project pipelines (dangerous, default off).",
)
@click.option(
    "--fs-base",
    default=None,
    type=click.Path(file_okay=False),
    help="Base path the file-browser API may access (default: home directory).",
)
@click.option("--log-dir", default=None, type=click.Path(file_okay=False), help="Log directory.")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR).")
def serve(
    addr: str | None,
    state_path: str | None,
    allow_actions: bool | None,
    fs_base: str | None,
    log_dir: str | None,
    log_level: str | None,
) -> None:
    """Start the HTTP API server."""
    import uvicorn  # noqa: PLC0415

    from pimanager.api import create_app  # noqa: PLC0415

    try:
        settings = Settings.from_env().with_overrides(
            addr=addr,
            state_path=state_path,
            allow_actions=allow_actions,
            fs_base=fs_base,
            log_dir=log_dir,
            log_level=log_level,
        )
        host, port = settings.host_port()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    logger = setup_logging(log_dir=settings.log_dir, level=settings.log_level)
    logger.info("http server listening on %s", settings.addr)
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
