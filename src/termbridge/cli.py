"""CLI entry point for termbridge."""

from __future__ import annotations

import logging

import typer

from termbridge.config import BridgeConfig, Target

app = typer.Typer(
    name="termbridge",
    help="Embed interactive SSH sessions in a terminal dashboard.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _prepare_tui_logging(verbose: bool) -> None:
    # No stderr handler: it would corrupt the Textual display. The app
    # installs its own handler on mount that routes logs to the status bar.
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for h in root.handlers[:]:
        root.removeHandler(h)


def _load_config(config_file: str | None, term: str | None = None) -> BridgeConfig:
    config = BridgeConfig.load(config_file)
    if term:
        config.terminal.term = term
    return config


@app.command()
def connect(
    host: str = typer.Argument(help="Host name or IP address to connect to."),
    name: str | None = typer.Option(
        None, "--name", "-n", help="Label shown in the session header."
    ),
    user: str | None = typer.Option(None, "--user", "-u", help="Remote user."),
    port: int | None = typer.Option(None, "--port", "-p", help="SSH port."),
    identity: str | None = typer.Option(
        None, "--identity", "-i", help="Private key file passed to ssh."
    ),
    term: str | None = typer.Option(
        None, "--term", help="TERM for the remote side (default: xterm-256color)."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Open the TUI with an SSH session to HOST."""
    _prepare_tui_logging(verbose)
    config = _load_config(config_file, term)

    target = config.find_target(host)
    if target is None or any((name, user, port, identity)):
        target = Target(
            name=name or (target.name if target else host),
            host=target.host if target else host,
            user=user or (target.user if target else None),
            port=port or (target.port if target else None),
            identity_file=identity or (target.identity_file if target else None),
        )

    from termbridge.tui.app import BridgeApp

    BridgeApp(config, connect_to=target).run()


@app.command()
def ui(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Open the TUI on the configured target list."""
    _prepare_tui_logging(verbose)
    config = _load_config(config_file)
    if not config.targets:
        typer.echo("Error: no targets configured (add a 'targets' list to the config file)", err=True)
        raise typer.Exit(1)

    from termbridge.tui.app import BridgeApp

    BridgeApp(config).run()


@app.command()
def targets(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """List configured targets."""
    setup_logging(verbose)
    config = _load_config(config_file)
    if not config.targets:
        typer.echo("No targets configured.")
        return
    for target in config.targets:
        port = f":{target.port}" if target.port else ""
        typer.echo(f"{target.name}\t{target.destination}{port}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
