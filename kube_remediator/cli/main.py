"""Click commands: ``run`` the remediators or ``show-config``."""

from __future__ import annotations

import asyncio
import dataclasses
import json

import click

from kube_remediator import __version__


@click.group()
@click.version_option(__version__, prog_name="kube-remediator")
def cli() -> None:
    """Delete crash-looping and infrastructure-failed pods so their controllers recreate them."""


@cli.command()
def run() -> None:
    """Run every remediator until SIGINT/SIGTERM."""
    from kube_remediator.app import main

    asyncio.run(main())


@cli.command("show-config")
def show_config() -> None:
    """Print the effective configuration as JSON and exit."""
    from kube_remediator.config import load_config, load_log_config
    from kube_remediator.observability.logging import setup_logging

    log_config = load_log_config()
    setup_logging(log_config.level, log_config.format)
    config = load_config()
    click.echo(json.dumps(dataclasses.asdict(config), indent=2, sort_keys=True))
