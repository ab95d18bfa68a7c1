"""Baitline command line entry point.

Usage:
    $ baitline attach --help
"""

import logging
from typing import Annotated

import typer

from baitline.attachments.cli import app as attach_app

app = typer.Typer(
    help="Baitline — phishing-simulation attachment personalization",
    no_args_is_help=True,
)
app.add_typer(attach_app, name="attach")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Baitline — phishing-simulation attachment personalization."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
