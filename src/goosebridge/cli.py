"""Root CLI group and version flag."""

import click

from goosebridge import __version__
from goosebridge.commands.export import export
from goosebridge.commands.init import init
from goosebridge.commands.run import run


@click.group()
@click.version_option(version=__version__, prog_name="goosebridge")
def cli() -> None:
    """goosebridge — run the goose agent as a streaming language model."""


cli.add_command(init)
cli.add_command(run)
cli.add_command(export)
