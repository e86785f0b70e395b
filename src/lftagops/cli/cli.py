"""CLI application for Lake Formation LF-Tag association tooling."""

import typer

from lftagops.cli.commands.tags import tags_app
from lftagops.cli.common.options import VerboseOpt
from lftagops.cli.common.output import configure_logging

app = typer.Typer(
    help="lftagops - reconcile Lake Formation LF-Tag associations",
    no_args_is_help=True,
)


@app.callback()
def _main(verbose: bool = VerboseOpt):
    """Configure logging for every command."""
    configure_logging(verbose)


app.add_typer(tags_app, name="tags")


if __name__ == "__main__":
    app()
