"""CLI commands for remoteargs.

Provides command-line interface using Typer:
- remoteargs codec encode/decode: raw bytes <-> Base64URL
- remoteargs arg stringify/parse: JSON value <-> remote argument string
- remoteargs arg cache-key: build a remote call cache key

Usage:
    remoteargs --help
    remoteargs arg stringify '{"page": 2}'
    remoteargs arg parse W3sicGFnZSI6MX0sMl0
"""

import typer

from remoteargs.cli.arg_cmd import app as arg_app
from remoteargs.cli.codec_cmd import app as codec_app
from remoteargs.config import settings
from remoteargs.observability.logging import configure_logging

app = typer.Typer(
    name="remoteargs",
    help="URL-safe serialization of remote function arguments",
    no_args_is_help=True,
)

app.add_typer(codec_app, name="codec")
app.add_typer(arg_app, name="arg")


@app.callback()
def callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log at DEBUG level",
    ),
) -> None:
    """URL-safe serialization of remote function arguments."""
    configure_logging(
        json_format=settings.log_json,
        level="DEBUG" if verbose else settings.log_level,
        use_colors=settings.log_colors,
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
