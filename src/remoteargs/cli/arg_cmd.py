"""CLI commands for remote function arguments and cache keys.

Usage:
    remoteargs arg stringify '{"page": 2}'
    remoteargs arg stringify --undefined
    remoteargs arg parse W3sicGFnZSI6MX0sMl0
    remoteargs -v arg parse --id my-fn W3sicGFnZSI6MX0sMl0
    remoteargs arg cache-key my-fn W3sicGFnZSI6MX0sMl0
"""

from __future__ import annotations

import logging
from typing import Any

import orjson
import typer

from remoteargs.cache.keys import create_remote_cache_key
from remoteargs.core import base64url
from remoteargs.core.devalue import UNDEFINED, DevalueError
from remoteargs.observability.logging import LogContext
from remoteargs.remote import parse_remote_args, stringify_remote_arg

logger = logging.getLogger(__name__)

app = typer.Typer(help="Serialize remote function arguments")


def _render_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


@app.command("stringify")
def stringify(
    value: str | None = typer.Argument(
        None,
        help="Argument as JSON text",
    ),
    undefined: bool = typer.Option(
        False,
        "--undefined",
        "-u",
        help="Stringify the absent argument (prints an empty line)",
    ),
) -> None:
    """Turn a JSON value into a URL-safe and filename-safe argument string."""
    if undefined:
        typer.echo(stringify_remote_arg(UNDEFINED, {}))
        return

    if value is None:
        typer.echo("Error: Provide a JSON value or --undefined", err=True)
        raise typer.Exit(code=1)

    try:
        arg = orjson.loads(value)
    except orjson.JSONDecodeError as exc:
        typer.echo(f"Error: Invalid JSON: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    try:
        typer.echo(stringify_remote_arg(arg, {}))
    except DevalueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command("parse")
def parse(
    stringified_arg: str = typer.Argument(
        ...,
        help="Argument string produced by 'stringify'",
    ),
    raw: bool = typer.Option(
        False,
        "--raw",
        "-r",
        help="Print the decoded devalue payload instead of JSON",
    ),
    remote_id: str = typer.Option(
        "",
        "--id",
        help="Remote function identifier, attached to log records",
    ),
) -> None:
    """Decode an argument string and print its value as JSON."""
    from rich.console import Console

    console = Console(stderr=True)

    if raw:
        try:
            typer.echo(base64url.decode_text(stringified_arg))
        except (base64url.InvalidBase64Url, UnicodeDecodeError) as exc:
            console.print(f"[red]Invalid argument:[/red] {exc}")
            raise typer.Exit(code=1) from exc
        return

    try:
        with LogContext(remote_id=remote_id):
            value = parse_remote_args(stringified_arg, {})
    except (base64url.InvalidBase64Url, UnicodeDecodeError, DevalueError) as exc:
        console.print(f"[red]Invalid argument:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if value is UNDEFINED:
        console.print("[yellow]No argument[/yellow]")
        return

    try:
        rendered = orjson.dumps(
            value,
            default=_render_default,
            option=orjson.OPT_NON_STR_KEYS | orjson.OPT_INDENT_2 | orjson.OPT_UTC_Z,
        )
    except orjson.JSONEncodeError as exc:
        console.print(f"[red]Cannot render value as JSON:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(rendered.decode("utf-8"))


@app.command("cache-key")
def cache_key(
    id: str = typer.Argument(..., help="Remote function identifier"),
    stringified_arg: str = typer.Argument("", help="Argument string, empty for none"),
) -> None:
    """Print the cache key for a remote function call."""
    with LogContext(remote_id=id):
        if "|" in id:
            typer.echo("Warning: id contains '|'; keys may collide", err=True)
        key = create_remote_cache_key(id, stringified_arg)
        logger.debug("Built cache key for %d-character argument", len(stringified_arg))
    typer.echo(key)
