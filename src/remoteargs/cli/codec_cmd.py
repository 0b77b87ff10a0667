"""CLI commands for the raw Base64URL codec.

Usage:
    remoteargs codec encode payload.bin
    cat payload.bin | remoteargs codec encode -
    remoteargs codec decode aGVsbG8 > payload.bin
"""

from __future__ import annotations

import typer

from remoteargs.core import base64url

app = typer.Typer(help="Encode and decode raw bytes as unpadded Base64URL")


@app.command("encode")
def encode(
    source: typer.FileBinaryRead = typer.Argument(
        ...,
        help="File to encode, or '-' for stdin",
    ),
) -> None:
    """Encode the bytes of a file as unpadded Base64URL."""
    typer.echo(base64url.encode(source.read()))


@app.command("decode")
def decode(
    encoded: str = typer.Argument(
        ...,
        help="Base64URL text, with or without '=' padding",
    ),
) -> None:
    """Decode Base64URL text and write the raw bytes to stdout."""
    from rich.console import Console

    try:
        data = base64url.decode(encoded)
    except base64url.InvalidBase64Url as exc:
        Console(stderr=True).print(f"[red]Invalid input:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(data, nl=False)
