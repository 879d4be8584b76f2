#!/usr/bin/env python3

from __future__ import annotations
import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from mumble.core.ConnectionLink import WebSocketTransport
from mumble.shared.errors import MumbleError
from mumble.shared.log import get_logger, set_level
from mumble.shared.version import CLIENT_VERSION, PACKAGE_VERSION, decode_version, encode_version, parse_version
from .client import MumbleClient
from .config import ClientConfig, load_config

app = typer.Typer(help="Mumble session client")
console = Console()
logger = get_logger(__name__)


@app.command()
def connect(
    host: Optional[str] = typer.Argument(None, help="Server host name (default from config / MUMBLE_HOST)"),
    port: Optional[int] = typer.Option(None, help="Server port"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="User name"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Password"),
    timeout: Optional[float] = typer.Option(None, help="Handshake deadline in seconds"),
    secure: bool = typer.Option(False, "--secure", help="Use wss:// instead of ws://"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
):
    """Perform the handshake and print what the server reported."""
    try:
        cfg = load_config(config)
    except MumbleError as e:
        console.print(f"[red]Config error[/]: {e}")
        raise typer.Exit(code=1)

    cfg = replace(
        cfg,
        host=host or cfg.host,
        port=port or cfg.port,
        username=username if username is not None else cfg.username,
        password=password if password is not None else cfg.password,
        handshake_timeout=timeout if timeout is not None else cfg.handshake_timeout,
        secure=secure or cfg.secure,
    )
    if cfg.log_level:
        set_level(cfg.log_level)
    if not cfg.username:
        console.print("[red]A username is required[/] (--username or MUMBLE_USERNAME)")
        raise typer.Exit(code=1)

    console.print(f"[bold green]Connecting[/] to {cfg.host}:{cfg.port} as {cfg.username}")
    try:
        client = asyncio.run(_handshake(cfg))
    except MumbleError as e:
        logger.debug("Handshake with %s failed", cfg.host, exc_info=True)
        console.print(f"[red]Connection failed[/]: {e}")
        raise typer.Exit(code=1)

    table = Table(title="Server Info")
    table.add_column("Field")
    table.add_column("Value")
    for name, value in client.server_info.as_dict().items():
        table.add_row(name, "" if value is None else str(value))
    console.print(table)


async def _handshake(cfg: ClientConfig) -> MumbleClient:
    transport = WebSocketTransport(cfg.host, cfg.port, secure=cfg.secure)
    client = MumbleClient(cfg.host, cfg.port, transport=transport, handshake_timeout=cfg.handshake_timeout)
    async with client:
        await client.connect(cfg.username, cfg.password)
    return client


@app.command()
def version(
    value: Optional[str] = typer.Argument(None, help="Version to encode (1.2.8) or wire value to decode (0x010208)"),
):
    """Show the client version or convert between version and wire forms."""
    if value is None:
        console.print(f"mumble-client {PACKAGE_VERSION}")
        console.print(f"protocol {CLIENT_VERSION} (wire 0x{encode_version(CLIENT_VERSION):06x})")
        return

    try:
        if "." in value:
            parsed = parse_version(value)
            console.print(f"{parsed} -> 0x{encode_version(parsed):06x}")
        else:
            wire = int(value, 0)
            console.print(f"0x{wire:06x} -> {decode_version(wire)}")
    except ValueError as e:
        console.print(f"[red]Invalid value[/]: {e}")
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
