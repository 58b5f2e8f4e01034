"""
Kernel key cache commands.
"""

from typing import Optional

import typer

from cephshare.lib.config import load_config
from cephshare.lib.keyring import KeyCleaner

app = typer.Typer(help="Kernel key cache commands")


def _key_name(name: Optional[str]) -> str:
    return name or load_config().key_description


@app.command()
def status(
    name: Optional[str] = typer.Argument(None, help="Key description (default: from config)"),
):
    """
    Check whether a ceph key is cached in the user keyring.
    """
    key_name = _key_name(name)
    if KeyCleaner().is_key_present(key_name):
        typer.echo(f"Key {key_name} is present")
    else:
        typer.echo(f"Key {key_name} is not present")


@app.command()
def unlink(
    name: Optional[str] = typer.Argument(None, help="Key description (default: from config)"),
):
    """
    Drop a cached ceph key from the user keyring.
    """
    key_name = _key_name(name)
    if KeyCleaner().unlink_key(key_name):
        typer.echo(f"Key {key_name} unlinked")
    else:
        typer.echo(f"Key {key_name} not found", err=True)
        raise typer.Exit(1)
