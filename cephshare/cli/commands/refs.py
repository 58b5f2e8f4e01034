"""
Volume reference commands.
"""

from typing import Optional

import typer

from cephshare.driver import DRIVER_KIND
from cephshare.exceptions import ReconciliationDegraded
from cephshare.lib.config import load_config
from cephshare.registry import parse_references, refs_file_path

app = typer.Typer(help="Volume reference commands")


@app.command()
def show(
    file: Optional[str] = typer.Option(None, "--file", help="Reference file (default: from config)"),
):
    """
    Show the references the daemon would rebuild at startup.

    Reads the file written by the enumeration script; nothing is mounted.
    """
    cfg = load_config()
    path = file or refs_file_path(cfg.refs_dir, DRIVER_KIND)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            refs = parse_references(fh.read())
    except (OSError, ReconciliationDegraded) as e:
        typer.echo(f"Error reading references from {path}: {e}", err=True)
        raise typer.Exit(1)

    active = [(name, count) for name, count in refs if count > 0]
    if not active:
        typer.echo("No volume references found")
        return
    for name, count in active:
        typer.echo(f"{name} references={count} mount={cfg.root.rstrip('/')}/{name}")
