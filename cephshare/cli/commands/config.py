"""
Configuration commands.
"""

from dataclasses import asdict

import typer

from cephshare.lib.config import config_path, load_config

app = typer.Typer(help="Configuration commands")


@app.command()
def show():
    """
    Show the effective configuration (password masked).
    """
    try:
        cfg = load_config()
        typer.echo(f"# {config_path()}")
        for key, value in asdict(cfg).items():
            if key == "password" and value:
                value = "****"
            typer.echo(f"{key} = {value}")
    except Exception as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)
