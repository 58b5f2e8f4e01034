#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import sys

import typer

from cephshare.cli.commands import config, keyring, refs

app = typer.Typer(
    name="cephshare",
    help="cephshare CephFS volume plugin admin tool",
    add_completion=False,
)

# Add command groups
app.add_typer(config.app, name="config", help="Configuration commands")
app.add_typer(refs.app, name="refs", help="Volume reference commands")
app.add_typer(keyring.app, name="keyring", help="Kernel key cache commands")


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
