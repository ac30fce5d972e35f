"""CLI entry point for extforge."""

from .cli.app import cli

if __name__ == '__main__':
    cli()
