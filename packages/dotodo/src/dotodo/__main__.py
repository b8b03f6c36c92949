"""Main entry point for dotodo CLI.

Supports both direct invocation (`python -m dotodo`) and package entry point.
"""

from dotodo.cli import cli

if __name__ == "__main__":
    cli()
