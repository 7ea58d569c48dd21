"""Entry point for running plantwatch as a module.

Usage:
    python -m plantwatch [command] [options]

Example:
    python -m plantwatch
    python -m plantwatch render docs/flow.puml
    python -m plantwatch check
"""

from plantwatch.cli import app

if __name__ == "__main__":
    app()
