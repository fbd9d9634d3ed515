"""Entry point for ``python -m kronos``."""

from kronos.cli.typer_app import app

if __name__ == "__main__":
    app()
