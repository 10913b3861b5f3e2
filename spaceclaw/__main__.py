"""Entry point for running spaceclaw as a module."""

from spaceclaw.cli.commands import app

if __name__ == "__main__":
    app()
