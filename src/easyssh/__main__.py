"""Module entry point for ``python -m easyssh``."""

from easyssh.cli import app


if __name__ == "__main__":
    app()
