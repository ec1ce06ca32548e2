"""Allow running as `python -m imagepack`."""

from imagepack.cli import app

if __name__ == "__main__":
    app()
