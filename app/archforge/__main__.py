"""Allow ``python -m archforge``."""

from archforge.cli.main import app

if __name__ == "__main__":
    app(prog_name="archforge")
