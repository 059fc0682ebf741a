"""Module entrypoint for `python -m retrycmd`."""

try:
    from .cli import run
except ImportError:
    # Executed by path, outside package context.
    from retrycmd.cli import run


if __name__ == "__main__":
    raise SystemExit(run())
