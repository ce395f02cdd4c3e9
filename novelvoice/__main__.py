"""Module entrypoint for running Novelvoice as ``python -m novelvoice``."""

from __future__ import annotations

from novelvoice.cli import main


if __name__ == "__main__":
    main()
