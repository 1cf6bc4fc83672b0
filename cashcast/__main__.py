"""Module entry point for running the CLI via ``python -m cashcast``.

:func:`cashcast.cli.main` expects the ``stdscr`` window, so it is run under
:func:`curses.wrapper`, which also restores the terminal on exit.
"""

import curses

from .cli import main
from .config import configure_logging


def entry_point() -> None:
    """Wrap the CLI ``main`` function in a curses session."""
    configure_logging()
    curses.wrapper(main)


if __name__ == "__main__":  # pragma: no cover - manual execution entry
    entry_point()
