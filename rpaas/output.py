"""Terminal output formatting for the rpaasv2 command."""

import os
import sys
from itertools import zip_longest

RED = "\033[0;31m"
GREEN = "\033[0;32m"
NC = "\033[0m"


def _paint(colour: str, msg: str) -> str:
    if os.environ.get("NO_COLOR"):
        return msg
    return f"{colour}{msg}{NC}"


def log_success(msg: str) -> None:
    """Log a successful operation."""
    print(_paint(GREEN, f"OK {msg}"))


def log_error(msg: str) -> None:
    """Log an error to stderr."""
    print(_paint(RED, f"ERROR: {msg}"), file=sys.stderr)


def die(msg: str) -> None:
    """Log error and exit."""
    log_error(msg)
    sys.exit(1)


def print_table(headers: list[str], rows: list[list[str]]) -> None:
    """Print rows as left-aligned columns.

    Cells spanning several lines continue on the following lines of the table,
    with the other columns left blank.
    """
    widths = [len(h) for h in headers]
    split_rows = []
    for row in rows:
        cells = [cell.splitlines() or [""] for cell in row]
        for i, lines in enumerate(cells):
            widths[i] = max(widths[i], *(len(line) for line in lines))
        split_rows.append(cells)

    def fmt(cells: list[str]) -> str:
        return "  ".join(c.ljust(w) for c, w in zip(cells, widths)).rstrip()

    print(fmt(headers))
    print(fmt(["-" * w for w in widths]))
    for cells in split_rows:
        for line in zip_longest(*cells, fillvalue=""):
            print(fmt(list(line)))
