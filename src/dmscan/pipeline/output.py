"""
Output file writing.

Drains the result store into a plain text file, one decoded payload per
line, in store index order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from dmscan.errors import OutputWriteError

from .store import WorkItem


def normalize_message(message: str) -> str:
    """
    Trim a decoded payload and fold it onto a single output line.

    Leading and trailing whitespace is removed. Internal line breaks
    (CRLF, CR or LF) are written as the two characters backslash and "n",
    so every payload stays one record. The result contains no line break,
    so normalizing it again leaves it unchanged.

    Parameters:
        message: Raw message from the store

    Returns:
        Normalized message; "" means the record is omitted from output

    Example:
        >>> normalize_message("  WORLD  ")
        'WORLD'
    """
    trimmed = message.strip()
    return trimmed.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "\\n")


def write_results(items: Iterable[WorkItem], output_path: Path) -> int:
    """
    Write non-empty normalized messages to `output_path`, one per line.

    The file is truncated or created. Items are written in the order given,
    which for a ResultStore is ascending index order. Failed decodes (empty
    messages) produce no line at all.

    Parameters:
        items: Store slots in index order
        output_path: Destination text file

    Returns:
        Number of lines written

    Raises:
        OutputWriteError: If the file cannot be opened or written

    Example:
        >>> with ResultStore.create(paths) as store:
        ...     ...
        ...     lines = write_results(store.items(), Path("out.txt"))
    """
    lines = 0
    try:
        with output_path.open("w", encoding="utf-8") as f:
            for item in items:
                message = normalize_message(item.message)
                if not message:
                    continue
                f.write(message + "\n")
                lines += 1
    except OSError as e:
        raise OutputWriteError(f"Cannot write output file {output_path}: {e}") from e
    return lines
