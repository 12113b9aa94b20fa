"""
Input directory enumeration.

Produces the ordered list of candidate image paths for a run. The position
of a path in the returned listing is its index in the result store.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dmscan.errors import DirectoryOpenError, EmptyInputError

LOGGER = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".png"
DEFAULT_MAX_PATH_LENGTH = 4096


@dataclass(frozen=True)
class FileListing:
    """
    Result of scanning an input directory.

    Attributes:
        paths: Matching file paths, in directory enumeration order
        skipped: Number of matching files dropped because their path was
            longer than the configured limit
    """

    paths: tuple[str, ...]
    skipped: int = 0

    def __len__(self) -> int:
        return len(self.paths)


def discover_files(
    directory: Path | str,
    *,
    extension: str = DEFAULT_EXTENSION,
    max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
) -> FileListing:
    """
    List files in `directory` whose name contains `extension`.

    The scan is non-recursive and only regular files are kept. Matching is
    a case-sensitive substring test on the file name, so "scan.png.bak"
    matches ".png" and "SCAN.PNG" does not. Entries are returned in the
    order the operating system lists them; no sorting is applied.

    Parameters:
        directory: Directory to scan
        extension: Substring a file name must contain
        max_path_length: Longest accepted path, in encoded bytes

    Returns:
        FileListing with the candidate paths

    Raises:
        DirectoryOpenError: If the directory cannot be opened
        EmptyInputError: If no file matches

    Example:
        >>> listing = discover_files("scans/", extension=".png")
        >>> for index, path in enumerate(listing.paths):
        ...     print(index, path)
    """
    directory = str(directory)
    paths: list[str] = []
    skipped = 0

    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                if extension not in entry.name:
                    continue
                try:
                    if not entry.is_file():
                        continue
                except OSError:
                    continue

                path = os.path.join(directory, entry.name)
                if len(os.fsencode(path)) > max_path_length:
                    LOGGER.warning(
                        "path_too_long",
                        extra={"path": path, "max_path_length": max_path_length},
                    )
                    skipped += 1
                    continue
                paths.append(path)
    except OSError as e:
        raise DirectoryOpenError(f"Cannot open input directory {directory}: {e}") from e

    if not paths:
        raise EmptyInputError(
            f"No files matching {extension!r} found in {directory}"
            + (f" ({skipped} skipped for path length)" if skipped else "")
        )

    LOGGER.debug(
        "files_discovered",
        extra={"directory": directory, "count": len(paths), "skipped": skipped},
    )
    return FileListing(paths=tuple(paths), skipped=skipped)
