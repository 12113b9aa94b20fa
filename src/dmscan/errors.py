"""
Error taxonomy for dmscan runs.

Every fatal condition aborts the whole run and is raised as a subclass of
ScanError. DecodeFailure is the only per-file error; it never leaves the
worker layer.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base class for all dmscan errors."""


class DirectoryOpenError(ScanError):
    """Input directory is missing, not a directory, or unreadable."""


class EmptyInputError(ScanError):
    """No file in the input directory matched the extension filter."""


class AllocationError(ScanError):
    """The result store could not be allocated."""


class SpawnError(ScanError):
    """A worker process could not be started."""


class OutputWriteError(ScanError):
    """The output file could not be opened or written."""


class DecoderUnavailableError(ScanError):
    """The decode backend cannot run on this system (e.g. libdmtx missing)."""


class DecodeFailure(ScanError):
    """A single image could not be read or decoded. Non-fatal."""
