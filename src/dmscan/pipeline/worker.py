"""
Per-range decode worker.

The same loop serves both execution modes: the coordinator calls
process_paths() directly for a sequential run, and worker_main() wraps it
as the target of each child process in a parallel run.
"""

from __future__ import annotations

import logging
from multiprocessing.connection import Connection
from typing import Sequence

from dmscan.decode import DecodeBackend
from dmscan.errors import DecodeFailure

LOGGER = logging.getLogger(__name__)


def decode_one(backend: DecodeBackend, path: str) -> str:
    """
    Decode a single image, mapping every failure to an empty message.

    Parameters:
        backend: Decode backend to call
        path: Image path

    Returns:
        Decoded payload, or "" if the backend found nothing or failed
    """
    try:
        payload = backend.decode(path)
    except DecodeFailure as e:
        LOGGER.debug("decode_failed", extra={"path": path, "error": str(e)})
        return ""
    except Exception as e:
        LOGGER.warning(
            "decode_error",
            extra={"path": path, "error": repr(e), "kind": type(e).__name__},
        )
        return ""

    if payload is None:
        LOGGER.debug("decode_empty", extra={"path": path})
        return ""
    return payload


def process_paths(backend: DecodeBackend, paths: Sequence[str]) -> list[str]:
    """
    Decode every path of one range, in order.

    Parameters:
        backend: Decode backend to call
        paths: The worker's owned slice of store paths

    Returns:
        One message per path, same order; "" marks a failed decode

    Example:
        >>> messages = process_paths(DmtxBackend(), ("a.png", "b.png"))
    """
    return [decode_one(backend, path) for path in paths]


def worker_main(backend: DecodeBackend, paths: tuple[str, ...], conn: Connection) -> None:
    """Child process entry point: decode `paths` and send the messages back."""
    try:
        messages = process_paths(backend, paths)
        conn.send(messages)
    finally:
        conn.close()
