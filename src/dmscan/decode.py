from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from PIL import Image

from dmscan.errors import DecodeFailure, DecoderUnavailableError

LOGGER = logging.getLogger(__name__)


class DecodeBackend(Protocol):
    """Minimal interface for a Data Matrix decode backend.

    Implementations must be picklable: parallel runs ship the backend to
    each worker process.
    """

    name: str

    def prepare(self) -> None:
        ...

    def decode(self, path: str) -> str | None:
        ...


@dataclass
class DmtxBackend:
    """libdmtx-backed decoder using Pillow for image loading.

    The image is converted to 24bpp RGB before being handed to libdmtx, and
    only the first symbol found is returned. `timeout_ms` bounds the search
    for a single image; None lets libdmtx scan the whole image.
    """

    name: str = "libdmtx"
    timeout_ms: int | None = None
    max_count: int = 1

    def prepare(self) -> None:
        """Check that the libdmtx shared library can be loaded.

        pylibdmtx loads libdmtx at import time, so the import is deferred
        until here to keep the rest of the package importable without it.
        """
        try:
            from pylibdmtx import pylibdmtx  # noqa: F401
        except ImportError as e:
            raise DecoderUnavailableError(
                "pylibdmtx could not load libdmtx. Install the libdmtx shared "
                "library (e.g. `apt install libdmtx0b`)."
            ) from e

    def decode(self, path: str) -> str | None:
        """Decode the first Data Matrix symbol in the image at `path`.

        Returns the payload text, or None if no symbol was found.

        Raises:
            DecodeFailure: If the image cannot be opened or libdmtx fails
        """
        from pylibdmtx.pylibdmtx import decode as dmtx_decode
        from pylibdmtx.pylibdmtx_error import PyLibDMTXError

        try:
            with Image.open(path) as img:
                rgb = img.convert("RGB")
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeFailure(f"Cannot read image {path}: {e}") from e

        try:
            results = dmtx_decode(rgb, timeout=self.timeout_ms, max_count=self.max_count)
        except PyLibDMTXError as e:
            raise DecodeFailure(f"libdmtx failed on {path}: {e}") from e

        if not results:
            LOGGER.debug("dmtx_no_symbol", extra={"path": path})
            return None

        return results[0].data.decode("utf-8", errors="replace")
