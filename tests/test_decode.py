"""Tests for the libdmtx decode backend."""

import sys
from pathlib import Path
import tempfile

import pytest
from PIL import Image

from dmscan.decode import DmtxBackend
from dmscan.errors import DecodeFailure, DecoderUnavailableError


class TestPrepare:
    """Tests for DmtxBackend.prepare()."""

    def test_missing_library_raises(self, monkeypatch):
        """Test that an unloadable pylibdmtx is reported as unavailable."""
        monkeypatch.setitem(sys.modules, "pylibdmtx", None)

        with pytest.raises(DecoderUnavailableError, match="libdmtx"):
            DmtxBackend().prepare()


class TestDecode:
    """Tests for DmtxBackend.decode() against real libdmtx."""

    @pytest.fixture(autouse=True)
    def _require_libdmtx(self):
        pytest.importorskip("pylibdmtx.pylibdmtx")

    def test_decodes_encoded_symbol(self):
        from pylibdmtx.pylibdmtx import encode

        encoded = encode(b"HELLO")
        img = Image.frombytes("RGB", (encoded.width, encoded.height), encoded.pixels)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "code.png"
            img.save(path)

            assert DmtxBackend(timeout_ms=5000).decode(str(path)) == "HELLO"

    def test_blank_image_returns_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "blank.png"
            Image.new("RGB", (64, 64), "white").save(path)

            assert DmtxBackend(timeout_ms=2000).decode(str(path)) is None

    def test_unreadable_image_raises_decode_failure(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.png"
            path.write_bytes(b"not an image")

            with pytest.raises(DecodeFailure):
                DmtxBackend().decode(str(path))

    def test_missing_file_raises_decode_failure(self):
        with pytest.raises(DecodeFailure):
            DmtxBackend().decode("/tmp/does_not_exist_dmscan_12345.png")

    def test_decompression_bomb_raises_decode_failure(self, monkeypatch):
        """Test that Pillow's oversize-image guard is reported per file."""
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "huge.png"
            Image.new("RGB", (64, 64), "white").save(path)

            with pytest.raises(DecodeFailure, match="huge.png"):
                DmtxBackend().decode(str(path))
