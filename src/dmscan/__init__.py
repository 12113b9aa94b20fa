"""dmscan: batch Data Matrix decoding for directories of images."""

__version__ = "0.1.0"
