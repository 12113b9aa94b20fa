"""
Run configuration.

A RunConfig holds everything one invocation needs. It is built once by the
CLI (or by a caller using the library directly) and passed to run_scan().
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from dmscan.pipeline.discovery import DEFAULT_EXTENSION, DEFAULT_MAX_PATH_LENGTH

StartMethod = Literal["fork", "spawn", "forkserver"]


class RunConfig(BaseModel):
    """
    Parameters of a single scan run.

    Attributes:
        workers: Worker process count; 1 or less runs sequentially
        input_dir: Directory to scan (non-recursive)
        output_path: Text file to write decoded payloads to
        extension: Substring a file name must contain to be scanned
        max_path_length: Paths longer than this (in bytes) are skipped
        start_method: multiprocessing start method, None for the platform default
    """

    model_config = ConfigDict(frozen=True)

    workers: int
    input_dir: Path
    output_path: Path
    extension: str = Field(default=DEFAULT_EXTENSION, min_length=1)
    max_path_length: int = Field(default=DEFAULT_MAX_PATH_LENGTH, gt=0)
    start_method: StartMethod | None = None

    @property
    def parallel(self) -> bool:
        return self.workers > 1
