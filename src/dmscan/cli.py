"""
dmscan CLI

Usage:
    dmscan WORKERS INPUT_DIR OUTPUT_FILE

Decodes the Data Matrix code in every matching image of INPUT_DIR and
writes the payloads to OUTPUT_FILE, one per line.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from datetime import datetime, timezone

import pydantic
import typer
import logging

from dmscan.config import RunConfig
from dmscan.decode import DmtxBackend
from dmscan.errors import ScanError
from dmscan.pipeline.coordinator import run_scan
from dmscan.pipeline.discovery import DEFAULT_EXTENSION, DEFAULT_MAX_PATH_LENGTH

app = typer.Typer(add_completion=False, help="Batch Data Matrix decoder")


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        # Include any custom attributes passed via `extra=`.
        reserved = {
            "name","msg","args","levelname","levelno","pathname","filename","module",
            "exc_info","exc_text","stack_info","lineno","funcName","created","msecs",
            "relativeCreated","thread","threadName","processName","process",
            "taskName",
        }
        for k, v in record.__dict__.items():
            if k in reserved or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                payload[k] = v
            except TypeError:
                payload[k] = repr(v)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str) -> logging.Logger:
    logger = logging.getLogger("dmscan")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


LOGGER = logging.getLogger("dmscan")


# Unknown dash-prefixed tokens fall through to WORKERS so "-1" reads as a count.
@app.command(context_settings={"ignore_unknown_options": True})
def scan_cmd(
    workers: int = typer.Argument(
        ..., help="Worker processes; 1 or less (including negative) scans sequentially"
    ),
    input_dir: Path = typer.Argument(..., help="Directory of images to scan (non-recursive)"),
    output_file: Path = typer.Argument(..., help="Text file for decoded payloads (overwritten)"),
    extension: str = typer.Option(
        DEFAULT_EXTENSION, "--extension", help="Substring a file name must contain"
    ),
    max_path_length: int = typer.Option(
        DEFAULT_MAX_PATH_LENGTH, "--max-path-length", help="Skip files whose path is longer (bytes)"
    ),
    start_method: str | None = typer.Option(
        None, "--start-method", help="multiprocessing start method (fork, spawn, forkserver)"
    ),
    timeout_ms: int | None = typer.Option(
        None, "--timeout-ms", help="Per-image libdmtx search timeout in milliseconds"
    ),
    log_level: str = typer.Option(
        "INFO", "--log-level", help="Logging verbosity (DEBUG, INFO, WARNING, ERROR)"
    ),
) -> None:
    """
    Decode Data Matrix codes from every matching image in INPUT_DIR.

    Successfully decoded payloads are trimmed and written to OUTPUT_FILE in
    directory enumeration order; images that fail to decode are left out.

    Example:
        dmscan 4 scans/ codes.txt
    """
    global LOGGER
    LOGGER = setup_logging(log_level)

    try:
        config = RunConfig(
            workers=workers,
            input_dir=input_dir.expanduser(),
            output_path=output_file.expanduser(),
            extension=extension,
            max_path_length=max_path_length,
            start_method=start_method,
        )
    except pydantic.ValidationError as e:
        raise typer.BadParameter(str(e)) from e

    backend = DmtxBackend(timeout_ms=timeout_ms)

    try:
        result = run_scan(config, backend)
    except ScanError as e:
        LOGGER.error("scan_failed", extra={"error": str(e), "kind": type(e).__name__})
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"\n{'='*60}")
    typer.echo("📊 Summary:")
    typer.echo(f"  Mode: {result.mode} ({result.workers_spawned} worker process(es))")
    typer.echo(f"  Files found: {result.files_found}")
    if result.files_skipped:
        typer.echo(f"  Files skipped (path too long): {result.files_skipped}")
    typer.echo(f"  Decoded: {result.files_decoded}")
    typer.echo(f"  Failed: {result.files_failed}")
    if result.workers_lost:
        typer.echo(f"  ⚠️  Workers lost: {result.workers_lost}", err=True)
    typer.echo(f"  Output: {config.output_path} ({result.lines_written} lines, {result.elapsed_seconds:.1f}s)")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
