"""
Run coordination.

Drives one scan from directory enumeration to output file. In parallel mode
each non-empty range is handed to its own process, which returns its
completed messages over a one-way pipe; the coordinator writes them into
the store after the join barrier. Ranges are disjoint, so nothing is locked.
"""

from __future__ import annotations

import logging
import multiprocessing
import time
from dataclasses import dataclass, field
from enum import Enum
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess

from dmscan.config import RunConfig
from dmscan.decode import DecodeBackend
from dmscan.errors import SpawnError

from .discovery import FileListing, discover_files
from .output import write_results
from .partition import IndexRange, partition
from .store import ResultStore
from .worker import process_paths, worker_main

LOGGER = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    ENUMERATED = "enumerated"
    PARTITIONED = "partitioned"
    RUNNING = "running"
    JOINED = "joined"
    DRAINED = "drained"
    DONE = "done"


@dataclass
class ScanResult:
    """
    Summary of a completed run.

    Attributes:
        files_found: Candidate files placed in the store
        files_skipped: Matching files dropped for path length
        files_decoded: Files that produced an output line
        files_failed: Files with no payload (decode failure or lost worker)
        workers_spawned: Worker processes started (0 in sequential mode)
        workers_lost: Workers that exited without returning their range
        lines_written: Lines in the output file
        elapsed_seconds: Wall-clock run time
        mode: "sequential" or "parallel"
    """

    files_found: int
    files_skipped: int
    files_decoded: int
    files_failed: int
    workers_spawned: int
    workers_lost: int
    lines_written: int
    elapsed_seconds: float
    mode: str


@dataclass
class RunContext:
    """Per-run state threaded through the coordinator."""

    config: RunConfig
    backend: DecodeBackend
    state: RunState = RunState.IDLE
    listing: FileListing | None = None
    ranges: list[IndexRange] = field(default_factory=list)
    workers_spawned: int = 0
    workers_lost: int = 0

    @property
    def mode(self) -> str:
        return "parallel" if self.config.parallel else "sequential"

    def advance(self, state: RunState) -> None:
        LOGGER.debug(
            "run_state",
            extra={
                "from_state": self.state.value,
                "to_state": state.value,
                "files": len(self.listing) if self.listing else 0,
                "ranges": len(self.ranges),
            },
        )
        self.state = state


@dataclass
class _WorkerHandle:
    worker_id: int
    index_range: IndexRange
    process: BaseProcess
    conn: Connection


def run_scan(config: RunConfig, backend: DecodeBackend) -> ScanResult:
    """
    Scan `config.input_dir`, decode every candidate, and write the output file.

    With `config.workers <= 1` all files are decoded in this process.
    Otherwise the store is partitioned into `config.workers` ranges and each
    non-empty range is decoded by a separate process. Both modes produce
    the same output for the same decode outcomes.

    Parameters:
        config: Run parameters
        backend: Decode backend; must be picklable for spawn/forkserver

    Returns:
        ScanResult with run statistics

    Raises:
        DirectoryOpenError: Input directory cannot be opened
        EmptyInputError: No matching files
        DecoderUnavailableError: Backend cannot run
        AllocationError: Result store cannot be allocated
        SpawnError: A worker process could not be started
        OutputWriteError: Output file cannot be written

    Example:
        >>> config = RunConfig(workers=4, input_dir=Path("scans"), output_path=Path("out.txt"))
        >>> result = run_scan(config, DmtxBackend())
        >>> print(f"{result.lines_written} codes decoded")
    """
    start_time = time.perf_counter()
    ctx = RunContext(config=config, backend=backend)

    listing = discover_files(
        config.input_dir,
        extension=config.extension,
        max_path_length=config.max_path_length,
    )
    backend.prepare()
    ctx.listing = listing
    ctx.advance(RunState.ENUMERATED)

    LOGGER.info(
        "scan_started",
        extra={
            "input_dir": str(config.input_dir),
            "files": len(listing),
            "skipped": listing.skipped,
            "workers": config.workers,
            "mode": ctx.mode,
            "backend": backend.name,
        },
    )

    with ResultStore.create(listing.paths) as store:
        if config.parallel:
            ctx.ranges = partition(len(store), config.workers)
        else:
            ctx.ranges = [IndexRange(0, len(store))]
        ctx.advance(RunState.PARTITIONED)

        ctx.advance(RunState.RUNNING)
        if config.parallel:
            _run_parallel(ctx, store)
        else:
            whole = ctx.ranges[0]
            store.fill(whole, process_paths(backend, store.paths_for(whole)))
        ctx.advance(RunState.JOINED)

        lines = write_results(store.items(), config.output_path)
        files_found = len(store)
        ctx.advance(RunState.DRAINED)

    ctx.advance(RunState.DONE)
    elapsed = time.perf_counter() - start_time

    LOGGER.info(
        "scan_finished",
        extra={
            "files": files_found,
            "decoded": lines,
            "workers_lost": ctx.workers_lost,
            "output_path": str(config.output_path),
            "elapsed_ms": int(elapsed * 1000),
        },
    )

    return ScanResult(
        files_found=files_found,
        files_skipped=listing.skipped,
        files_decoded=lines,
        files_failed=files_found - lines,
        workers_spawned=ctx.workers_spawned,
        workers_lost=ctx.workers_lost,
        lines_written=lines,
        elapsed_seconds=elapsed,
        mode=ctx.mode,
    )


def _spawn_worker(
    mp_ctx: multiprocessing.context.BaseContext,
    backend: DecodeBackend,
    worker_id: int,
    index_range: IndexRange,
    store: ResultStore,
) -> _WorkerHandle:
    recv_conn, send_conn = mp_ctx.Pipe(duplex=False)
    process = mp_ctx.Process(
        target=worker_main,
        args=(backend, store.paths_for(index_range), send_conn),
        name=f"dmscan-worker-{worker_id}",
    )
    try:
        process.start()
    except BaseException:
        recv_conn.close()
        send_conn.close()
        raise
    # The child holds its own copy; closing ours lets recv() see EOF if it dies.
    send_conn.close()
    return _WorkerHandle(worker_id, index_range, process, recv_conn)


def _run_parallel(ctx: RunContext, store: ResultStore) -> None:
    mp_ctx = multiprocessing.get_context(ctx.config.start_method)
    handles: list[_WorkerHandle] = []

    try:
        for worker_id, index_range in enumerate(ctx.ranges):
            if index_range.empty:
                continue
            try:
                handle = _spawn_worker(mp_ctx, ctx.backend, worker_id, index_range, store)
            except Exception as e:
                _join_workers(ctx, store, handles)
                raise SpawnError(f"Cannot start worker {worker_id}: {e}") from e
            handles.append(handle)
            ctx.workers_spawned += 1

        _join_workers(ctx, store, handles)
    finally:
        for handle in handles:
            if handle.process.is_alive():
                handle.process.terminate()
                handle.process.join()
            handle.conn.close()


def _join_workers(ctx: RunContext, store: ResultStore, handles: list[_WorkerHandle]) -> None:
    """Collect every worker's range, then wait for all of them to exit."""
    lost: list[_WorkerHandle] = []

    for handle in handles:
        try:
            messages = handle.conn.recv()
        except (EOFError, OSError):
            lost.append(handle)
            continue
        finally:
            handle.conn.close()
        store.fill(handle.index_range, messages)

    for handle in handles:
        handle.process.join()

    for handle in lost:
        ctx.workers_lost += 1
        LOGGER.warning(
            "worker_lost",
            extra={
                "worker": handle.worker_id,
                "start": handle.index_range.start,
                "end": handle.index_range.end,
                "exitcode": handle.process.exitcode,
            },
        )
