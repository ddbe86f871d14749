# concurrency.py
# SPDX-License-Identifier: MIT
"""Concurrency helpers and executor configuration for licmatch.

Wraps thread and process pool executors with a bounded submission
window and derives executor settings for store analysis from
:class:`~licmatch.core.config.AnalyzeConfig`.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import (
    FIRST_COMPLETED,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from .config import AnalyzeConfig
from .log import get_logger

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ExecutorConfig:
    """Immutable executor settings used to construct worker pools.

    Attributes:
        max_workers (int): Maximum number of worker threads or
            processes.
        window (int): Maximum number of in-flight tasks allowed
            before backpressure is applied.
        kind (Literal["thread", "process"]): Executor implementation
            to use.
    """
    max_workers: int
    window: int
    kind: Literal["thread", "process"]


class Executor:
    """Run tasks in a thread or process pool with bounded submission.

    This wrapper keeps at most ``cfg.window`` tasks in flight and
    delivers results to callbacks in completion order, not submission
    order. Callers that need a stable outcome must reduce results
    order-independently.

    Attributes:
        cfg (ExecutorConfig): Executor configuration for this
            instance.
    """

    def __init__(self, cfg: ExecutorConfig) -> None:
        self.cfg = cfg

    def _make_executor(self):
        if self.cfg.max_workers < 1:
            raise ValueError("Executor requires max_workers >= 1")
        if self.cfg.kind == "process":
            return ProcessPoolExecutor(max_workers=self.cfg.max_workers)
        return ThreadPoolExecutor(max_workers=self.cfg.max_workers, thread_name_prefix="licmatch")

    def map_unordered(
        self,
        items: Iterable[T],
        fn: Callable[[T], R],
        on_result: Callable[[R], None],
        *,
        fail_fast: bool = True,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        """Submit items to workers and consume results as they complete.

        Args:
            items (Iterable[T]): Items to process.
            fn (Callable[[T], R]): Worker function invoked for each
                item. Must be a picklable top-level callable for process
                pools.
            on_result (Callable[[R], None]): Callback invoked for each
                successful result, always on the calling thread.
            fail_fast (bool): Whether to re-raise the first worker error
                and abort further processing.
            on_error (Callable[[BaseException], None] | None): Optional
                callback invoked when a worker raises an exception.

        Raises:
            Exception: Propagates the first worker or submission error
                when ``fail_fast`` is True.
        """
        window = max(self.cfg.window, self.cfg.max_workers)
        with self._make_executor() as pool:
            pending: list[Future[R]] = []

            def _drain(block: bool = False) -> None:
                nonlocal pending
                if not pending:
                    return
                done, still = wait(
                    pending,
                    timeout=None if block else 0.0,
                    return_when=FIRST_COMPLETED,
                )
                pending = list(still)
                for fut in done:
                    try:
                        result = fut.result()
                    except Exception as exc:  # noqa: BLE001
                        if on_error:
                            on_error(exc)
                        if fail_fast:
                            for other in pending:
                                other.cancel()
                            raise
                        continue
                    on_result(result)

            for item in items:
                pending.append(pool.submit(fn, item))
                if len(pending) >= window:
                    _drain(block=True)

            while pending:
                _drain(block=True)


def resolve_analyze_executor_config(cfg: AnalyzeConfig, n_candidates: int) -> tuple[ExecutorConfig, int]:
    """Build executor settings and a batch size for one ``analyze`` call.

    Workers are capped by the number of candidates so tiny stores never
    spin up idle pools. When ``cfg.batch_size`` is unset, candidates are
    split into about four batches per worker.

    Args:
        cfg (AnalyzeConfig): Analysis section of the configuration.
        n_candidates (int): Number of texts the query will be scored
            against.

    Returns:
        tuple[ExecutorConfig, int]: Executor configuration and the number
            of candidates per submitted batch.
    """
    max_workers = max(1, min(cfg.resolved_workers(), n_candidates or 1))
    if cfg.batch_size:
        batch_size = cfg.batch_size
    else:
        batch_size = max(1, -(-n_candidates // (max_workers * 4)))
    kind = cfg.executor_kind if cfg.executor_kind in {"thread", "process"} else "thread"
    exec_cfg = ExecutorConfig(
        max_workers=max_workers,
        window=max_workers * 2,
        kind=kind,  # type: ignore[arg-type]
    )
    return exec_cfg, batch_size


def batched(items: list[Any], size: int) -> Iterable[list[Any]]:
    """Yield consecutive slices of ``items`` holding at most ``size`` elements."""
    step = max(1, size)
    for i in range(0, len(items), step):
        yield items[i:i + step]


__all__ = [
    "Executor",
    "ExecutorConfig",
    "resolve_analyze_executor_config",
    "batched",
]
