from __future__ import annotations

"""Single-worker FIFO execution queue.

Every orchestration session is submitted as a zero-argument coroutine
factory. One worker task drains the queue, so at most one session (and hence
at most one tool call) is in flight at any moment, in submission order.

``submit`` returns an ``asyncio.Future`` resolved with the session's return
value or exception once it has run. ``clear`` drops sessions that have not
started and fails their futures with ``QueueClearedError``; the running
session is never cancelled by it.

A session must not await another session submitted to the same queue: the
inner one can only start after the outer one finishes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from .errors import QueueClearedError, QueueClosedError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Awaitable[Any]]


@dataclass
class _Job:
    factory: SessionFactory
    future: "asyncio.Future[Any]"
    label: str
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class _Stop:
    pass


_STOP = _Stop()


@dataclass(frozen=True)
class QueueStatus:
    queue_length: int
    is_processing: bool
    current: Optional[str] = None
    closed: bool = False


class ExecutionQueue:
    """FIFO queue of orchestration sessions with one dedicated worker.

    Args:
        max_size: Maximum number of waiting sessions; ``0`` means unbounded.
            When full, ``submit`` waits for room.
    """

    def __init__(self, *, max_size: int = 0) -> None:
        self._max_size = max_size
        self._queue: Optional["asyncio.Queue[Union[_Job, _Stop]]"] = None
        self._worker: Optional["asyncio.Task[None]"] = None
        self._current: Optional[_Job] = None
        self._closed = False
        self._submitted = 0

    async def submit(self, factory: SessionFactory, *, label: Optional[str] = None) -> "asyncio.Future[Any]":
        """Enqueue a session and return a future for its result."""
        if self._closed:
            raise QueueClosedError()
        queue = self._ensure_worker()
        self._submitted += 1
        job = _Job(
            factory=factory,
            future=asyncio.get_running_loop().create_future(),
            label=label or f"session-{self._submitted}",
        )
        await queue.put(job)
        logger.debug(f"Queued {job.label}; {queue.qsize()} waiting")
        return job.future

    async def run(self, factory: SessionFactory, *, label: Optional[str] = None) -> Any:
        """Submit a session and wait for its result."""
        future = await self.submit(factory, label=label)
        return await future

    def clear(self) -> int:
        """Drop every session that has not started yet.

        Returns:
            The number of sessions dropped.
        """
        if self._queue is None:
            return 0
        dropped = 0
        while True:
            try:
                job = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            if isinstance(job, _Stop):
                # Keep a pending shutdown request.
                self._queue.put_nowait(job)
                break
            if not job.future.done():
                job.future.set_exception(QueueClearedError())
            dropped += 1
        if dropped:
            logger.info(f"Cleared {dropped} queued session(s)")
        return dropped

    def status(self) -> QueueStatus:
        waiting = self._queue.qsize() if self._queue is not None else 0
        return QueueStatus(
            queue_length=waiting,
            is_processing=self._current is not None,
            current=self._current.label if self._current is not None else None,
            closed=self._closed,
        )

    async def join(self) -> None:
        """Wait until every queued session has run."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Stop accepting sessions, let queued ones finish and stop the worker."""
        if self._closed:
            return
        self._closed = True
        if self._queue is None or self._worker is None:
            return
        await self._queue.put(_STOP)
        await self._worker
        self._worker = None

    def _ensure_worker(self) -> "asyncio.Queue[Union[_Job, _Stop]]":
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self._max_size)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())
        return self._queue

    async def _drain(self) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            try:
                if isinstance(job, _Stop):
                    return
                if job.future.done():
                    continue
                self._current = job
                logger.debug(f"Running {job.label}")
                try:
                    result = await job.factory()
                except asyncio.CancelledError:
                    job.future.cancel()
                    raise
                except Exception as exc:
                    if not job.future.done():
                        job.future.set_exception(exc)
                else:
                    if not job.future.done():
                        job.future.set_result(result)
                logger.debug(f"Finished {job.label}")
            finally:
                self._current = None
                self._queue.task_done()
