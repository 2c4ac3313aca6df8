"""
Worker Pool Dispatcher.

Owns a fixed set of isolated workers (single-process executors by default),
routes analysis requests to them round-robin and correlates responses back to
callers by request id. When no worker can be created, or a worker breaks,
requests are served by the InlineAnalyzer instead; callers never see which
path answered.
"""

import asyncio
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from dataclasses import dataclass
from enum import Enum
from functools import partial
import logging
import multiprocessing
from typing import Callable, Dict, List, Optional
import uuid

from config import WORKER_POOL_SIZE
from services.errors import WorkerUnavailable, error_from_code
from services.inline_analyzer import InlineAnalyzer
from services.page_analyzer import (
    AnalysisRequest,
    AnalysisResponse,
    RequestKind,
    ResponseKind,
    handle_request,
)

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


def default_executor_factory() -> Executor:
    """One isolated process per worker; each runs one request at a time."""
    return ProcessPoolExecutor(max_workers=1, mp_context=multiprocessing.get_context("spawn"))


@dataclass
class _Worker:
    index: int
    executor: Executor
    in_flight: int = 0

    @property
    def state(self) -> WorkerState:
        return WorkerState.BUSY if self.in_flight else WorkerState.IDLE


class WorkerPool:
    """Fixed-size pool with round-robin dispatch and correlation by request id."""

    def __init__(
        self,
        size: int = WORKER_POOL_SIZE,
        executor_factory: Callable[[], Executor] = None,
        inline: InlineAnalyzer = None,
    ):
        """
        Initialize the pool. Workers are created by ``start()``.

        Args:
            size: Number of workers
            executor_factory: Builds one worker executor (default: spawned process)
            inline: Fallback analyzer used when no worker can serve a request
        """
        if size < 1:
            raise ValueError("Worker pool size must be at least 1")

        self.size = size
        self._executor_factory = executor_factory or default_executor_factory
        self._inline = inline or InlineAnalyzer()
        self._workers: List[_Worker] = []
        self._next_worker = 0
        self._pending: Dict[str, asyncio.Future] = {}
        self._started = False
        # Inline requests run on one dedicated thread, never on the event loop
        self._inline_executor: Optional[ThreadPoolExecutor] = None

    async def __aenter__(self) -> "WorkerPool":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    @property
    def is_inline(self) -> bool:
        """True when every request is served by the inline fallback."""
        return not self._workers

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def worker_states(self) -> List[WorkerState]:
        return [worker.state for worker in self._workers]

    async def start(self) -> None:
        """Create and ping every worker. Workers that fail to start are skipped."""
        if self._started:
            return
        self._started = True

        candidates = []
        for index in range(self.size):
            try:
                candidates.append(_Worker(index=index, executor=self._executor_factory()))
            except Exception as e:
                logger.warning(f"Worker {index} could not be created: {str(e)}", extra={"worker": index})

        pings = [self._ping(worker) for worker in candidates]
        results = await asyncio.gather(*pings, return_exceptions=True)

        for worker, result in zip(candidates, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"Worker {worker.index} failed to start: {str(result)}",
                    extra={"worker": worker.index},
                )
                worker.executor.shutdown(wait=False, cancel_futures=True)
                continue
            self._workers.append(worker)

        if self._workers:
            logger.info(f"Worker pool started with {len(self._workers)}/{self.size} workers")
        else:
            logger.warning("No workers available, analysing inline")

    async def _ping(self, worker: _Worker) -> None:
        request = AnalysisRequest(request_id=f"ping-{worker.index}", kind=RequestKind.PING)
        response = await asyncio.wrap_future(worker.executor.submit(handle_request, request))
        if response.kind != ResponseKind.PONG:
            raise WorkerUnavailable(f"Unexpected ping response: {response.kind}")

    def shutdown(self) -> None:
        """Stop every worker. Requests still pending are rerouted inline."""
        for worker in self._workers:
            worker.executor.shutdown(wait=False, cancel_futures=True)
        self._workers = []
        self._next_worker = 0
        if self._inline_executor is not None:
            self._inline_executor.shutdown(wait=False)
            self._inline_executor = None
        logger.info("Worker pool shut down")

    def new_request(self, kind: RequestKind, **fields) -> AnalysisRequest:
        """Build a request with a fresh correlation id."""
        return AnalysisRequest(request_id=uuid.uuid4().hex, kind=kind, **fields)

    async def run(self, request: AnalysisRequest) -> AnalysisResponse:
        """
        Dispatch a request and wait for its response.

        Returns:
            The worker response (never of kind ERROR)

        Raises:
            AnalysisError: Typed error rebuilt from a worker error response
        """
        response = await self.dispatch(request)
        if response.kind == ResponseKind.ERROR:
            raise error_from_code(response.error_code, response.message)
        return response

    async def dispatch(self, request: AnalysisRequest) -> AnalysisResponse:
        """Route one request to the next worker in rotation, or inline."""
        if not self._workers:
            return await self._run_inline(request)

        loop = asyncio.get_running_loop()
        worker = self._next()
        future = loop.create_future()
        self._pending[request.request_id] = future

        try:
            worker_future = worker.executor.submit(handle_request, request)
        except (BrokenProcessPool, RuntimeError, OSError) as e:
            self._pending.pop(request.request_id, None)
            self._retire(worker, e)
            return await self._run_inline(request)

        worker.in_flight += 1
        worker_future.add_done_callback(
            partial(self._deliver_threadsafe, loop, worker, request.request_id)
        )

        try:
            return await future
        except WorkerUnavailable as e:
            logger.warning(
                f"Rerouting {request.file_name} inline: {e.message}",
                extra={"request_id": request.request_id, "file_name": request.file_name},
            )
            return await self._run_inline(request)
        finally:
            self._pending.pop(request.request_id, None)

    def cancel(self, request_id: str) -> bool:
        """
        Forget a pending request. Its late response becomes a no-op.

        The worker computation itself is not interrupted.
        """
        future = self._pending.pop(request_id, None)
        if future is None:
            return False
        if not future.done():
            future.cancel()
        return True

    def _next(self) -> _Worker:
        worker = self._workers[self._next_worker % len(self._workers)]
        self._next_worker = (self._next_worker + 1) % len(self._workers)
        return worker

    def _deliver_threadsafe(self, loop, worker: _Worker, request_id: str, worker_future: Future) -> None:
        # Runs on the executor's thread; pool state is only touched on the loop
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(self._on_response, worker, request_id, worker_future)

    def _on_response(self, worker: _Worker, request_id: str, worker_future: Future) -> None:
        worker.in_flight = max(worker.in_flight - 1, 0)

        future = self._pending.pop(request_id, None)
        if future is None or future.done():
            logger.debug(
                f"Dropping response for {request_id}: no pending request",
                extra={"request_id": request_id},
            )
            return

        if worker_future.cancelled():
            future.set_exception(WorkerUnavailable("Worker request was cancelled"))
            return

        error = worker_future.exception()
        if error is not None:
            self._retire(worker, error)
            future.set_exception(WorkerUnavailable(f"Worker {worker.index} failed: {str(error)}"))
            return

        future.set_result(worker_future.result())

    def _retire(self, worker: _Worker, error: BaseException) -> None:
        if worker not in self._workers:
            return
        logger.warning(
            f"Retiring worker {worker.index}: {str(error)}",
            extra={"worker": worker.index, "error_code": WorkerUnavailable.code},
        )
        self._workers.remove(worker)
        worker.executor.shutdown(wait=False, cancel_futures=True)
        if self._workers:
            self._next_worker %= len(self._workers)
        else:
            self._next_worker = 0

    async def _run_inline(self, request: AnalysisRequest) -> AnalysisResponse:
        if self._inline_executor is None:
            self._inline_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="inline-analyzer")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._inline_executor, self._inline.run, request)
