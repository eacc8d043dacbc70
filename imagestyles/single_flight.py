"""Per-key deduplication of concurrent work on a bounded thread pool.

SingleFlight.do(key, fn) runs fn on the pool at most once at a time per key.
Callers arriving while a call for the same key is in flight wait for that
call and share its outcome instead of starting their own.

Each caller may wait with its own timeout. A caller that times out stops
waiting, but the call keeps running for the remaining waiters. Only when
every waiter has gone and the call has not started yet is it cancelled.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, TimeoutError
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Call(Generic[T]):
    def __init__(self, future: Future[T]) -> None:
        self.future = future
        self.waiters = 0


class SingleFlight(Generic[T]):
    """Deduplicate concurrent calls by key.

    Args:
        max_workers: Size of the worker pool running the calls.
        thread_name_prefix: Name prefix of the worker threads.
    """

    def __init__(self, max_workers: int = 4, thread_name_prefix: str = "imagestyles") -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._lock = threading.RLock()
        self._calls: dict[Hashable, _Call[T]] = {}

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._calls

    def do(self, key: Hashable, fn: Callable[[], T], timeout: float | None = None) -> T:
        """Run fn for key, or join the call already in flight for key.

        Args:
            key: Deduplication key.
            fn: Work to run on the pool if no call for key is in flight.
            timeout: Seconds this caller waits. None waits indefinitely.

        Returns:
            The result of the shared call.

        Raises:
            TimeoutError: If this caller's timeout expired. The call is not
                cancelled while other callers still wait on it.
            Exception: Whatever fn raised, re-raised in every waiter.
        """
        with self._lock:
            call = self._calls.get(key)
            # A finished call stays registered until its done callback has run
            if call is None or call.future.done():
                call = _Call(self._executor.submit(fn))
                self._calls[key] = call
                call.future.add_done_callback(lambda _future, c=call: self._forget(key, c))
            else:
                logger.debug("Joining in-flight call for %s", key)
            call.waiters += 1

        try:
            return call.future.result(timeout=timeout)
        except CancelledError as e:
            # Only happens when every waiter, this one included, gave up
            raise TimeoutError(f"Call for {key} was cancelled") from e
        finally:
            self._leave(key, call)

    def _leave(self, key: Hashable, call: _Call[T]) -> None:
        with self._lock:
            call.waiters -= 1
            if call.waiters == 0 and not call.future.done() and call.future.cancel():
                logger.debug("Cancelled call for %s, no callers left waiting", key)

    def _forget(self, key: Hashable, call: _Call[T]) -> None:
        with self._lock:
            if self._calls.get(key) is call:
                del self._calls[key]

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
