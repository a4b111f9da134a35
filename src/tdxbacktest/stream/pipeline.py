"""Lazy sequences fed by background producer threads.

Each stage owns one daemon thread that hands elements to its consumer through
a one-slot queue, so a slow consumer stalls every producer upstream of it.
A stage always finishes by handing over an end marker that carries the error
which aborted it, if any; consumers read it back through `Stream.error`.
"""

from __future__ import annotations

import logging
import queue
import threading
import weakref
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from tdxbacktest.errors import StreamLengthMismatchError

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")

Emit = Callable[[Any], None]

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.05
_EXHAUSTED = object()


class Closeable(Protocol):
    def close(self) -> None:
        """Release the underlying resource."""


class StreamClosed(Exception):
    """Raised inside a producer once its stream has been closed."""


class _UpstreamAborted(Exception):
    """Carries an upstream error into a downstream stage without re-logging it."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self.error = error


@dataclass(frozen=True)
class _End:
    error: BaseException | None = None


class _Producer:
    """Producer-side state owned by the background thread.

    Holds no reference to its `Stream`, so an abandoned stream can be
    garbage collected and its finalizer can shut the producer down.
    """

    def __init__(
        self,
        produce: Callable[[Emit], None],
        name: str,
        upstreams: tuple[Stream[Any], ...],
    ) -> None:
        self.name = name
        self.produce = produce
        self.upstreams = upstreams
        self.handoff: queue.Queue[Any] = queue.Queue(maxsize=1)
        self.stop = threading.Event()
        self.drained_error: BaseException | None = None
        self.end_consumed = False
        self.thread = threading.Thread(target=self.run, name=f"stream-{name}", daemon=True)

    def run(self) -> None:
        error: BaseException | None = None
        try:
            self.produce(self.emit)
        except StreamClosed:
            return
        except _UpstreamAborted as exc:
            error = exc.error
        except Exception as exc:
            logger.error("Stream %s aborted: %s", self.name, exc)
            error = exc
        except BaseException as exc:
            error = exc
            raise
        finally:
            self.close_upstreams()
            self.put(_End(error))

    def emit(self, item: Any) -> None:
        if not self.put(item):
            raise StreamClosed(self.name)

    def put(self, item: Any) -> bool:
        while not self.stop.is_set():
            try:
                self.handoff.put(item, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def close_upstreams(self) -> None:
        for upstream in self.upstreams:
            upstream.close()

    def shutdown(self) -> None:
        """Stop producing, close upstream stages, and leave an end marker for the consumer."""
        if not self.end_consumed:
            logger.debug("Stream %s closed before exhaustion", self.name)
        self.stop.set()
        self.close_upstreams()
        if threading.current_thread() is not self.thread:
            self.thread.join()
        while True:
            try:
                pending = self.handoff.get_nowait()
            except queue.Empty:
                break
            if isinstance(pending, _End) and pending.error is not None:
                self.drained_error = pending.error
        self.handoff.put_nowait(_End(self.drained_error))


class Stream(Generic[T]):
    """Iterator over elements produced by a background thread.

    `close()`, leaving a `with` block, or garbage collection of an abandoned
    stream stops the producer and releases its upstream stages.
    """

    def __init__(
        self,
        produce: Callable[[Emit], None],
        *,
        name: str = "stream",
        upstreams: Iterable[Stream[Any]] = (),
    ) -> None:
        self.name = name
        self.error: BaseException | None = None
        self._producer = _Producer(produce, name, tuple(upstreams))
        self._close_lock = threading.Lock()
        self._finalizer = weakref.finalize(self, self._producer.shutdown)
        self._finalizer.atexit = False
        self._producer.thread.start()

    @classmethod
    def from_iterable(cls, iterable: Iterable[T], *, name: str = "iterable") -> Stream[T]:
        """Feed an in-memory iterable through a producer thread."""

        def produce(emit: Emit) -> None:
            for item in iterable:
                emit(item)

        return cls(produce, name=name)

    @classmethod
    def from_resource(
        cls,
        resource: Closeable,
        produce: Callable[[Any, Emit], None],
        *,
        name: str = "resource",
    ) -> Stream[T]:
        """Produce from an open resource and close it exactly once on every exit path."""

        def produce_with_resource(emit: Emit) -> None:
            try:
                produce(resource, emit)
            finally:
                resource.close()

        return cls(produce_with_resource, name=name)

    @property
    def finished(self) -> bool:
        """True once the end marker has been consumed."""
        return self._producer.end_consumed

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        if self._producer.end_consumed:
            raise StopIteration
        item = self._producer.handoff.get()
        if isinstance(item, _End):
            self._producer.end_consumed = True
            if item.error is not None:
                self.error = item.error
            raise StopIteration
        return item

    def __enter__(self) -> Stream[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def raise_for_error(self) -> None:
        """Re-raise the error that aborted the producer, if any."""
        if self.error is not None:
            raise self.error

    def collect(self) -> list[T]:
        """Drain the stream into a list, raising if the producer aborted."""
        items = list(self)
        self.raise_for_error()
        return items

    def close(self) -> None:
        """Stop the producer and every upstream stage, then wake any blocked consumer."""
        with self._close_lock:
            self._finalizer()
            if self._producer.drained_error is not None:
                self.error = self._producer.drained_error


def _pull(upstream: Stream[T]) -> Iterator[T]:
    yield from upstream
    if upstream.error is not None:
        raise _UpstreamAborted(upstream.error)


def map_stream(
    upstream: Stream[T],
    transform: Callable[[T], R],
    *,
    name: str = "map",
) -> Stream[R]:
    """Apply `transform` to every element, preserving order."""

    def produce(emit: Emit) -> None:
        for item in _pull(upstream):
            emit(transform(item))

    return Stream(produce, name=name, upstreams=(upstream,))


def filter_stream(
    upstream: Stream[T],
    predicate: Callable[[T], bool],
    *,
    name: str = "filter",
) -> Stream[T]:
    """Lazy, order-preserving subsequence of elements matching `predicate`."""

    def produce(emit: Emit) -> None:
        for item in _pull(upstream):
            if predicate(item):
                emit(item)

    return Stream(produce, name=name, upstreams=(upstream,))


def tail(upstream: Stream[T], count: int, *, name: str = "tail") -> Stream[T]:
    """Emit only the last `count` elements once the upstream is exhausted."""
    if count < 1:
        raise ValueError("count must be at least 1")

    def produce(emit: Emit) -> None:
        buffer: deque[T] = deque(_pull(upstream), maxlen=count)
        for item in buffer:
            emit(item)

    return Stream(produce, name=name, upstreams=(upstream,))


def zip_fold(
    left: Stream[T],
    right: Stream[U],
    reducer: Callable[[T, U], R],
    *,
    name: str = "zip_fold",
) -> Stream[R]:
    """Pair two streams by position and emit `reducer(left_i, right_i)` per step.

    Both inputs must have the same length. If exactly one side runs out first,
    the output ends with `StreamLengthMismatchError` after the aligned prefix.
    """

    def produce(emit: Emit) -> None:
        position = 0
        while True:
            first = next(left, _EXHAUSTED)
            second = next(right, _EXHAUSTED)
            for side in (left, right):
                if side.error is not None:
                    raise _UpstreamAborted(side.error)
            if first is _EXHAUSTED and second is _EXHAUSTED:
                return
            if first is _EXHAUSTED or second is _EXHAUSTED:
                shorter = left if first is _EXHAUSTED else right
                raise StreamLengthMismatchError(
                    f"{shorter.name} ended at position {position} before its paired stream"
                )
            emit(reducer(first, second))
            position += 1

    return Stream(produce, name=name, upstreams=(left, right))
