from __future__ import annotations

import gc
import threading
import time

import pytest

from tdxbacktest.errors import StreamLengthMismatchError
from tdxbacktest.stream.pipeline import Stream, filter_stream, map_stream, tail, zip_fold


class FakeResource:
    def __init__(self) -> None:
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1


def _counting_source(limit: int, produced: list[int]) -> Stream[int]:
    def produce(emit) -> None:
        for value in range(limit):
            produced.append(value)
            emit(value)

    return Stream(produce, name="counting")


def _failing_source(values: list[int], error: Exception) -> Stream[int]:
    def produce(emit) -> None:
        for value in values:
            emit(value)
        raise error

    return Stream(produce, name="failing")


def test_from_iterable_preserves_order() -> None:
    assert Stream.from_iterable([3, 1, 2]).collect() == [3, 1, 2]


def test_filter_is_order_preserving_subsequence() -> None:
    evens = filter_stream(Stream.from_iterable(range(10)), lambda value: value % 2 == 0)

    assert evens.collect() == [0, 2, 4, 6, 8]


def test_map_transforms_each_element() -> None:
    doubled = map_stream(Stream.from_iterable([1, 2, 3]), lambda value: value * 2)

    assert doubled.collect() == [2, 4, 6]


def test_tail_emits_last_elements_after_exhaustion() -> None:
    assert tail(Stream.from_iterable(range(6)), 2).collect() == [4, 5]
    assert tail(Stream.from_iterable(range(6)), 1).collect() == [5]
    assert tail(Stream.from_iterable([]), 1).collect() == []


def test_tail_rejects_non_positive_count() -> None:
    source = Stream.from_iterable([1])
    with pytest.raises(ValueError):
        tail(source, 0)
    source.close()


def test_zip_fold_pairs_by_position_with_stateful_reducer() -> None:
    running = 0

    def reducer(left: int, right: str) -> str:
        nonlocal running
        running += left
        return f"{right}{running}"

    folded = zip_fold(Stream.from_iterable([1, 2, 3]), Stream.from_iterable("abc"), reducer)

    assert folded.collect() == ["a1", "b3", "c6"]


def test_zip_fold_fails_fast_on_length_mismatch() -> None:
    folded = zip_fold(
        Stream.from_iterable([1, 2, 3], name="prices"),
        Stream.from_iterable(["x", "y"], name="actions"),
        lambda left, right: (left, right),
    )

    values = list(folded)

    assert values == [(1, "x"), (2, "y")]
    assert isinstance(folded.error, StreamLengthMismatchError)
    assert "actions" in str(folded.error)


def test_producer_blocks_until_consumer_pulls() -> None:
    produced: list[int] = []
    source = _counting_source(100, produced)

    assert next(source) == 0
    time.sleep(0.2)

    # one element waiting in the handoff slot, one held by the blocked producer
    assert len(produced) <= 3
    source.close()


def test_close_releases_resource_when_consumer_abandons_stream() -> None:
    resource = FakeResource()

    def produce(handle: FakeResource, emit) -> None:
        for value in range(1000):
            emit(value)

    stream: Stream[int] = Stream.from_resource(resource, produce)
    with stream:
        assert next(stream) == 0

    assert resource.close_calls == 1
    assert stream.closed
    assert list(stream) == []


def test_resource_released_once_after_full_drain() -> None:
    resource = FakeResource()

    def produce(handle: FakeResource, emit) -> None:
        emit("only")

    stream: Stream[str] = Stream.from_resource(resource, produce)
    assert stream.collect() == ["only"]
    stream.close()

    assert resource.close_calls == 1


def test_closing_downstream_closes_upstream_stages() -> None:
    resource = FakeResource()

    def produce(handle: FakeResource, emit) -> None:
        while True:
            emit(1)

    source: Stream[int] = Stream.from_resource(resource, produce)
    mapped = map_stream(source, lambda value: value + 1)

    assert next(mapped) == 2
    mapped.close()

    assert source.closed
    assert resource.close_calls == 1


def test_close_wakes_consumer_blocked_on_empty_handoff() -> None:
    release = threading.Event()

    def produce(emit) -> None:
        release.wait(5)

    stream: Stream[int] = Stream(produce, name="idle")
    results: list[list[int]] = []
    consumer = threading.Thread(target=lambda: results.append(list(stream)))
    consumer.start()
    time.sleep(0.1)
    release.set()
    stream.close()
    consumer.join(timeout=5)

    assert results == [[]]


def test_error_ends_stream_after_partial_results() -> None:
    failing = _failing_source([1, 2], RuntimeError("boom"))

    assert list(failing) == [1, 2]
    assert isinstance(failing.error, RuntimeError)
    with pytest.raises(RuntimeError, match="boom"):
        failing.raise_for_error()


def test_error_propagates_through_downstream_stages() -> None:
    error = RuntimeError("decode failed")
    downstream = filter_stream(
        map_stream(_failing_source([1, 2, 3], error), lambda value: value * 10),
        lambda value: value > 10,
    )

    assert list(downstream) == [20, 30]
    assert downstream.error is error


def test_collect_raises_upstream_error_in_zip_fold() -> None:
    folded = zip_fold(
        _failing_source([1], ValueError("bad record")),
        Stream.from_iterable(["a", "b"]),
        lambda left, right: left,
    )

    with pytest.raises(ValueError, match="bad record"):
        folded.collect()


def test_clean_exhaustion_has_no_error() -> None:
    stream = Stream.from_iterable([1])
    stream.collect()

    assert stream.error is None
    assert stream.finished


def test_zip_fold_keeps_sources_one_pair_ahead() -> None:
    left_produced: list[int] = []
    right_produced: list[int] = []
    pairs: list[tuple[int, int]] = []

    def reducer(left: int, right: int) -> int:
        pairs.append((left, right))
        return left + right

    folded = zip_fold(
        _counting_source(100, left_produced), _counting_source(100, right_produced), reducer
    )

    assert next(folded) == 0
    time.sleep(0.2)

    # reduced outputs: one taken, one in the slot, one held by the blocked producer
    assert pairs[0] == (0, 0)
    assert len(pairs) <= 3
    assert len(left_produced) <= 5
    assert len(right_produced) <= 5
    folded.close()


def test_garbage_collected_stream_releases_resource() -> None:
    resource = FakeResource()

    def produce(handle: FakeResource, emit) -> None:
        value = 0
        while True:
            emit(value)
            value += 1

    stream: Stream[int] = Stream.from_resource(resource, produce, name="abandoned")
    assert next(stream) == 0
    producer_thread = stream._producer.thread

    del stream
    gc.collect()

    assert resource.close_calls == 1
    assert not producer_thread.is_alive()


class _Halt(BaseException):
    pass


def test_base_exception_in_producer_still_ends_stream(monkeypatch: pytest.MonkeyPatch) -> None:
    # the producer thread re-raises after handing over the end marker
    monkeypatch.setattr(threading, "excepthook", lambda args: None)

    def reducer(left: int, right: int) -> int:
        if left == 2:
            raise _Halt()
        return left * right

    folded = zip_fold(Stream.from_iterable([1, 2, 3]), Stream.from_iterable([1, 2, 3]), reducer)

    assert list(folded) == [1]
    assert isinstance(folded.error, _Halt)
    assert folded.finished
    folded.close()
