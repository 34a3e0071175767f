"""
Breadth-first worklist traversal over a lazily discovered graph.
"""
from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import (
    Callable,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    Set,
    TypeVar,
    Union,
)

T = TypeVar("T", bound=Hashable)

DiscoverFn = Callable[[T], Iterable[T]]


class Discoverer(Protocol[T]):
    """Anything that can turn one item into the items it leads to."""

    def discover(self, item: T) -> Sequence[T]:
        ...


class DiscoveryContractError(TypeError):
    """Raised when a discover function returns None instead of a sequence."""


class Frontier(Generic[T]):
    """
    State of one traversal: the seen-set plus the current and next batch.

    Items added to the next batch are not checked against the seen-set;
    that happens in take() once the batch has become current.
    """

    def __init__(self, seeds: Iterable[T]) -> None:
        self._current: List[T] = list(seeds)
        self._next: List[T] = []
        self._seen: Set[T] = set()
        self.round = 0

    @property
    def seen(self) -> frozenset:
        return frozenset(self._seen)

    def __bool__(self) -> bool:
        return bool(self._current)

    def take(self) -> Iterator[T]:
        """Yield unseen items of the current batch in order, marking each seen."""
        for item in self._current:
            if item in self._seen:
                continue
            self._seen.add(item)
            yield item

    def add(self, items: Iterable[T]) -> None:
        self._next.extend(items)

    def advance(self) -> bool:
        """Promote the next batch to current. Returns False once it is empty."""
        self._current, self._next = self._next, []
        self.round += 1
        return bool(self._current)


def _as_callable(discover: Union[Discoverer[T], DiscoverFn]) -> DiscoverFn:
    method = getattr(discover, "discover", None)
    if callable(method):
        return method
    if callable(discover):
        return discover
    raise TypeError(f"{discover!r} is neither callable nor a Discoverer")


def _checked(discover: DiscoverFn, item: T) -> List[T]:
    found = discover(item)
    if found is None:
        raise DiscoveryContractError(f"discover({item!r}) returned None")
    # Lazy results are drained here, on the thread that ran discover
    return list(found)


def traverse(
    discover: Union[Discoverer[T], DiscoverFn],
    seeds: Iterable[T],
    *,
    max_workers: int = 1,
    stop: Optional[threading.Event] = None,
) -> None:
    """
    Call discover once for every item reachable from seeds, breadth first.

    Args:
        discover: Callable or Discoverer mapping an item to the items it
                  leads to. Returned items may repeat or already be seen.
        seeds: Initial items. Duplicates are ignored.
        max_workers: Upper bound on discover calls in flight within a round.
                     1 keeps everything on the calling thread.
        stop: When set, no new discover calls are started. Calls already
              running finish and traverse returns.

    Exceptions raised by discover propagate to the caller and end the
    traversal.
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    fn = _as_callable(discover)
    frontier: Frontier[T] = Frontier(seeds)

    if max_workers == 1:
        _run_sequential(fn, frontier, stop)
        return

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="discover") as executor:
        try:
            _run_concurrent(fn, frontier, executor, max_workers, stop)
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise


def _stopped(stop: Optional[threading.Event]) -> bool:
    return stop is not None and stop.is_set()


def _run_sequential(fn: DiscoverFn, frontier: Frontier[T], stop: Optional[threading.Event]) -> None:
    while frontier:
        for item in frontier.take():
            if _stopped(stop):
                return
            frontier.add(_checked(fn, item))
        frontier.advance()


def _run_concurrent(
    fn: DiscoverFn,
    frontier: Frontier[T],
    executor: ThreadPoolExecutor,
    max_workers: int,
    stop: Optional[threading.Event],
) -> None:
    # Only this thread touches the frontier; workers just run discover.
    while frontier:
        dispatched: List[Future] = []
        in_flight: Set[Future] = set()

        for item in frontier.take():
            if len(in_flight) >= max_workers:
                done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    future.result()
            # A call that just finished may have set stop
            if _stopped(stop):
                break
            future = executor.submit(_checked, fn, item)
            dispatched.append(future)
            in_flight.add(future)

        # Round barrier
        wait(in_flight)
        for future in dispatched:
            frontier.add(future.result())

        if _stopped(stop):
            return
        frontier.advance()
