"""Single-flight cache backed by ``concurrent.futures.Future`` cells.

The first caller for a key owns the load; concurrent callers on other
threads wait on the same future. A re-entrant call from the owning thread
(mutually referencing classes) receives the placeholder registered by the
loader instead of starting a second load. Failures are never cached: the
cell is evicted and the error is delivered to every waiter.

Limitation: two threads that each own a load and wait on the other's key
block each other; per-node resolution is expected to run on one thread at a
time.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any, Callable, Generic, Hashable, Iterator, Optional, TypeVar

from hieraedit.core.exceptions import CompilationError

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

RegisterPlaceholder = Callable[[Any], None]


class _Cell(Generic[V]):
    __slots__ = ("future", "owner", "placeholder")

    def __init__(self, owner: int) -> None:
        self.future: Future = Future()
        self.owner = owner
        self.placeholder: Optional[V] = None


class SingleFlightCache(Generic[K, V]):
    def __init__(self, name: str = "cache") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._cells: dict[K, _Cell[V]] = {}

    def get_or_load(self, key: K, load: Callable[[RegisterPlaceholder], V]) -> V:
        """Return the cached value for ``key``, loading it at most once.

        ``load`` receives a ``register(placeholder)`` callback; the
        placeholder is what re-entrant callers on the owning thread get while
        the load is still running.
        """
        me = threading.get_ident()
        with self._lock:
            cell = self._cells.get(key)
            owner = cell is None
            if cell is None:
                cell = _Cell(me)
                self._cells[key] = cell

        if not owner:
            if cell.owner == me and not cell.future.done():
                if cell.placeholder is not None:
                    return cell.placeholder
                raise CompilationError(
                    f"Circular reference to {key} while it is being loaded",
                    context={"cache": self.name, "key": str(key)},
                )
            return cell.future.result()

        def register(placeholder: Any) -> None:
            cell.placeholder = placeholder

        try:
            value = load(register)
        except BaseException as exc:
            with self._lock:
                if self._cells.get(key) is cell:
                    del self._cells[key]
            cell.future.set_exception(exc)
            raise
        cell.future.set_result(value)
        return value

    def get(self, key: K) -> Optional[V]:
        """Completed value for ``key`` or None (loading cells are ignored)."""
        with self._lock:
            cell = self._cells.get(key)
        if cell is None or not cell.future.done() or cell.future.exception() is not None:
            return None
        return cell.future.result()

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def evict(self, key: K) -> Optional[V]:
        """Drop ``key`` and return its completed value (if any)."""
        with self._lock:
            cell = self._cells.pop(key, None)
        if cell is None:
            return None
        if cell.future.done() and cell.future.exception() is None:
            return cell.future.result()
        return cell.placeholder

    def clear(self) -> None:
        with self._lock:
            self._cells.clear()

    def items(self) -> Iterator[tuple[K, V]]:
        with self._lock:
            cells = list(self._cells.items())
        for key, cell in cells:
            if cell.future.done() and cell.future.exception() is None:
                yield key, cell.future.result()

    def values(self) -> Iterator[V]:
        for _, value in self.items():
            yield value

    def keys(self) -> Iterator[K]:
        for key, _ in self.items():
            yield key

    def __len__(self) -> int:
        return sum(1 for _ in self.items())


__all__ = ["SingleFlightCache"]
