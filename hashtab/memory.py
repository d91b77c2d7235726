from typing import Callable, TypeVar

from .shared import printf_err


T = TypeVar("T")


class OutOfMemoryError(MemoryError):
    pass


_alloc_budget: int | None = None
_debug_trace_alloc = False


def set_debug_trace_alloc(b: bool):
    global _debug_trace_alloc
    _debug_trace_alloc = b


def set_alloc_budget(budget: int | None):
    """Allow `budget` more allocations to succeed. None lifts the limit."""
    global _alloc_budget
    if budget is not None and budget < 0:
        raise ValueError("Allocation budget must not be negative", budget)
    _alloc_budget = budget


def alloc_budget() -> int | None:
    return _alloc_budget


def allocate(what: str, factory: Callable[[], T]) -> T:
    global _alloc_budget
    if _alloc_budget is not None:
        if _alloc_budget == 0:
            if _debug_trace_alloc:
                printf_err("alloc failed: {0:s}\n", what)
            raise OutOfMemoryError(f"cannot allocate {what}")
        _alloc_budget -= 1

    try:
        return factory()
    except MemoryError as e:
        raise OutOfMemoryError(f"cannot allocate {what}") from e
