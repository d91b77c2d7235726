from dataclasses import dataclass
from typing import Any, Callable, Iterator

from .memory import OutOfMemoryError, allocate
from .shared import is_power_of_two, printf, printf_err


MIN_BUCKET_COUNT = 32
TABLE_GROW_LOAD = 1.5
TABLE_SHRINK_LOAD = 0.375

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

_HASH_MASK = 2**64 - 1


_debug_trace_resize = False


def set_debug_trace_resize(b: bool):
    global _debug_trace_resize
    _debug_trace_resize = b


def hash_string(key: str) -> int:
    # djb2: hash * 33 + c
    hash = 5381
    for c in key.encode("utf-8", "surrogatepass"):
        hash = (hash * 33 + c) & _HASH_MASK
    return hash


@dataclass
class Entry:
    key: str
    value: int
    next: "Entry | None" = None


@dataclass
class NotFound:
    pass


Visitor = Callable[[str, int, Any], None]


@dataclass
class Table:
    """Separate-chaining hash table from str keys to int values.

    The bucket count doubles once the load factor passes TABLE_GROW_LOAD and
    halves once it drops under TABLE_SHRINK_LOAD, never going below
    min_bucket_count. A resize that runs out of memory is abandoned and the
    table keeps its current buckets.
    """

    count: int
    buckets: list[Entry | None]
    min_bucket_count: int

    def __init__(
        self, min_bucket_count: int = MIN_BUCKET_COUNT, bucket_count: int | None = None
    ) -> None:
        if not is_power_of_two(min_bucket_count):
            raise ValueError(
                "Minimum bucket count should be a power of two", min_bucket_count
            )
        if bucket_count is None:
            bucket_count = min_bucket_count
        if not is_power_of_two(bucket_count) or bucket_count < min_bucket_count:
            raise ValueError(
                "Bucket count should be a power of two not below the minimum",
                bucket_count,
            )

        self.count = 0
        self.min_bucket_count = min_bucket_count
        self.buckets = allocate("bucket array", lambda: [None] * bucket_count)

    @property
    def bucket_count(self) -> int:
        return len(self.buckets)

    @property
    def load_factor(self) -> float:
        return self.count / len(self.buckets)

    def __len__(self) -> int:
        return self.count

    def __contains__(self, key: str) -> bool:
        return self.find_entry(key) is not None

    def __iter__(self) -> Iterator[tuple[str, int]]:
        for entry in self.buckets:
            while entry is not None:
                yield entry.key, entry.value
                entry = entry.next

    def find_entry(self, key: str) -> Entry | None:
        entry = self.buckets[hash_string(key) % len(self.buckets)]
        while entry is not None and entry.key != key:
            entry = entry.next
        return entry

    def get(self, key: str) -> int | NotFound:
        entry = self.find_entry(key)
        if entry is None:
            return NotFound()
        return entry.value

    def set(self, key: str, value: int) -> bool:
        """Insert or update `key`. Returns True if the key was not present.

        Raises OutOfMemoryError, leaving the table as it was, when a new
        entry cannot be allocated.
        """
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError("Value should be an int", value)
        if not INT_MIN <= value <= INT_MAX:
            raise ValueError("Value out of range", value)

        is_new_key = self._insert(key, value)
        if is_new_key and self.load_factor > TABLE_GROW_LOAD:
            self._resize(len(self.buckets) * 2)
        return is_new_key

    def remove(self, key: str) -> bool:
        index = hash_string(key) % len(self.buckets)
        entry = self.buckets[index]
        prev: Entry | None = None
        while entry is not None and entry.key != key:
            prev = entry
            entry = entry.next

        if entry is None:
            return False

        if prev is None:
            self.buckets[index] = entry.next
        else:
            prev.next = entry.next
        entry.next = None
        self.count -= 1

        if (
            self.load_factor < TABLE_SHRINK_LOAD
            and len(self.buckets) > self.min_bucket_count
        ):
            self._resize(len(self.buckets) // 2)
        return True

    def for_each(self, visitor: Visitor, context: Any = None):
        # visitor must not add or remove keys
        for key, value in self:
            visitor(key, value, context)

    def add_all(self, from_t: "Table"):
        """Copy every pair of `from_t` into this table without resizing."""
        from_t.for_each(_rehash_entry, self)

    def free(self):
        _free_chains(self.buckets)
        del self.buckets[self.min_bucket_count :]
        self.count = 0

    def dump(self):
        printf("== table {0:d}/{1:d} ==\n", self.count, len(self.buckets))
        for index, entry in enumerate(self.buckets):
            if entry is None:
                continue
            printf("{0:04d}", index)
            while entry is not None:
                printf(" {0:s}={1:d}", entry.key, entry.value)
                entry = entry.next
            printf("\n")

    def _insert(self, key: str, value: int) -> bool:
        index = hash_string(key) % len(self.buckets)
        head = self.buckets[index]

        entry = head
        while entry is not None and entry.key != key:
            entry = entry.next

        if entry is not None:
            entry.value = value
            return False

        self.buckets[index] = allocate("entry", lambda: Entry(key, value, head))
        self.count += 1
        return True

    def _resize(self, bucket_count: int) -> bool:
        bucket_count = max(bucket_count, self.min_bucket_count)
        if _debug_trace_resize:
            printf_err(
                "== resize {0:d} -> {1:d} ==\n", len(self.buckets), bucket_count
            )

        try:
            new_t = Table(self.min_bucket_count, bucket_count)
            new_t.add_all(self)
        except OutOfMemoryError as e:
            # partial table is dropped, this one stays valid
            if _debug_trace_resize:
                printf_err("resize deferred: {0:s}\n", str(e))
            return False

        old_buckets = self.buckets
        self.buckets = new_t.buckets
        _free_chains(old_buckets)
        return True


def _rehash_entry(key: str, value: int, table: Table):
    table._insert(key, value)


def _free_chains(buckets: list[Entry | None]):
    for index, entry in enumerate(buckets):
        while entry is not None:
            next_entry = entry.next
            entry.next = None
            entry = next_entry
        buckets[index] = None


def free_table(table: Table | None):
    if table is None:
        return
    table.free()
