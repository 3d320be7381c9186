"""
Per-channel sample buffers.

A SensorBuffer is a FIFO owned by the single localization worker. Producers
never touch it directly: a subscriber hands over newly arrived samples in one
`extend` call at the start of a tick, after which the worker inspects and pops
the front without interference. Samples are consumed strictly in arrival
order and are never re-sorted; cross-channel alignment is the synchronizer's
job.
"""

from collections import deque
from typing import Deque, Generic, Iterable, Iterator, Tuple, TypeVar

T = TypeVar("T")


class SensorBuffer(Generic[T]):
    """
    FIFO of timestamped samples for one sensor channel.

    Example:
        >>> buf = SensorBuffer("imu_raw")
        >>> buf.extend([s0, s1])
        >>> buf.front() is s0
        True
        >>> buf.pop_front() is s0
        True
        >>> len(buf)
        1
    """

    def __init__(self, name: str):
        if not name:
            raise ValueError("Buffer name must be a non-empty string")
        self.name = name
        self._items: Deque[T] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"SensorBuffer(name={self.name!r}, size={len(self._items)})"

    @property
    def empty(self) -> bool:
        return not self._items

    def append(self, sample: T) -> None:
        self._items.append(sample)

    def extend(self, samples: Iterable[T]) -> None:
        self._items.extend(samples)

    def front(self) -> T:
        """Oldest sample. Raises IndexError when the buffer is empty."""
        if not self._items:
            raise IndexError(f"front() on empty buffer '{self.name}'")
        return self._items[0]

    def pop_front(self) -> T:
        """Remove and return the oldest sample."""
        if not self._items:
            raise IndexError(f"pop_front() on empty buffer '{self.name}'")
        return self._items.popleft()

    def drop_older_than(self, t: float) -> int:
        """
        Pop front samples whose timestamp is strictly less than t.

        Returns:
            Number of samples discarded.
        """
        n_dropped = 0
        while self._items and self._items[0].t < t:
            self._items.popleft()
            n_dropped += 1
        return n_dropped

    def snapshot(self) -> Tuple[T, ...]:
        """Immutable view of the current contents, front first."""
        return tuple(self._items)

    def clear(self) -> None:
        self._items.clear()
