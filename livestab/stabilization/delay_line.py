"""
Fixed-capacity FIFO buffer introducing a deterministic output lag.
"""

from collections import deque
from typing import Any, Generic, Iterator, Sequence, TypeVar

T = TypeVar("T")


class DelayLine(Generic[T]):
    """
    Circular buffer that keeps the most recent `capacity` elements.

    Index 0 is the oldest element. Pushing onto a full line evicts and
    returns the oldest element so the caller can dispose of it.

    Example:
        >>> line = DelayLine(3)
        >>> for i in range(4):
        ...     _ = line.push(i)
        >>> line.oldest(), line.centre(), line.newest()
        (1, 2, 3)
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"DelayLine capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._buffer: deque[T] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def full(self) -> bool:
        return len(self._buffer) == self._capacity

    def push(self, element: T) -> T | None:
        """
        Append an element.

        Returns:
            The evicted oldest element if the line was full, otherwise None
        """
        evicted = self._buffer.popleft() if self.full() else None
        self._buffer.append(element)
        return evicted

    def resize(self, capacity: int) -> list[T]:
        """
        Change the capacity, keeping the newest elements.

        Returns:
            The oldest elements that no longer fit, oldest first
        """
        if capacity < 1:
            raise ValueError(f"DelayLine capacity must be positive, got {capacity}")
        dropped = []
        while len(self._buffer) > capacity:
            dropped.append(self._buffer.popleft())
        self._capacity = capacity
        return dropped

    def clear(self) -> list[T]:
        """Remove every element, returning them oldest first."""
        dropped = list(self._buffer)
        self._buffer.clear()
        return dropped

    def oldest(self) -> T:
        assert self._buffer, "DelayLine is empty"
        return self._buffer[0]

    def newest(self) -> T:
        assert self._buffer, "DelayLine is empty"
        return self._buffer[-1]

    def previous(self) -> T:
        """The element pushed before the newest one."""
        assert len(self._buffer) >= 2, "DelayLine holds fewer than two elements"
        return self._buffer[-2]

    def centre_index(self) -> int:
        return (len(self._buffer) - 1) // 2

    def centre(self) -> T:
        assert self._buffer, "DelayLine is empty"
        return self._buffer[self.centre_index()]

    def convolve(self, kernel: Sequence[float]) -> Any:
        """
        Weighted sum of the elements, oldest first.

        Elements must support `element * float` and `element + element`.
        The kernel length must equal the number of elements.
        """
        assert len(kernel) == len(self._buffer), (
            f"Kernel of length {len(kernel)} does not match {len(self._buffer)} elements"
        )
        result = None
        for element, weight in zip(self._buffer, kernel):
            term = element * float(weight)
            result = term if result is None else result + term
        return result

    def __getitem__(self, index: int) -> T:
        return self._buffer[index]

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[T]:
        return iter(self._buffer)

    def __repr__(self) -> str:
        return f"DelayLine({len(self._buffer)}/{self._capacity})"
