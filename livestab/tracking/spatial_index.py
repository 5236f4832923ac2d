"""
Spatial hash over a rectangular region.

Positions are bucketed into a fixed grid; each bucket holds at most one
item. Items live in a dense arena so that removal is O(1): the removed
slot is filled by the last-inserted item and that item's bucket is
re-pointed at its new slot.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, TypeVar

import numpy as np

T = TypeVar("T")

EMPTY_SLOT = -1

# Sector grid used by distribution_quality()
SECTOR_GRID = (4, 4)


@dataclass(frozen=True, order=True)
class SpatialKey:
    """Discrete (col, row) bucket coordinate."""
    col: int
    row: int


class SpatialIndex(Generic[T]):
    """
    Grid of buckets mapping 2-D positions to at most one item each.

    The region's top/left edges are inclusive and bottom/right edges are
    exclusive, matching array indexing. Iteration follows insertion order,
    which is not stable across removals.

    Example:
        >>> index = SpatialIndex((4, 3), (0, 0, 640, 480))
        >>> index.place((10.0, 10.0), "a")
        SpatialKey(col=0, row=0)
        >>> index.at(SpatialKey(0, 0))
        'a'
    """

    def __init__(
        self,
        resolution: tuple[int, int],
        region: tuple[float, float, float, float],
        factory: Callable[..., T] | None = None,
    ):
        """
        Initialize the index.

        Args:
            resolution: (cols, rows) number of buckets
            region: (x, y, width, height) area covered by the buckets
            factory: Callable used by emplace() to construct items
        """
        self.factory = factory

        self._keys: list[SpatialKey] = []
        self._items: list[T] = []
        self._buckets = np.empty((0, 0), dtype=np.int64)
        self._resolution = (0, 0)
        self._region = (0.0, 0.0, 0.0, 0.0)
        self._bucket_size = (0.0, 0.0)

        self.rescale(resolution, region)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def resolution(self) -> tuple[int, int]:
        return self._resolution

    @property
    def region(self) -> tuple[float, float, float, float]:
        return self._region

    @property
    def bucket_size(self) -> tuple[float, float]:
        return self._bucket_size

    @property
    def capacity(self) -> int:
        return self._resolution[0] * self._resolution[1]

    def within_bounds(self, position: tuple[float, float]) -> bool:
        """Check whether a position falls inside the covered region."""
        x, y = position
        rx, ry, rw, rh = self._region
        return rx <= x < rx + rw and ry <= y < ry + rh

    def key_of(self, position: tuple[float, float]) -> SpatialKey | None:
        """
        Get the bucket key for a position.

        Returns:
            The key, or None if the position is outside the region
        """
        if not self.within_bounds(position):
            return None

        x, y = position
        rx, ry, _, _ = self._region
        bw, bh = self._bucket_size
        cols, rows = self._resolution

        # Clamp against float rounding just below the exclusive edge
        col = min(int(math.floor((x - rx) / bw)), cols - 1)
        row = min(int(math.floor((y - ry) / bh)), rows - 1)
        return SpatialKey(col, row)

    def is_valid_key(self, key: SpatialKey) -> bool:
        cols, rows = self._resolution
        return 0 <= key.col < cols and 0 <= key.row < rows

    def bucket_centre(self, key: SpatialKey) -> tuple[float, float]:
        """Position at the centre of a bucket."""
        rx, ry, _, _ = self._region
        bw, bh = self._bucket_size
        return (rx + (key.col + 0.5) * bw, ry + (key.row + 0.5) * bh)

    def rescale(
        self,
        resolution: tuple[int, int],
        region: tuple[float, float, float, float],
    ) -> None:
        """
        Repartition the index into a new grid over a new region.

        Live items are re-inserted under the key of their old bucket centre.
        Items whose centre falls outside the new region are discarded; when
        two items land in the same bucket the later one wins.

        Args:
            resolution: New (cols, rows)
            region: New (x, y, width, height)
        """
        cols, rows = int(resolution[0]), int(resolution[1])
        if cols < 1 or rows < 1:
            raise ValueError(f"Spatial index resolution must be positive, got {resolution}")
        rx, ry, rw, rh = (float(v) for v in region)
        if rw <= 0 or rh <= 0:
            raise ValueError(f"Spatial index region must have positive size, got {region}")

        old_entries = [
            (self.bucket_centre(key), item) for key, item in zip(self._keys, self._items)
        ]

        self._resolution = (cols, rows)
        self._region = (rx, ry, rw, rh)
        self._bucket_size = (rw / cols, rh / rows)
        self._buckets = np.full((rows, cols), EMPTY_SLOT, dtype=np.int64)
        self._keys.clear()
        self._items.clear()

        for position, item in old_entries:
            self.try_place(position, item)

    # ------------------------------------------------------------------
    # Insertion / removal
    # ------------------------------------------------------------------

    def _store(self, key: SpatialKey, item: T) -> SpatialKey:
        slot = self._buckets[key.row, key.col]
        if slot == EMPTY_SLOT:
            self._buckets[key.row, key.col] = len(self._items)
            self._keys.append(key)
            self._items.append(item)
        else:
            self._items[slot] = item
        return key

    def place(self, position: tuple[float, float], item: T) -> SpatialKey:
        """
        Insert or overwrite the item in the bucket containing position.

        The position must be inside the region; use try_place() when that
        is not guaranteed.
        """
        key = self.key_of(position)
        assert key is not None, f"Position {position} is outside {self._region}"
        return self._store(key, item)

    def try_place(self, position: tuple[float, float], item: T) -> bool:
        """Like place(), but returns False instead of failing on out-of-bounds positions."""
        key = self.key_of(position)
        if key is None:
            return False
        self._store(key, item)
        return True

    def emplace(self, position: tuple[float, float], *args: Any, **kwargs: Any) -> T:
        """Construct an item with the index factory and place it."""
        if self.factory is None:
            raise TypeError("emplace() requires a SpatialIndex created with a factory")
        item = self.factory(*args, **kwargs)
        self.place(position, item)
        return item

    def try_emplace(self, position: tuple[float, float], *args: Any, **kwargs: Any) -> bool:
        """Like emplace(), but returns False for out-of-bounds positions."""
        if self.factory is None:
            raise TypeError("try_emplace() requires a SpatialIndex created with a factory")
        if not self.within_bounds(position):
            return False
        self.emplace(position, *args, **kwargs)
        return True

    def remove(self, key: SpatialKey) -> None:
        """
        Delete the item in a bucket in O(1).

        The key must be valid and occupied.
        """
        assert self.is_valid_key(key), f"Invalid spatial key {key}"
        slot = int(self._buckets[key.row, key.col])
        assert slot != EMPTY_SLOT, f"No item stored under {key}"

        last = len(self._items) - 1
        if slot != last:
            moved_key = self._keys[last]
            self._keys[slot] = moved_key
            self._items[slot] = self._items[last]
            self._buckets[moved_key.row, moved_key.col] = slot

        self._keys.pop()
        self._items.pop()
        self._buckets[key.row, key.col] = EMPTY_SLOT

    def clear(self) -> None:
        self._keys.clear()
        self._items.clear()
        self._buckets.fill(EMPTY_SLOT)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def contains(self, key: SpatialKey) -> bool:
        """Check whether a (valid) key holds an item."""
        return self.is_valid_key(key) and self._buckets[key.row, key.col] != EMPTY_SLOT

    def __contains__(self, key: SpatialKey) -> bool:
        return self.contains(key)

    def at(self, key: SpatialKey) -> T:
        """Get the item stored under an occupied key."""
        assert self.is_valid_key(key), f"Invalid spatial key {key}"
        slot = int(self._buckets[key.row, key.col])
        assert slot != EMPTY_SLOT, f"No item stored under {key}"
        return self._items[slot]

    def __getitem__(self, key: SpatialKey) -> T:
        return self.at(key)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[tuple[SpatialKey, T]]:
        return iter(list(zip(self._keys, self._items)))

    def keys(self) -> list[SpatialKey]:
        return list(self._keys)

    def items(self) -> list[T]:
        return list(self._items)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def distribution_quality(self) -> float:
        """
        Measure how evenly the items are spread over the region.

        For grids larger than 4x4 the buckets are grouped into a 4x4 grid of
        sectors and the excess over the ideal per-sector count is measured:
        1.0 is a perfectly even spread, 0.0 has everything in one sector.
        Smaller grids fall back to the load factor.

        Returns:
            Quality in [0, 1]; 1.0 for an empty index
        """
        total = len(self._items)
        if total == 0:
            return 1.0

        cols, rows = self._resolution
        sector_cols, sector_rows = SECTOR_GRID
        if cols <= sector_cols or rows <= sector_rows:
            return total / self.capacity

        keys = np.array([(k.col, k.row) for k in self._keys], dtype=np.int64)
        sector_x = keys[:, 0] * sector_cols // cols
        sector_y = keys[:, 1] * sector_rows // rows
        counts = np.bincount(
            sector_y * sector_cols + sector_x,
            minlength=sector_cols * sector_rows,
        )

        ideal = total / (sector_cols * sector_rows)
        excess = np.clip(counts - ideal, 0.0, None).sum()
        return float(np.clip(1.0 - excess / (total - ideal), 0.0, 1.0))
