"""Owned, ordered identifier bag used as a node's neighbor list."""

from collections.abc import Iterable, Iterator

import numpy as np


class AdjacencySet:
    """Ordered collection of node identifiers, duplicates permitted.

    Append-only until destroyed. Each set is exclusively owned by one node;
    clone() is the only way to share contents, and it produces an independent
    copy. Deduplication is the adjacency builder's responsibility.
    """

    __slots__ = ("_elems",)

    def __init__(self, elems: Iterable[int] = ()) -> None:
        self._elems: list[int] = [int(e) for e in elems]

    def append(self, elem: int) -> None:
        self._elems.append(int(elem))

    def clone(self) -> "AdjacencySet":
        """Deep copy with independent ownership."""
        return AdjacencySet(self._elems)

    def destroy(self) -> None:
        """Release every element. Safe to call on an empty or destroyed set."""
        self._elems.clear()

    def to_array(self) -> np.ndarray:
        """Identifiers as an int64 array, in insertion order."""
        return np.asarray(self._elems, dtype=np.int64)

    def __iter__(self) -> Iterator[int]:
        return iter(self._elems)

    def __len__(self) -> int:
        return len(self._elems)

    def __contains__(self, elem: object) -> bool:
        return elem in self._elems

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AdjacencySet):
            return NotImplemented
        return self._elems == other._elems

    def __repr__(self) -> str:
        return f"AdjacencySet({self._elems!r})"
