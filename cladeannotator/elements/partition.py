# partition.py
from typing import Tuple, FrozenSet, Dict, Iterator, Iterable, List, Any, Optional
from functools import total_ordering


@total_ordering
class Partition:
    """
    Immutable set of taxa stored as a bitmask over a taxon encoding.

    The bitmask is an arbitrary precision ``int`` so the universe is not bounded
    by a word size. Equality and hashing only look at the bitmask, which makes a
    Partition usable as the identity key of a clade.
    """

    __slots__ = ("bitmask", "encoding", "_cached_reverse_encoding")

    def __init__(
        self, indices: Iterable[int] = (), encoding: Optional[Dict[str, int]] = None
    ):
        """
        Args:
            indices: taxon indices contained in the partition (duplicates ignored)
            encoding: dict mapping taxon names (str) to indices (int)
        """
        bitmask = 0
        for idx in indices:
            if idx < 0:
                raise ValueError(f"Taxon index must be non-negative, got {idx}")
            bitmask |= 1 << idx
        self.bitmask: int = bitmask
        self.encoding: Dict[str, int] = encoding if encoding is not None else {}
        self._cached_reverse_encoding: Optional[Dict[int, str]] = None

    @classmethod
    def from_bitmask(
        cls, bitmask: int, encoding: Optional[Dict[str, int]] = None
    ) -> "Partition":
        """Create a Partition directly from a bitmask (no index iteration)."""
        if bitmask < 0:
            raise ValueError("Bitmask must be non-negative")
        partition = cls.__new__(cls)
        partition.bitmask = bitmask
        partition.encoding = encoding if encoding is not None else {}
        partition._cached_reverse_encoding = None
        return partition

    @classmethod
    def from_taxa(cls, names: Iterable[str], encoding: Dict[str, int]) -> "Partition":
        """
        Create a Partition from taxon names.

        Raises:
            KeyError: If a name is not part of the encoding
        """
        return cls((encoding[name] for name in names), encoding)

    @property
    def indices(self) -> Tuple[int, ...]:
        """Sorted tuple of the taxon indices set in the bitmask."""
        result: List[int] = []
        mask = self.bitmask
        idx = 0
        while mask:
            if mask & 1:
                result.append(idx)
            mask >>= 1
            idx += 1
        return tuple(result)

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices)

    def __len__(self) -> int:
        return bin(self.bitmask).count("1")

    def __bool__(self) -> bool:
        return self.bitmask != 0

    def __contains__(self, index: object) -> bool:
        if isinstance(index, int) and index >= 0:
            return bool(self.bitmask >> index & 1)
        return False

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Partition):
            return self.bitmask == other.bitmask
        if isinstance(other, tuple) and all(isinstance(x, int) for x in other):
            return self.indices == tuple(sorted(set(other)))
        return NotImplemented

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, Partition):
            return self.indices < other.indices
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.bitmask)

    def __or__(self, other: Any) -> "Partition":
        if isinstance(other, Partition):
            return Partition.from_bitmask(self.bitmask | other.bitmask, self.encoding)
        return NotImplemented

    def __and__(self, other: Any) -> "Partition":
        if isinstance(other, Partition):
            return Partition.from_bitmask(self.bitmask & other.bitmask, self.encoding)
        return NotImplemented

    def is_subset_of(self, other: "Partition") -> bool:
        return (self.bitmask & other.bitmask) == self.bitmask

    @property
    def reverse_encoding(self) -> Dict[int, str]:
        """
        Return a reverse mapping from index to taxon name.
        Caches the result for performance.
        """
        if self._cached_reverse_encoding is None:
            self._cached_reverse_encoding = {v: k for k, v in self.encoding.items()}
        return self._cached_reverse_encoding

    @property
    def taxa(self) -> FrozenSet[str]:
        """
        Return the set of taxon names corresponding to the indices in this partition.
        """
        return frozenset(self.reverse_encoding[i] for i in self.indices)

    def __str__(self) -> str:
        names: List[str] = sorted(
            self.reverse_encoding.get(i, str(i)) for i in self.indices
        )
        return f"({', '.join(names)})"

    def __repr__(self) -> str:
        return f"Partition{self}"
