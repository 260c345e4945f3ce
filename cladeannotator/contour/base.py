from dataclasses import dataclass
from typing import List, Protocol, Sequence


@dataclass
class ContourPath:
    """One closed ring of a 2D HPD region."""

    x: List[float]
    y: List[float]

    def __len__(self) -> int:
        return len(self.x)

    def is_closed(self) -> bool:
        return bool(self.x) and self.x[0] == self.x[-1] and self.y[0] == self.y[-1]


class ContourMaker(Protocol):
    """Compute the rings enclosing a given probability mass of a 2D sample."""

    def get_contour_paths(
        self, x: Sequence[float], y: Sequence[float], mass: float
    ) -> List[ContourPath]: ...
