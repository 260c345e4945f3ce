from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from cladeannotator.attributes import BivariateTrait, DEFAULT_BIVARIATE_TRAITS
from cladeannotator.clades.scoring import ScoringMethod


class HeightsSummary(Enum):
    """What to write as the height of each target tree node."""

    KEEP = "keep"
    MEAN = "mean"
    MEDIAN = "median"


class TargetOption(Enum):
    """Where the target tree comes from."""

    MAX_CLADE_CREDIBILITY = "mcc"
    MAX_SUM_CLADE_CREDIBILITY = "msc"
    USER_TARGET_TREE = "user"

    @property
    def scoring_method(self) -> ScoringMethod:
        if self is TargetOption.MAX_SUM_CLADE_CREDIBILITY:
            return ScoringMethod.SUM
        return ScoringMethod.LOG


CONTOUR_BACKENDS = ("native", "r")


@dataclass
class AnnotatorConfig:
    """Configuration for the tree annotation pipeline."""

    burnin: int = 0
    heights: HeightsSummary = HeightsSummary.KEEP
    posterior_limit: float = 0.0
    target: TargetOption = TargetOption.MAX_CLADE_CREDIBILITY
    target_file: Optional[str] = None
    hpd_level: float = 0.95
    hpd_2d_level: float = 0.80
    contour_grid_size: int = 50
    contour_backend: str = "native"
    bivariate_traits: List[BivariateTrait] = field(
        default_factory=lambda: list(DEFAULT_BIVARIATE_TRAITS)
    )
    assumed_tree_count: int = 10000
    show_progress: bool = True
    logger_name: str = "cladeannotator.pipeline"

    def validate(self) -> None:
        """
        Check option ranges.

        Raises:
            ValueError: If an option is out of range or inconsistent
        """
        if self.burnin < 0:
            raise ValueError(f"burnin must be >= 0, got {self.burnin}")
        if not 0.0 <= self.posterior_limit <= 1.0:
            raise ValueError(
                f"posterior limit must lie in [0, 1], got {self.posterior_limit}"
            )
        for name, level in (("hpd_level", self.hpd_level), ("hpd_2d_level", self.hpd_2d_level)):
            if not 0.0 < level <= 1.0:
                raise ValueError(f"{name} must lie in (0, 1], got {level}")
        if self.contour_grid_size < 2:
            raise ValueError(f"contour grid size must be >= 2, got {self.contour_grid_size}")
        if self.contour_backend not in CONTOUR_BACKENDS:
            raise ValueError(
                f"unknown contour backend '{self.contour_backend}', "
                f"expected one of {', '.join(CONTOUR_BACKENDS)}"
            )
        if self.assumed_tree_count < 1:
            raise ValueError("assumed tree count must be >= 1")
        if self.target is TargetOption.USER_TARGET_TREE and not self.target_file:
            raise ValueError("a user target tree requires target_file")
