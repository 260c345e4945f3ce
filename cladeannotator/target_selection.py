"""
Selection of the target tree from the posterior sample.
"""

import logging
import math
from enum import Enum
from typing import Iterable, Optional

from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.clades.scoring import ScoringMethod, TreeScorer
from cladeannotator.exceptions import (
    EmptyTreeStreamError,
    NoTreesToUseError,
    TargetTreeError,
)
from cladeannotator.tree import Node

logger = logging.getLogger(__name__)


class SelectorState(Enum):
    STREAMING = "streaming"
    DONE = "done"


class TargetSelector:
    """
    Pick the highest scoring tree of a tree stream.

    Trees before the burn-in are skipped. A tree only replaces the current best
    when its score is strictly greater, so the first of equally scored trees
    wins.
    """

    def __init__(
        self,
        clade_system: CladeSystem,
        method: ScoringMethod = ScoringMethod.LOG,
        burnin: int = 0,
    ):
        self.scorer = TreeScorer(clade_system, method)
        self.burnin = burnin
        self.state = SelectorState.STREAMING
        self.best_tree: Optional[Node] = None
        self.best_score = -math.inf
        self.trees_read = 0
        self.trees_used = 0

    def offer(self, tree: Node) -> None:
        """Score one tree of the stream."""
        if self.state is SelectorState.DONE:
            raise RuntimeError("Target selection already finished")
        self.trees_read += 1
        if self.trees_read <= self.burnin:
            return
        self.trees_used += 1
        score = self.scorer.score(tree)
        if score > self.best_score:
            self.best_tree = tree
            self.best_score = score

    def finish(self) -> Node:
        """
        Close the stream and return the best tree.

        Raises:
            EmptyTreeStreamError: If no tree was offered
            NoTreesToUseError: If the burn-in discarded every tree
            TargetTreeError: If no tree reached a finite score
        """
        self.state = SelectorState.DONE
        if self.trees_read == 0:
            raise EmptyTreeStreamError("No trees were read")
        if self.trees_used == 0:
            raise NoTreesToUseError(
                f"Burn-in of {self.burnin} trees discards all {self.trees_read} trees"
            )
        if self.best_tree is None:
            raise TargetTreeError("No tree has a finite clade credibility score")
        logger.info(f"Best tree score: {self.best_score}")
        return self.best_tree

    def select(self, trees: Iterable[Node]) -> Node:
        for tree in trees:
            self.offer(tree)
        return self.finish()
