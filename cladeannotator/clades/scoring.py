import math
from enum import Enum
from typing import Tuple

from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.elements.partition import Partition
from cladeannotator.tree import Node


class ScoringMethod(Enum):
    """How a candidate target tree is scored against the clade registry."""

    LOG = "log"
    SUM = "sum"


def _score(node: Node, clade_system: CladeSystem, use_log: bool) -> Tuple[Partition, float]:
    if not node.children:
        return clade_system.partition_of(node), 0.0

    mask = 0
    score = 0.0
    for child in node.children:
        child_partition, child_score = _score(child, clade_system, use_log)
        mask |= child_partition.bitmask
        score += child_score

    partition = Partition.from_bitmask(mask, clade_system.taxa_encoding)
    credibility = clade_system.get_clade_credibility(partition)
    if use_log:
        score += math.log(credibility) if credibility > 0.0 else -math.inf
    else:
        score += credibility
    return partition, score


def sum_clade_credibility(tree: Node, clade_system: CladeSystem) -> float:
    """Sum of the credibilities of all internal clades; unseen clades add 0."""
    return _score(tree, clade_system, use_log=False)[1]


def log_clade_credibility(tree: Node, clade_system: CladeSystem) -> float:
    """
    Sum of the log credibilities of all internal clades.

    This is the log of the product of clade credibilities, so a tree holding a
    clade never seen in the sample scores ``-inf``.
    """
    return _score(tree, clade_system, use_log=True)[1]


class TreeScorer:
    """Score trees against a counted clade registry."""

    def __init__(self, clade_system: CladeSystem, method: ScoringMethod = ScoringMethod.LOG):
        self.clade_system = clade_system
        self.method = method

    def score(self, tree: Node) -> float:
        if self.method is ScoringMethod.SUM:
            return sum_clade_credibility(tree, self.clade_system)
        return log_clade_credibility(tree, self.clade_system)
