from cladeannotator.clades.clade import Clade
from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.clades.scoring import (
    ScoringMethod,
    TreeScorer,
    log_clade_credibility,
    sum_clade_credibility,
)

__all__ = [
    "Clade",
    "CladeSystem",
    "ScoringMethod",
    "TreeScorer",
    "log_clade_credibility",
    "sum_clade_credibility",
]
