import math

import pytest

from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.clades.scoring import (
    ScoringMethod,
    TreeScorer,
    log_clade_credibility,
    sum_clade_credibility,
)
from cladeannotator.parser.newick_parser import parse_newick

ENCODING = {"A": 0, "B": 1, "C": 2, "D": 3}


def _registry(newick, n_trees):
    clade_system = CladeSystem(ENCODING)
    for tree in parse_newick(newick, encoding=ENCODING, force_list=True):
        clade_system.add(tree)
    clade_system.calculate_clade_credibilities(n_trees)
    return clade_system


def test_sum_and_log_scores():
    clade_system = _registry("((A,B),(C,D));((A,B),(C,D));((A,C),(B,D));(((A,B),C),D);", 4)
    tree = parse_newick("((A,B),(C,D));", encoding=ENCODING)

    # root 1.0 + (A,B) 0.75 + (C,D) 0.5
    assert sum_clade_credibility(tree, clade_system) == pytest.approx(2.25)
    assert log_clade_credibility(tree, clade_system) == pytest.approx(
        math.log(1.0) + math.log(0.75) + math.log(0.5)
    )


def test_unseen_clade_gives_minus_infinity_only_for_log():
    clade_system = _registry("((A,B),(C,D));((A,B),(C,D));", 2)
    tree = parse_newick("((A,C),(B,D));", encoding=ENCODING)

    assert log_clade_credibility(tree, clade_system) == -math.inf
    assert sum_clade_credibility(tree, clade_system) == pytest.approx(1.0)
    assert math.isfinite(TreeScorer(clade_system, ScoringMethod.SUM).score(tree))
    assert TreeScorer(clade_system, ScoringMethod.LOG).score(tree) == -math.inf


def test_sum_score_grows_with_support():
    other = "((A,C),(B,D));"
    candidate = "((A,B),(C,D));"
    tree = parse_newick(candidate, encoding=ENCODING)

    scores = []
    for copies in range(4):
        sample = other * 2 + candidate * copies
        scores.append(sum_clade_credibility(tree, _registry(sample, 2 + copies)))
    assert scores == sorted(scores)
    assert scores[-1] > scores[0]


def test_scoring_does_not_modify_registry():
    clade_system = _registry("((A,B),(C,D));((A,C),(B,D));", 2)
    before = {c.partition: (c.count, c.credibility) for c in clade_system}
    TreeScorer(clade_system).score(parse_newick("((A,B),(C,D));", encoding=ENCODING))
    assert {c.partition: (c.count, c.credibility) for c in clade_system} == before
