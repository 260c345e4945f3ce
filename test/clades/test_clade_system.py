import pytest

from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.elements.partition import Partition
from cladeannotator.exceptions import TaxonMismatchError
from cladeannotator.parser.newick_parser import parse_newick

ENCODING = {"A": 0, "B": 1, "C": 2, "D": 3}


def _trees(newick):
    return parse_newick(newick, encoding=ENCODING, force_list=True)


def _counts(clade_system):
    return {tuple(c.partition.indices): c.count for c in clade_system}


def test_three_trees_sharing_a_clade():
    clade_system = CladeSystem(ENCODING)
    for tree in _trees("((A,B),(C,D));((A,B),C,D);(((A,B),C),D);"):
        clade_system.add(tree)
    clade_system.calculate_clade_credibilities(3)

    ab = Partition.from_taxa(["A", "B"], ENCODING)
    assert clade_system.get_clade(ab).count == 3
    assert clade_system.get_clade_credibility(ab) == pytest.approx(1.0)


def test_counts_and_credibilities():
    clade_system = CladeSystem(ENCODING)
    for tree in _trees("((A,B),(C,D));((A,C),(B,D));((A,B),(C,D));(((A,B),C),D);"):
        clade_system.add(tree)
    clade_system.calculate_clade_credibilities(4)

    assert _counts(clade_system) == {
        (0, 1, 2, 3): 4,
        (0, 1): 3,
        (2, 3): 2,
        (0, 2): 1,
        (1, 3): 1,
        (0, 1, 2): 1,
    }
    assert clade_system.get_clade_credibility(Partition((2, 3))) == pytest.approx(0.5)
    assert clade_system.get_clade_credibility(Partition((0, 3))) == 0.0
    assert Partition((0, 1)) in clade_system
    assert len(clade_system) == 6


def test_add_returns_root_partition_and_tips_are_optional():
    tree = _trees("((A,B),(C,D));")[0]
    clade_system = CladeSystem(ENCODING)
    root = clade_system.add(tree)
    assert root == (0, 1, 2, 3)
    assert Partition((0,)) not in clade_system

    clade_system.add(tree, include_tips=True)
    assert clade_system.get_clade(Partition((0,))).count == 1
    assert clade_system.get_clade(Partition((0, 1))).count == 2


def test_remove_clades_undoes_add_and_keeps_entries():
    tree = _trees("((A,B),(C,D));")[0]
    clade_system = CladeSystem(ENCODING)
    clade_system.add(tree, include_tips=True)
    clade_system.remove_clades(tree, include_tips=True)
    assert all(clade.count == 0 for clade in clade_system)
    assert len(clade_system) == 7

    # Clades missing from the registry are ignored
    other = _trees("((A,C),(B,D));")[0]
    clade_system.remove_clades(other)
    assert Partition((0, 2)) not in clade_system


def test_count_above_total_is_a_programming_error():
    clade_system = CladeSystem(ENCODING)
    tree = _trees("((A,B),(C,D));")[0]
    clade_system.add(tree)
    clade_system.add(tree)
    with pytest.raises(AssertionError):
        clade_system.calculate_clade_credibilities(1)


def test_unary_node_counts_its_clade_twice():
    clade_system = CladeSystem(ENCODING)
    clade_system.add(parse_newick("(((A,B)),C);", encoding=ENCODING))
    assert clade_system.get_clade(Partition((0, 1))).count == 2
    with pytest.raises(AssertionError, match="counted 2 times in 1 trees"):
        clade_system.calculate_clade_credibilities(1)


def test_unknown_taxon_is_fatal():
    tree = parse_newick("((A,B),E);")
    with pytest.raises(TaxonMismatchError):
        CladeSystem(ENCODING).add(tree)


def test_reprocessing_sample_is_idempotent():
    sample = "((A,B),(C,D));((A,C),(B,D));(((A,B),C),D);"

    def run():
        clade_system = CladeSystem(ENCODING)
        for tree in _trees(sample):
            clade_system.add(tree)
        clade_system.calculate_clade_credibilities(3)
        return {c.partition: (c.count, c.credibility) for c in clade_system}

    assert run() == run()


def test_partition_of_uses_leaf_names():
    tree = _trees("((A,B),(C,D));")[0]
    assert CladeSystem(ENCODING).partition_of(tree.children[1]) == (2, 3)
