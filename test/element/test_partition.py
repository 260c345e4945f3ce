import pytest

from cladeannotator.elements.partition import Partition

ENCODING = {"A": 0, "B": 1, "C": 2, "D": 3}


def test_structural_equality_and_hash():
    p1 = Partition((0, 2), ENCODING)
    p2 = Partition((2, 0, 2), ENCODING)
    assert p1 == p2
    assert hash(p1) == hash(p2)
    assert len({p1, p2}) == 1


def test_equality_ignores_encoding_object():
    p1 = Partition((1,), ENCODING)
    p2 = Partition.from_bitmask(0b10, dict(ENCODING))
    assert p1 == p2
    assert {p1: "x"}[p2] == "x"


def test_from_taxa_and_taxa():
    p = Partition.from_taxa(["C", "A"], ENCODING)
    assert p.indices == (0, 2)
    assert p.taxa == frozenset({"A", "C"})
    assert str(p) == "(A, C)"
    with pytest.raises(KeyError):
        Partition.from_taxa(["E"], ENCODING)


def test_set_operations():
    ab = Partition((0, 1), ENCODING)
    bc = Partition((1, 2), ENCODING)
    assert (ab | bc) == (0, 1, 2)
    assert (ab & bc) == (1,)
    assert Partition((1,), ENCODING).is_subset_of(ab)
    assert not bc.is_subset_of(ab)


def test_size_membership_and_iteration():
    p = Partition((3, 1), ENCODING)
    assert len(p) == 2
    assert list(p) == [1, 3]
    assert 3 in p
    assert 0 not in p
    assert bool(p)
    assert not Partition((), ENCODING)


def test_no_word_size_limit():
    p = Partition((0, 200))
    assert len(p) == 2
    assert 200 in p
    assert p.bitmask == (1 << 200) | 1


def test_negative_index_rejected():
    with pytest.raises(ValueError):
        Partition((-1,))
    with pytest.raises(ValueError):
        Partition.from_bitmask(-5)


def test_ordering_is_by_indices():
    assert sorted([Partition((2,)), Partition((0, 1)), Partition((0,))]) == [
        Partition((0,)),
        Partition((0, 1)),
        Partition((2,)),
    ]
