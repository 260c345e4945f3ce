import pytest

from cladeannotator.attributes import (
    AttributeCollector,
    BivariateTrait,
    discover_attribute_names,
)
from cladeannotator.elements.partition import Partition
from cladeannotator.parser.newick_parser import parse_newick

SAMPLE = (
    '((A:1.0,B:1.0)[&rate=0.5,state="X"]:1.0,C:2.0);'
    '((A:2.0,B:2.0)[&rate=1.5,state="X"]:1.0,C:3.0);'
    '((A:1.0,C:1.0)[&rate=1.0,state="Y"]:1.0,B:2.0);'
)


def _collect(sample=SAMPLE, **kwargs):
    trees = parse_newick(sample, force_list=True)
    encoding = trees[0].taxa_encoding
    target = parse_newick(sample.split(";")[0] + ";", encoding=encoding)
    collector = AttributeCollector(
        target, encoding, discover_attribute_names(trees[0]), **kwargs
    )
    for tree in trees:
        collector.collect(tree)
    return collector, collector.finish()


def test_attribute_names_start_with_height_and_length():
    tree = parse_newick('((A[&x=1],B)[&rate=0.5,state="X"],C[&x=2]);')
    assert discover_attribute_names(tree) == ["height", "length", "rate", "state", "x"]


def test_counts_match_true_occurrences():
    collector, clades = _collect()
    ab = clades.get_clade(Partition((0, 1)))
    assert ab.count == 2
    assert ab.credibility == pytest.approx(2 / 3)
    assert clades.get_clade(Partition((0, 1, 2))).count == 3
    assert clades.get_clade(Partition((0,))).count == 3
    assert collector.trees_used == 3
    # Clades outside the target topology are never registered
    assert Partition((0, 2)) not in clades


def test_one_value_row_per_occurrence():
    collector, clades = _collect()
    ab = clades.get_clade(Partition((0, 1)))
    assert collector.attribute_names == ["height", "length", "rate", "state"]
    assert ab.attribute_values == [[1.0, 1.0, 0.5, "X"], [2.0, 1.0, 1.5, "X"]]

    tip_a = clades.get_clade(Partition((0,)))
    assert len(tip_a.attribute_values) == 3
    assert collector.values_of(tip_a.attribute_values, 1) == [1.0, 2.0, 1.0]


def test_root_length_is_absent():
    collector, clades = _collect()
    root = clades.get_clade(Partition((0, 1, 2)))
    assert collector.values_of(root.attribute_values, 1) == []
    assert collector.values_of(root.attribute_values, 0) == [2.0, 3.0, 2.0]


def test_bivariate_traits_are_merged():
    sample = (
        "((A,B)[&longLat1=1.0,longLat2=2.0],C);"
        "((A,B)[&longLat1=3.0,longLat2=4.0],C);"
        "((A,B)[&longLat1=5.0],C);"
    )
    collector, clades = _collect(sample)
    first = collector.attribute_names.index("longLat1")
    second = collector.attribute_names.index("longLat2")
    rows = clades.get_clade(Partition((0, 1))).attribute_values

    assert [row[first] for row in rows] == [[1.0, 2.0], [3.0, 4.0], None]
    assert all(row[second] is None for row in rows)
    assert collector.output_name("longLat1") == "location"
    assert collector.output_name("longLat2") == "longLat2"


def test_custom_bivariate_trait():
    sample = "((A,B)[&lat=1.0,lon=2.0],C);"
    collector, clades = _collect(
        sample, bivariate_traits=[BivariateTrait("lat", "lon", "coords")]
    )
    index = collector.attribute_names.index("lat")
    row = clades.get_clade(Partition((0, 1))).attribute_values[0]
    assert row[index] == [1.0, 2.0]
    assert collector.output_name("lat") == "coords"
