import logging
import math

import pytest

from cladeannotator.config import AnnotatorConfig, HeightsSummary, TargetOption
from cladeannotator.exceptions import (
    EmptyTreeStreamError,
    NoTreesToUseError,
    TaxonMismatchError,
)
from cladeannotator.io import TreeStream
from cladeannotator.pipeline import PipelineStage, TreeAnnotator

TAXA = ["A", "B", "C", "D"]
TREES = [
    "((1:1.0,2:1.0)[&rate=1.0]:1.0,(3:0.5,4:0.5)[&rate=2.0]:1.5)",
    "((1:2.0,2:2.0)[&rate=3.0]:1.0,(3:1.0,4:1.0)[&rate=2.0]:2.0)",
    "((1:1.0,3:1.0)[&rate=1.0]:1.0,(2:0.5,4:0.5)[&rate=2.0]:1.5)",
]


def _config(**kwargs):
    kwargs.setdefault("show_progress", False)
    return AnnotatorConfig(**kwargs)


def test_maximum_clade_credibility_tree_is_annotated(write_nexus_sample, tmp_path):
    sample = write_nexus_sample(TREES, TAXA)
    output = tmp_path / "annotated.nex"
    annotator = TreeAnnotator(_config())
    tree = annotator.run(sample, output)

    assert annotator.stage is PipelineStage.DONE
    assert annotator.trees_read == 3
    assert annotator.trees_used == 3
    assert annotator.best_score == pytest.approx(2 * math.log(2 / 3))

    ab = tree.children[0]
    assert ab.split_indices == (0, 1)
    assert ab.values["posterior"] == pytest.approx(2 / 3)
    assert ab.values["rate"] == pytest.approx(2.0)
    assert ab.values["rate_range"] == [1.0, 3.0]
    # heights kept from the first of the two equally scored trees
    assert ab.height == 1.0

    reread = list(TreeStream(output))
    assert len(reread) == 1
    assert reread[0].get_current_order() == ("A", "B", "C", "D")
    assert reread[0].children[0].values["posterior"] == pytest.approx(2 / 3)


def test_mean_heights(write_nexus_sample):
    tree = TreeAnnotator(_config(heights=HeightsSummary.MEAN)).annotate(
        write_nexus_sample(TREES, TAXA)
    )
    assert tree.children[0].height == pytest.approx(1.5)
    assert tree.height == pytest.approx(7 / 3)
    assert tree.children[0].length == pytest.approx(7 / 3 - 1.5)


def test_burnin_excludes_trees_from_counts(write_nexus_sample):
    annotator = TreeAnnotator(_config(burnin=1))
    tree = annotator.annotate(write_nexus_sample(TREES, TAXA))
    assert annotator.trees_used == 2
    # One post burn-in tree holds (A,B) and one holds (A,C); the first wins
    assert tree.children[0].values["posterior"] == pytest.approx(0.5)
    assert tree.children[0].values["rate"] == pytest.approx(3.0)


def test_burnin_equal_to_tree_count_writes_nothing(write_nexus_sample, tmp_path):
    output = tmp_path / "annotated.nex"
    with pytest.raises(NoTreesToUseError):
        TreeAnnotator(_config(burnin=3)).run(write_nexus_sample(TREES, TAXA), output)
    assert not output.exists()


def test_empty_input(write_trees, tmp_path):
    output = tmp_path / "annotated.nex"
    with pytest.raises(EmptyTreeStreamError):
        TreeAnnotator(_config()).run(write_trees("#NEXUS\nBegin trees;\nEnd;\n"), output)
    assert not output.exists()


def test_sum_scoring_selects_same_topology(write_nexus_sample):
    annotator = TreeAnnotator(_config(target=TargetOption.MAX_SUM_CLADE_CREDIBILITY))
    tree = annotator.annotate(write_nexus_sample(TREES, TAXA))
    assert tree.children[0].split_indices == (0, 1)
    assert annotator.best_score == pytest.approx(1.0 + 2 * (2 / 3))


def test_user_target_tree(write_nexus_sample, write_trees):
    target = write_trees("((A:1.0,D:1.0):1.0,(B:1.0,C:1.0):1.0);", "target.tre")
    annotator = TreeAnnotator(
        _config(target=TargetOption.USER_TARGET_TREE, target_file=str(target))
    )
    tree = annotator.annotate(write_nexus_sample(TREES, TAXA))

    assert annotator.best_score is None
    ad, bc = tree.children
    # A clade never sampled is reported with zero support
    assert ad.values == {"posterior": 0.0}
    assert tree.values["posterior"] == pytest.approx(1.0)
    assert tree.children[0].children[0].values["height"] == pytest.approx(0.0)


def test_user_target_with_foreign_taxon(write_nexus_sample, write_trees):
    target = write_trees("((A,E),(B,C));", "target.tre")
    annotator = TreeAnnotator(
        _config(target=TargetOption.USER_TARGET_TREE, target_file=str(target))
    )
    with pytest.raises(TaxonMismatchError):
        annotator.annotate(write_nexus_sample(TREES, TAXA))


def test_progress_bars_go_to_stderr(write_nexus_sample, capsys):
    TreeAnnotator(_config(show_progress=True)).annotate(write_nexus_sample(TREES, TAXA))
    err = capsys.readouterr().err
    assert err.count("0              25             50             75            100") == 3
    assert "*" * 60 in err


def test_invalid_config_is_rejected():
    with pytest.raises(ValueError):
        TreeAnnotator(AnnotatorConfig(hpd_level=0.0))
    with pytest.raises(ValueError):
        TreeAnnotator(AnnotatorConfig(target=TargetOption.USER_TARGET_TREE))


def test_reading_message_reports_assumed_tree_count(write_nexus_sample, caplog):
    caplog.set_level(logging.INFO, logger="cladeannotator.pipeline")
    TreeAnnotator(_config(assumed_tree_count=2500)).annotate(
        write_nexus_sample(TREES, TAXA)
    )
    assert "Reading trees (bar assumes 2,500 trees)..." in caplog.messages


def test_failed_write_keeps_previous_output(write_nexus_sample, tmp_path, monkeypatch):
    output = tmp_path / "annotated.nex"
    output.write_text("previous result\n")

    def failing_dump(tree, f, tree_name="TREE1"):
        f.write("#NEXUS\n")
        raise OSError("disk full")

    monkeypatch.setattr("cladeannotator.io.dump_nexus", failing_dump)
    with pytest.raises(OSError):
        TreeAnnotator(_config()).run(write_nexus_sample(TREES, TAXA), output)

    assert output.read_text() == "previous result\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["annotated.nex", "trees.nex"]
