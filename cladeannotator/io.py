import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, IO, Iterator, List, Optional, Tuple, Union

from cladeannotator.exceptions import TaxonMismatchError, TargetTreeError, TreeImportError
from cladeannotator.parser.newick_parser import parse_newick
from cladeannotator.parser.nexus_parser import iter_newick_strings, iter_nexus_trees
from cladeannotator.tree import Node, quote_label

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def detect_format(path: PathLike) -> str:
    """Return ``"nexus"`` when the first non-blank line is ``#NEXUS``, else ``"newick"``."""
    with open(path) as f:
        for line in f:
            if line.strip():
                return "nexus" if line.strip().upper().startswith("#NEXUS") else "newick"
    return "newick"


def validate_taxon_set(tree: Node, encoding: Dict[str, int]) -> None:
    """
    Check that a tree references exactly the taxa of the encoding.

    Raises:
        TaxonMismatchError: On missing or duplicated taxa
    """
    full_mask = (1 << len(encoding)) - 1
    n_leaves = len(tree.get_leaves())
    if tree.split_indices.bitmask != full_mask or n_leaves != len(encoding):
        missing = sorted(set(encoding) - set(tree.get_current_order()))
        raise TaxonMismatchError(
            f"Tree has {n_leaves} tips but the taxon set holds {len(encoding)} taxa"
            + (f"; missing: {', '.join(missing)}" if missing else "")
        )


class TreeStream:
    """
    Re-iterable stream of the trees stored in a NEXUS or Newick file.

    Every iteration re-opens the file and yields one parsed tree at a time. The
    taxon encoding is taken from the first tree read unless one is supplied,
    and every tree is checked against it.
    """

    def __init__(self, path: PathLike, taxa_encoding: Optional[Dict[str, int]] = None):
        self.path = Path(path)
        self.taxa_encoding = taxa_encoding
        self.format = detect_format(self.path)

    def _iter_newick_with_translation(self) -> Iterator[Tuple[str, Optional[Dict[str, str]]]]:
        with open(self.path) as f:
            if self.format == "nexus":
                for _, newick, translate in iter_nexus_trees(f):
                    yield newick, translate
            else:
                for newick in iter_newick_strings(f):
                    yield newick, None

    def __iter__(self) -> Iterator[Node]:
        for newick, translate in self._iter_newick_with_translation():
            tree = parse_newick(newick, encoding=self.taxa_encoding, translate=translate)
            if isinstance(tree, list):
                raise TreeImportError("Expected exactly one tree per statement")
            if self.taxa_encoding is None:
                self.taxa_encoding = tree.taxa_encoding
                logger.debug(f"Established taxon set of {len(self.taxa_encoding)} taxa")
            validate_taxon_set(tree, self.taxa_encoding)
            yield tree


def read_target_tree(
    path: PathLike, taxa_encoding: Optional[Dict[str, int]] = None
) -> Node:
    """
    Read the first tree of a NEXUS or Newick file as the target tree.

    Raises:
        TargetTreeError: If the file cannot be read or holds no tree
    """
    try:
        stream = TreeStream(path, taxa_encoding)
        for tree in stream:
            return tree
    except OSError as e:
        raise TargetTreeError(f"Cannot read target tree file {path}: {e}") from e
    raise TargetTreeError(f"No tree found in target tree file {path}")


def _taxa_in_index_order(encoding: Dict[str, int]) -> List[str]:
    return [name for name, _ in sorted(encoding.items(), key=lambda item: item[1])]


def dump_nexus(tree: Node, f: IO[str], tree_name: str = "TREE1") -> None:
    """
    Write a tree as a NEXUS document with a taxa block and a translate table.

    Tips are written as their 1-based translate numbers and node attributes as
    ``[&key=value,...]`` comments.
    """
    taxa = _taxa_in_index_order(tree.taxa_encoding) or list(tree.get_current_order())
    translate = {name: str(i + 1) for i, name in enumerate(taxa)}

    f.write("#NEXUS\n\n")
    f.write("Begin taxa;\n")
    f.write(f"\tDimensions ntax={len(taxa)};\n")
    f.write("\tTaxlabels\n")
    for name in taxa:
        f.write(f"\t\t{quote_label(name)}\n")
    f.write("\t\t;\n")
    f.write("End;\n\n")

    f.write("Begin trees;\n")
    f.write("\tTranslate\n")
    entries = [f"\t\t{translate[name]} {quote_label(name)}" for name in taxa]
    f.write(",\n".join(entries) + "\n")
    f.write("\t\t;\n")
    f.write(f"tree {tree_name} = [&R] {tree.to_newick(translate=translate)}\n")
    f.write("End;\n")


def write_nexus(tree: Node, path: Optional[PathLike] = None) -> None:
    """
    Write the tree to ``path``, or to stdout when no path is given.

    The file is written next to ``path`` under a temporary name and moved into
    place only once complete, so a failed write leaves any existing file intact.
    """
    if path is None:
        dump_nexus(tree, sys.stdout)
        sys.stdout.flush()
        return
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, mode="w") as f:
            dump_nexus(tree, f)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise
