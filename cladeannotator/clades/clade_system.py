from typing import Dict, Iterator, Optional
import logging

from cladeannotator.clades.clade import Clade
from cladeannotator.elements.partition import Partition
from cladeannotator.exceptions import TaxonMismatchError
from cladeannotator.tree import Node

logger = logging.getLogger(__name__)


class CladeSystem:
    """
    Registry of the clades seen in a set of trees.

    Clades are keyed by their Partition, so two trees sharing a clade update the
    same entry regardless of node order. Leaves are mapped to bits through the
    taxon encoding shared by every tree of the sample.
    """

    def __init__(self, taxa_encoding: Dict[str, int]):
        self.taxa_encoding = taxa_encoding
        self.clades: Dict[Partition, Clade] = {}

    def __len__(self) -> int:
        return len(self.clades)

    def __contains__(self, partition: object) -> bool:
        return partition in self.clades

    def __iter__(self) -> Iterator[Clade]:
        return iter(self.clades.values())

    def _leaf_partition(self, node: Node) -> Partition:
        idx = self.taxa_encoding.get(node.name)
        if idx is None:
            raise TaxonMismatchError(
                f"Taxon '{node.name}' is not part of the established taxon set"
            )
        return Partition.from_bitmask(1 << idx, self.taxa_encoding)

    # ------------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------------
    def add(self, tree: Node, include_tips: bool = False) -> Partition:
        """
        Count every clade of the tree once.

        Args:
            tree: Root of the tree to add
            include_tips: Register singleton clades of the tips as well

        Returns:
            The Partition of the root (all taxa of the tree)
        """
        return self._add_clades(tree, include_tips)

    def _add_clades(self, node: Node, include_tips: bool) -> Partition:
        if not node.children:
            partition = self._leaf_partition(node)
            if include_tips:
                self._add_clade(partition)
            return partition

        mask = 0
        for child in node.children:
            mask |= self._add_clades(child, include_tips).bitmask
        partition = Partition.from_bitmask(mask, self.taxa_encoding)
        self._add_clade(partition)
        return partition

    def _add_clade(self, partition: Partition) -> None:
        clade = self.clades.get(partition)
        if clade is None:
            clade = Clade(partition)
            self.clades[partition] = clade
        clade.count += 1

    def remove_clades(self, tree: Node, include_tips: bool = True) -> Partition:
        """
        Undo one ``add`` of the tree by decrementing the count of its clades.

        Clades without an entry are ignored and entries are never deleted.
        """
        return self._remove_clades(tree, include_tips)

    def _remove_clades(self, node: Node, include_tips: bool) -> Partition:
        if not node.children:
            partition = self._leaf_partition(node)
            if include_tips:
                self._remove_clade(partition)
            return partition

        mask = 0
        for child in node.children:
            mask |= self._remove_clades(child, include_tips).bitmask
        partition = Partition.from_bitmask(mask, self.taxa_encoding)
        self._remove_clade(partition)
        return partition

    def _remove_clade(self, partition: Partition) -> None:
        clade = self.clades.get(partition)
        if clade is not None:
            clade.count -= 1

    def calculate_clade_credibilities(self, total_trees_used: int) -> None:
        """
        Set ``credibility = count / total_trees_used`` for every clade.

        A count above the number of trees means a clade was counted twice for
        the same tree and is a programming error.
        """
        for clade in self.clades.values():
            if clade.count > total_trees_used:
                raise AssertionError(
                    f"Clade {clade.partition} counted {clade.count} times "
                    f"in {total_trees_used} trees"
                )
            clade.credibility = clade.count / total_trees_used
        logger.debug(
            f"Computed credibilities of {len(self.clades)} clades over {total_trees_used} trees"
        )

    # ------------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------------
    def get_clade(self, partition: Partition) -> Optional[Clade]:
        return self.clades.get(partition)

    def get_clade_credibility(self, partition: Partition) -> float:
        clade = self.clades.get(partition)
        return clade.credibility if clade is not None else 0.0

    def partition_of(self, node: Node) -> Partition:
        """Partition of the taxa below ``node`` computed from its leaf names."""
        mask = 0
        for leaf in node.get_leaves():
            mask |= self._leaf_partition(leaf).bitmask
        return Partition.from_bitmask(mask, self.taxa_encoding)
