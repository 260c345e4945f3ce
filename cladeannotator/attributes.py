import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.elements.partition import Partition
from cladeannotator.tree import Node

logger = logging.getLogger(__name__)

HEIGHT = "height"
LENGTH = "length"


@dataclass(frozen=True)
class BivariateTrait:
    """Two scalar node attributes summarized together as one 2D trait."""

    first: str
    second: str
    name: str


DEFAULT_BIVARIATE_TRAITS = (
    BivariateTrait("longLat1", "longLat2", "location"),
    BivariateTrait("location1", "location2", "location"),
)


def discover_attribute_names(tree: Node) -> List[str]:
    """
    Return ``height`` and ``length`` followed by every node attribute name of
    the tree, in traversal order and without duplicates.
    """
    names: List[str] = [HEIGHT, LENGTH]
    seen = set(names)
    for node in tree.traverse():
        for name in node.values:
            if name not in seen:
                seen.add(name)
                names.append(name)
    return names


def _clean(value: Any) -> Any:
    if isinstance(value, str) and len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


class AttributeCollector:
    """
    Gather per-clade attribute samples for the clades of a target tree.

    A registry scoped to the target topology is seeded with every clade of the
    target (tips included). Each collected tree then appends one list of
    attribute values to every matching clade and bumps its count.
    """

    def __init__(
        self,
        target: Node,
        taxa_encoding: Dict[str, int],
        attribute_names: Sequence[str],
        bivariate_traits: Iterable[BivariateTrait] = DEFAULT_BIVARIATE_TRAITS,
    ):
        self.target = target
        self.attribute_names: List[str] = list(attribute_names)
        self.clade_system = CladeSystem(taxa_encoding)
        self.clade_system.add(target, include_tips=True)
        self.trees_used = 0

        self._first_of: Dict[str, BivariateTrait] = {}
        self._second_of: Dict[str, BivariateTrait] = {}
        for trait in bivariate_traits:
            self._first_of[trait.first] = trait
            self._second_of[trait.second] = trait

    def output_name(self, attribute_name: str) -> str:
        """Name under which an attribute is written (merged name for bivariate traits)."""
        trait = self._first_of.get(attribute_name)
        return trait.name if trait is not None else attribute_name

    def attribute_value(self, node: Node, name: str) -> Any:
        if name == HEIGHT:
            return node.height
        if name == LENGTH:
            return node.length
        if name in self._second_of:
            return None
        trait = self._first_of.get(name)
        if trait is not None:
            first = node.values.get(trait.first)
            second = node.values.get(trait.second)
            if first is None or second is None:
                return None
            return [first, second]
        return _clean(node.values.get(name))

    def collect(self, tree: Node) -> None:
        """Record the attribute values of every target clade present in ``tree``."""
        self.trees_used += 1
        self._collect_attributes(tree)

    def _collect_attributes(self, node: Node) -> Partition:
        if not node.children:
            partition = self.clade_system.partition_of(node)
        else:
            mask = 0
            for child in node.children:
                mask |= self._collect_attributes(child).bitmask
            partition = Partition.from_bitmask(mask, self.clade_system.taxa_encoding)

        clade = self.clade_system.get_clade(partition)
        if clade is not None:
            clade.count += 1
            clade.add_attribute_values(
                [self.attribute_value(node, name) for name in self.attribute_names]
            )
        return partition

    def finish(self) -> CladeSystem:
        """
        Remove the seeding counts and compute credibilities.

        Returns:
            The topology scoped registry holding counts and attribute samples
        """
        self.clade_system.remove_clades(self.target, include_tips=True)
        self.clade_system.calculate_clade_credibilities(self.trees_used)
        logger.debug(
            f"Collected {len(self.attribute_names)} attributes over {self.trees_used} trees"
        )
        return self.clade_system

    def values_of(self, values: Optional[List[List[Any]]], index: int) -> List[Any]:
        """Non-missing samples of the attribute at ``index``."""
        if not values:
            return []
        return [row[index] for row in values if row[index] is not None]
