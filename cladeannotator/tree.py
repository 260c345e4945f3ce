from __future__ import annotations
import math
from typing import Optional, Any, Dict, List, Tuple, Self

from cladeannotator.elements.partition import Partition
from cladeannotator.exceptions import TaxonMismatchError

def format_attribute_value(value: Any) -> str:
    """
    Format a node attribute value the way BEAST writes it inside ``[&...]``.

    Booleans become ``true``/``false``, strings are double quoted and sequences
    are written as ``{a,b,...}`` (recursively).
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "{" + ",".join(format_attribute_value(v) for v in value) + "}"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(float(value))
    if isinstance(value, int):
        return str(value)
    return '"' + str(value).replace('"', "") + '"'

_QUOTE_CHARS = set(" \t\n()[]{}:;,'\"=")

def quote_label(name: str) -> str:
    """Single-quote a taxon label if it holds Newick punctuation."""
    if name and not any(ch in _QUOTE_CHARS for ch in name):
        return name
    return "'" + name.replace("'", "''") + "'"

class Node:
    """
    Rooted tree node carrying a height, a branch length and named attributes.

    Heights are measured back in time from the most distant tip, the way MCMC
    samplers report node ages. ``values`` holds arbitrary node attributes parsed
    from ``[&key=value]`` comments or written by the annotator.
    """

    __slots__ = (
        "children",
        "parent",
        "name",
        "length",
        "height",
        "values",
        "split_indices",
        "taxa_encoding",
        "_traverse_cache",
        "_leaves_cache",
    )

    children: List[Self]
    parent: Optional[Self]
    name: str
    length: Optional[float]
    height: float
    values: Dict[str, Any]
    split_indices: Partition
    taxa_encoding: Dict[str, int]
    _traverse_cache: Optional[List[Self]]
    _leaves_cache: Optional[List[Self]]

    def __init__(
        self,
        children: Optional[List[Self]] = None,
        name: str = "",
        length: Optional[float] = None,
        height: float = 0.0,
        values: Optional[Dict[str, Any]] = None,
        split_indices: Optional[Partition] = None,
        taxa_encoding: Optional[Dict[str, int]] = None,
    ):
        # Avoid mutable default arguments; create fresh containers
        self.children = list(children) if children is not None else []
        for child in self.children:
            child.parent = self
        self.parent = None
        self.name = name
        self.length = length
        self.height = height
        self.values = dict(values) if values is not None else {}
        self.taxa_encoding = taxa_encoding if taxa_encoding is not None else {}
        self.split_indices = (
            split_indices
            if split_indices is not None
            else Partition.from_bitmask(0, self.taxa_encoding)
        )
        self._traverse_cache = None
        self._leaves_cache = None

    def __repr__(self) -> str:
        return f"Node('{self.name}')"

    def __str__(self) -> str:
        return str(tuple(sorted(self.get_current_order())))

    # ------------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------------
    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def traverse(self) -> List[Self]:
        """
        Return a list of all nodes in the subtree rooted at this node (Pre-order).
        Uses an iterative stack approach to avoid recursion depth issues.
        """
        if self._traverse_cache is not None:
            return self._traverse_cache

        nodes: List[Self] = []
        stack: List[Self] = [self]
        while stack:
            current = stack.pop()
            nodes.append(current)
            # Add children in reverse to maintain left-to-right visit order
            for child in reversed(current.children):
                stack.append(child)

        self._traverse_cache = nodes
        return nodes

    def postorder(self) -> List[Self]:
        """Return all nodes of the subtree with every child before its parent."""
        nodes: List[Self] = []
        stack: List[Tuple[Self, bool]] = [(self, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded or not current.children:
                nodes.append(current)
                continue
            stack.append((current, True))
            for child in reversed(current.children):
                stack.append((child, False))
        return nodes

    def get_leaves(self) -> List[Self]:
        """
        Return all leaf nodes in the subtree rooted at this node.
        Uses caching for performance - cache is invalidated when tree structure changes.
        """
        if self._leaves_cache is not None:
            return self._leaves_cache
        leaves = [node for node in self.traverse() if not node.children]
        self._leaves_cache = leaves
        return leaves

    def get_current_order(self) -> Tuple[str, ...]:
        """
        Return the current order of taxa in the tree as a tuple.
        """
        return tuple(str(leaf.name) for leaf in self.get_leaves())

    # ------------------------------------------------------------------------
    # split_indices initialization
    # ------------------------------------------------------------------------
    def initialize_split_indices(self, encoding: Dict[str, int]) -> None:
        """
        Assign each node the Partition of the taxa below it.

        Leaves look their name up in ``encoding``; internal nodes take the union
        of their children.

        Args:
            encoding: Dictionary mapping taxon names to their integer indices

        Raises:
            TaxonMismatchError: If a leaf name is not part of the encoding
        """
        for node in self.postorder():
            node.taxa_encoding = encoding
            if not node.children:
                idx = encoding.get(node.name)
                if idx is None:
                    idx = encoding.get(node.name.strip())
                if idx is None:
                    raise TaxonMismatchError(
                        f"Taxon '{node.name}' is not part of the established taxon set"
                    )
                node.split_indices = Partition.from_bitmask(1 << idx, encoding)
            else:
                combined_mask = 0
                for ch in node.children:
                    combined_mask |= ch.split_indices.bitmask
                node.split_indices = Partition.from_bitmask(combined_mask, encoding)

    # ------------------------------------------------------------------------
    # Heights & branch lengths
    # ------------------------------------------------------------------------
    def compute_heights(self) -> None:
        """
        Derive node heights from branch lengths.

        The root sits at the largest root-to-tip distance and every node's height
        is that value minus its own distance from the root. Missing lengths
        count as zero.
        """
        distances: Dict[int, float] = {id(self): 0.0}
        for node in self.traverse():
            if node is self:
                continue
            parent_distance = distances[id(node.parent)]
            distances[id(node)] = parent_distance + (node.length or 0.0)

        root_height = max(distances[id(leaf)] for leaf in self.get_leaves())
        for node in self.traverse():
            node.height = root_height - distances[id(node)]

    def heights_to_lengths(self) -> None:
        """Recompute every non-root branch length as parent height minus node height."""
        for node in self.traverse():
            if node is not self and node.parent is not None:
                node.length = node.parent.height - node.height

    # ------------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------------
    def to_newick(
        self,
        lengths: bool = True,
        annotations: bool = True,
        translate: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Write the subtree as a Newick string.

        Args:
            lengths: Include branch lengths
            annotations: Include node attributes as ``[&key=value,...]`` comments
            translate: Optional mapping from taxon label to the token written
                in its place (NEXUS translate table)
        """
        return self._to_newick(lengths, annotations, translate) + ";"

    def _to_newick(
        self,
        lengths: bool,
        annotations: bool,
        translate: Optional[Dict[str, str]],
    ) -> str:
        meta = ""
        if annotations and self.values:
            meta = (
                "[&"
                + ",".join(
                    f"{k}={format_attribute_value(v)}" for k, v in self.values.items()
                )
                + "]"
            )

        if self.children:
            label = (
                "("
                + ",".join(
                    ch._to_newick(lengths, annotations, translate)
                    for ch in self.children
                )
                + ")"
            )
            if self.name:
                label += quote_label(self.name)
        elif translate is not None and self.name in translate:
            label = translate[self.name]
        else:
            label = quote_label(self.name)

        if lengths and self.parent is not None:
            length = self.length if self.length is not None else 0.0
            return f"{label}{meta}:{float(length)!r}"
        return f"{label}{meta}"
