"""
Custom exceptions for the clade annotation pipeline.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, NoReturn

if TYPE_CHECKING:
    from cladeannotator.elements.partition import Partition


class CladeAnnotatorError(Exception):
    """Base exception for fatal clade annotation errors."""

    pass


class TreeImportError(CladeAnnotatorError):
    """Raised when a tree file cannot be parsed."""

    pass


class EmptyTreeStreamError(CladeAnnotatorError):
    """Raised when the input stream holds no trees at all."""

    pass


class NoTreesToUseError(CladeAnnotatorError):
    """Raised when the burn-in discards every tree of the sample."""

    pass


class TaxonMismatchError(CladeAnnotatorError):
    """Raised when a tree references a taxon set different from the established one."""

    pass


class TargetTreeError(CladeAnnotatorError):
    """Raised when no target tree can be obtained."""

    pass


class ContourBackendError(CladeAnnotatorError):
    """Raised when the external contouring engine is unavailable or fails."""

    pass


class MissingCladeError(CladeAnnotatorError):
    """Raised when a target tree clade has no entry in the clade registry."""

    @staticmethod
    def raise_missing_clade(clade: Partition, is_tip: bool) -> NoReturn:
        """
        Raises a MissingCladeError for a target tree node without a registry entry.

        Args:
            clade: The clade (Partition) that could not be found
            is_tip: True if the node is a tip of the target tree

        Raises:
            MissingCladeError: Always raised with detailed error information
        """
        kind = "tip" if is_tip else "internal node"
        raise MissingCladeError(
            f"No clade entry for target tree {kind} {clade}. "
            f"The target topology contains a clade that was never counted."
        )
