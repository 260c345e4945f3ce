from dataclasses import dataclass, field
from typing import Any, List, Optional

from cladeannotator.elements.partition import Partition


@dataclass
class Clade:
    """
    Registry entry for one clade of the tree sample.

    Attributes:
        partition: The set of taxa below the clade
        count: Number of trees containing the clade
        credibility: Fraction of the used trees containing the clade
        attribute_values: One list of attribute values per tree occurrence,
            indexed like the collector's attribute names
    """

    partition: Partition
    count: int = 0
    credibility: float = 0.0
    attribute_values: Optional[List[List[Any]]] = field(default=None, repr=False)

    def add_attribute_values(self, values: List[Any]) -> None:
        if self.attribute_values is None:
            self.attribute_values = []
        self.attribute_values.append(values)
