"""
Writing posterior support and attribute summaries onto the target tree.
"""

import logging
from typing import Any, List, Optional, Sequence

from cladeannotator.attributes import HEIGHT, AttributeCollector
from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.config import HeightsSummary
from cladeannotator.contour.base import ContourMaker
from cladeannotator.contour.kde import KernelDensityEstimator2D
from cladeannotator.exceptions import MissingCladeError
from cladeannotator.summary_statistics import (
    ARRAY,
    BOOLEAN,
    DISCRETE,
    classify_values,
    hpd_interval,
    mean,
    median,
    mode,
    value_range,
    varies,
)
from cladeannotator.tree import Node

logger = logging.getLogger(__name__)


def percent_label(level: float) -> str:
    """``0.95`` -> ``"95"``, ``0.975`` -> ``"97.5"``."""
    return f"{level * 100:g}"


class SummaryAnnotator:
    """
    Annotate every node of a target tree from its clade's collected samples.

    Internal nodes receive their ``posterior``; nodes whose posterior falls below
    ``posterior_limit`` keep only that (and their summarized height). Existing
    node attributes of the target are replaced by the summaries.
    """

    def __init__(
        self,
        clade_system: CladeSystem,
        collector: AttributeCollector,
        heights: HeightsSummary = HeightsSummary.KEEP,
        posterior_limit: float = 0.0,
        hpd_level: float = 0.95,
        hpd_2d_level: float = 0.80,
        contour_maker: Optional[ContourMaker] = None,
    ):
        self.clade_system = clade_system
        self.collector = collector
        self.heights = heights
        self.posterior_limit = posterior_limit
        self.hpd_level = hpd_level
        self.hpd_2d_level = hpd_2d_level
        self.contour_maker = contour_maker or KernelDensityEstimator2D()
        self.disjoint_regions = 0

    def annotate(self, tree: Node) -> Node:
        for node in tree.postorder():
            self.annotate_node(node)
        if self.heights is not HeightsSummary.KEEP:
            tree.heights_to_lengths()
        if self.disjoint_regions:
            logger.warning(
                f"{self.disjoint_regions} node(s) have a disjoint "
                f"{percent_label(self.hpd_2d_level)}% HPD region"
            )
        return tree

    def annotate_node(self, node: Node) -> None:
        partition = self.clade_system.partition_of(node)
        clade = self.clade_system.get_clade(partition)
        if clade is None:
            MissingCladeError.raise_missing_clade(partition, node.is_leaf())

        node.values.clear()
        filtered = False
        if node.children:
            node.values["posterior"] = float(clade.credibility)
            filtered = clade.credibility < self.posterior_limit

        for index, name in enumerate(self.collector.attribute_names):
            samples = self.collector.values_of(clade.attribute_values, index)
            if not samples:
                continue
            if name == HEIGHT and self.heights is not HeightsSummary.KEEP:
                node.height = (
                    mean(samples) if self.heights is HeightsSummary.MEAN else median(samples)
                )
            if filtered:
                continue
            self.annotate_attribute(node, self.collector.output_name(name), samples)

    def annotate_attribute(self, node: Node, name: str, samples: List[Any]) -> None:
        kind = classify_values(samples)
        if kind == BOOLEAN:
            node.values[name] = mean([1.0 if v else 0.0 for v in samples])
        elif kind == DISCRETE:
            label, probability, value_set, set_probabilities = mode(samples)
            node.values[name] = label
            node.values[f"{name}.prob"] = probability
            node.values[f"{name}.set"] = value_set
            node.values[f"{name}.set.prob"] = set_probabilities
        elif kind == ARRAY:
            self._annotate_array(node, name, samples)
        else:
            node.values[name] = mean(samples)
            if varies(samples):
                self._annotate_distribution(node, name, samples)

    def _annotate_distribution(
        self, node: Node, name: str, samples: Sequence[float], with_hpd: bool = True
    ) -> None:
        node.values[f"{name}_median"] = median(samples)
        if with_hpd:
            node.values[f"{name}_{percent_label(self.hpd_level)}%_HPD"] = hpd_interval(
                samples, self.hpd_level
            )
        node.values[f"{name}_range"] = value_range(samples)

    def _annotate_array(self, node: Node, name: str, samples: List[List[float]]) -> None:
        columns = [list(column) for column in zip(*samples)]
        bivariate = len(columns) == 2
        variation = [varies(column) for column in columns]

        for k, column in enumerate(columns):
            node.values[f"{name}{k + 1}"] = mean(column)
            if variation[k]:
                self._annotate_distribution(
                    node, f"{name}{k + 1}", column, with_hpd=not bivariate
                )

        if not bivariate:
            return
        hpd_suffix = f"_{percent_label(self.hpd_level)}%_HPD"
        if variation[0] and not variation[1]:
            node.values[f"{name}1{hpd_suffix}"] = hpd_interval(columns[0], self.hpd_level)
        elif variation[1] and not variation[0]:
            node.values[f"{name}2{hpd_suffix}"] = hpd_interval(columns[1], self.hpd_level)
        elif variation[0] and variation[1]:
            self._annotate_contours(node, name, columns[0], columns[1])

    def _annotate_contours(
        self, node: Node, name: str, x: Sequence[float], y: Sequence[float]
    ) -> None:
        label = f"_{percent_label(self.hpd_2d_level)}%HPD"
        paths = self.contour_maker.get_contour_paths(x, y, self.hpd_2d_level)
        node.values[f"{name}{label}_modality"] = len(paths)
        if len(paths) > 1:
            self.disjoint_regions += 1
            logger.warning(
                f"Clade {node.split_indices} has a disjoint "
                f"{percent_label(self.hpd_2d_level)}% HPD region. This may be an artifact; "
                "try decreasing the enclosed mass or increasing the number of samples."
            )
        for i, path in enumerate(paths):
            node.values[f"{name}1{label}_{i + 1}"] = [round(v, 2) for v in path.x]
            node.values[f"{name}2{label}_{i + 1}"] = [round(v, 2) for v in path.y]
