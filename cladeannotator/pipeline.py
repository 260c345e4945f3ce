"""Tree annotation pipeline."""

import logging
import time
from enum import Enum
from typing import Optional

from cladeannotator.annotation import SummaryAnnotator
from cladeannotator.attributes import AttributeCollector, discover_attribute_names
from cladeannotator.clades.clade_system import CladeSystem
from cladeannotator.config import AnnotatorConfig, TargetOption
from cladeannotator.contour import make_contour_maker
from cladeannotator.exceptions import EmptyTreeStreamError, NoTreesToUseError
from cladeannotator.io import PathLike, TreeStream, read_target_tree, write_nexus
from cladeannotator.progress import ProgressBar
from cladeannotator.target_selection import TargetSelector
from cladeannotator.tree import Node


class PipelineStage(Enum):
    COUNTING = "counting"
    SELECTING = "selecting"
    COLLECTING = "collecting"
    ANNOTATING = "annotating"
    SERIALIZING = "serializing"
    DONE = "done"


class TreeAnnotator:
    """
    Summarizes a posterior tree sample onto a single target tree.

    The sample is streamed once to count clades, once more to pick the target
    tree (unless the user supplies one) and a last time to collect node
    attributes for the clades of the target. Each stage completes before the
    next one starts and nothing is written until every stage succeeded.
    """

    def __init__(
        self,
        config: Optional[AnnotatorConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the tree annotator.

        Args:
            config: Annotation settings; validated on construction.
            logger: Logger instance for pipeline events.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config: AnnotatorConfig = config or AnnotatorConfig()
        self.config.validate()
        self.logger = logger or logging.getLogger(self.config.logger_name)
        self.stage: Optional[PipelineStage] = None
        self.clade_system: Optional[CladeSystem] = None
        self.target: Optional[Node] = None
        self.best_score: Optional[float] = None
        self.trees_read = 0
        self.trees_used = 0

    def run(self, input_path: PathLike, output_path: Optional[PathLike] = None) -> Node:
        """
        Annotate the sample in ``input_path`` and write the result as NEXUS.

        Args:
            input_path: NEXUS or Newick file holding the tree sample.
            output_path: Destination file; stdout when omitted.

        Returns:
            The annotated target tree.
        """
        start_time = time.time()
        tree = self.annotate(input_path)

        self._enter(PipelineStage.SERIALIZING)
        write_nexus(tree, output_path)
        self._enter(PipelineStage.DONE)
        self.logger.info(
            f"Annotated tree written to {output_path or 'stdout'} "
            f"in {time.time() - start_time:.2f} seconds"
        )
        return tree

    def annotate(self, input_path: PathLike) -> Node:
        """Run every stage except serialization and return the annotated target."""
        stream = TreeStream(input_path)

        user_target: Optional[Node] = None
        if self.config.target is TargetOption.USER_TARGET_TREE:
            user_target = read_target_tree(self.config.target_file)
            stream.taxa_encoding = user_target.taxa_encoding
            self.logger.info(f"Reading user specified target tree, {self.config.target_file}")

        self._enter(PipelineStage.COUNTING)
        clade_system = self._count_clades(stream)

        if user_target is not None:
            target = user_target
        else:
            self._enter(PipelineStage.SELECTING)
            target = self._select_target(stream, clade_system)
        self.target = target

        self._enter(PipelineStage.COLLECTING)
        collector = self._collect_attributes(stream, target)
        scoped_clades = collector.finish()

        self._enter(PipelineStage.ANNOTATING)
        annotator = SummaryAnnotator(
            scoped_clades,
            collector,
            heights=self.config.heights,
            posterior_limit=self.config.posterior_limit,
            hpd_level=self.config.hpd_level,
            hpd_2d_level=self.config.hpd_2d_level,
            contour_maker=make_contour_maker(
                self.config.contour_backend, self.config.contour_grid_size
            ),
        )
        return annotator.annotate(target)

    # --- Private helpers ---

    def _enter(self, stage: PipelineStage) -> None:
        self.stage = stage
        self.logger.debug(f"Pipeline stage: {stage.name}")

    def _progress(self, total: int) -> ProgressBar:
        return ProgressBar(total, quiet=not self.config.show_progress)

    def _count_clades(self, stream: TreeStream) -> CladeSystem:
        burnin = self.config.burnin
        self.logger.info(
            f"Reading trees (bar assumes {self.config.assumed_tree_count:,} trees)..."
        )
        progress = self._progress(self.config.assumed_tree_count)

        clade_system: Optional[CladeSystem] = None
        trees_read = 0
        trees_used = 0
        for tree in stream:
            trees_read += 1
            if trees_read > burnin:
                if clade_system is None:
                    clade_system = CladeSystem(stream.taxa_encoding)
                clade_system.add(tree)
                trees_used += 1
            progress.update()
        progress.complete()

        self.trees_read = trees_read
        self.trees_used = trees_used
        if trees_read == 0:
            raise EmptyTreeStreamError(f"No trees found in {stream.path}")
        if clade_system is None:
            raise NoTreesToUseError(
                f"Burn-in of {burnin} trees discards all {trees_read} trees"
            )

        clade_system.calculate_clade_credibilities(trees_used)
        self.clade_system = clade_system
        self.logger.info(f"Total trees read: {trees_read}")
        if burnin > 0:
            self.logger.info(f"Ignoring first {burnin} trees.")
        self.logger.info(f"Total unique clades: {len(clade_system)}")
        return clade_system

    def _select_target(self, stream: TreeStream, clade_system: CladeSystem) -> Node:
        method = self.config.target.scoring_method
        self.logger.info(f"Finding maximum credibility tree ({method.value} scoring)...")
        selector = TargetSelector(clade_system, method, self.config.burnin)
        progress = self._progress(self.trees_read)
        for tree in stream:
            selector.offer(tree)
            progress.update()
        progress.complete()

        target = selector.finish()
        self.best_score = selector.best_score
        self.logger.info(f"Analyzed {selector.trees_used} trees, highest score: {selector.best_score}")
        return target

    def _collect_attributes(self, stream: TreeStream, target: Node) -> AttributeCollector:
        self.logger.info("Collecting node information...")
        progress = self._progress(self.trees_read)
        collector: Optional[AttributeCollector] = None
        trees_read = 0
        for tree in stream:
            trees_read += 1
            if trees_read > self.config.burnin:
                if collector is None:
                    collector = AttributeCollector(
                        target,
                        stream.taxa_encoding,
                        discover_attribute_names(tree),
                        self.config.bivariate_traits,
                    )
                collector.collect(tree)
            progress.update()
        progress.complete()

        if collector is None:
            raise NoTreesToUseError("No trees left to collect attributes from")
        return collector
