#!/usr/bin/env python3
"""
Summarize a posterior sample of trees onto a single target tree.

Reads a NEXUS or Newick tree sample, selects the maximum clade credibility tree
(or uses a user supplied target tree) and annotates it with clade posteriors,
node height and attribute summaries. The result is written as NEXUS.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from cladeannotator.config import AnnotatorConfig, HeightsSummary, TargetOption
from cladeannotator.exceptions import CladeAnnotatorError
from cladeannotator.logging_config import configure_logging
from cladeannotator.pipeline import TreeAnnotator

logger = logging.getLogger(__name__)


class NonNegativeIntegerAction(argparse.Action):
    """Argparse action that validates the value is >= 0."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: str | None = None,
    ) -> None:
        if not isinstance(values, int):
            parser.error(f"{option_string} must be an integer")
            return
        if values < 0:
            parser.error(f"Minimum value for {option_string} is 0")
        setattr(namespace, self.dest, values)


class ProbabilityAction(argparse.Action):
    """Argparse action that validates the value lies in [0, 1]."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: str | None = None,
    ) -> None:
        if not isinstance(values, float):
            parser.error(f"{option_string} must be a number")
            return
        if not 0.0 <= values <= 1.0:
            parser.error(f"{option_string} must lie between 0 and 1")
        setattr(namespace, self.dest, values)


def setup_argument_parser() -> argparse.ArgumentParser:
    """
    Configure and return the argument parser.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="cladeannotator",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("input", help="Tree sample (NEXUS or Newick)", type=Path)
    parser.add_argument(
        "output",
        help="Output NEXUS file (default: stdout)",
        nargs="?",
        type=Path,
    )

    # Summary options
    summary_group = parser.add_argument_group("summary options")
    summary_group.add_argument(
        "-burnin",
        "--burnin",
        help="Number of trees to discard as burn-in (default: 0)",
        default=0,
        type=int,
        action=NonNegativeIntegerAction,
    )
    summary_group.add_argument(
        "--heights",
        help="Node heights of the target tree (default: keep)",
        choices=[option.value for option in HeightsSummary],
        default=HeightsSummary.KEEP.value,
    )
    summary_group.add_argument(
        "--limit",
        help="Minimum posterior probability for a node to be annotated (default: 0)",
        default=0.0,
        type=float,
        action=ProbabilityAction,
    )
    summary_group.add_argument(
        "--hpd",
        help="Mass of the univariate HPD intervals (default: 0.95)",
        default=0.95,
        type=float,
        action=ProbabilityAction,
    )
    summary_group.add_argument(
        "--hpd2d",
        help="Mass of the bivariate HPD regions (default: 0.80)",
        default=0.80,
        type=float,
        action=ProbabilityAction,
    )
    summary_group.add_argument(
        "--contour",
        help="Engine for bivariate HPD contours (default: native)",
        choices=["native", "r"],
        default="native",
    )

    # Target options
    target_group = parser.add_argument_group("target tree options")
    target_group.add_argument(
        "--target",
        help="Annotate this tree instead of the maximum credibility tree",
        type=Path,
    )
    target_group.add_argument(
        "--scoring",
        help="Score of the maximum credibility tree: log = product of clade "
        "credibilities, sum = sum of clade credibilities (default: log)",
        choices=["log", "sum"],
        default="log",
    )

    # Output options
    output_group = parser.add_argument_group("output options")
    output_group.add_argument(
        "--quiet",
        help="Do not print progress bars",
        action="store_true",
    )
    output_group.add_argument(
        "-v",
        "--verbose",
        help="Print debug messages",
        action="store_true",
    )
    output_group.add_argument(
        "--log-file",
        help="Also write log messages to this file",
        type=Path,
    )

    return parser


def config_from_args(args: argparse.Namespace) -> AnnotatorConfig:
    if args.target is not None:
        target = TargetOption.USER_TARGET_TREE
    elif args.scoring == "sum":
        target = TargetOption.MAX_SUM_CLADE_CREDIBILITY
    else:
        target = TargetOption.MAX_CLADE_CREDIBILITY

    return AnnotatorConfig(
        burnin=args.burnin,
        heights=HeightsSummary(args.heights),
        posterior_limit=args.limit,
        target=target,
        target_file=str(args.target) if args.target is not None else None,
        hpd_level=args.hpd,
        hpd_2d_level=args.hpd2d,
        contour_backend=args.contour,
        show_progress=not args.quiet,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=args.verbose,
        log_file=str(args.log_file) if args.log_file else None,
    )

    try:
        config = config_from_args(args)
        annotator = TreeAnnotator(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        annotator.run(args.input, args.output)
    except CladeAnnotatorError as e:
        logger.error(f"Error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Error: cannot read or write file: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
