"""Summaries of posterior tree samples on a single annotated target tree."""

__version__ = "0.1.0"

__all__ = [
    "AnnotatorConfig",
    "HeightsSummary",
    "TargetOption",
    "TreeAnnotator",
    "PipelineStage",
    "Node",
    "Partition",
]


def __getattr__(name):
    if name in {"AnnotatorConfig", "HeightsSummary", "TargetOption"}:
        from .config import AnnotatorConfig, HeightsSummary, TargetOption

        return locals()[name]
    if name in {"TreeAnnotator", "PipelineStage"}:
        from .pipeline import TreeAnnotator, PipelineStage

        return locals()[name]
    if name == "Node":
        from .tree import Node

        return Node
    if name == "Partition":
        from .elements.partition import Partition

        return Partition
    raise AttributeError(name)
