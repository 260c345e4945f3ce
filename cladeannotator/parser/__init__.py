"""
Tree file parsers for phylogenetic tree samples.

This module provides the Newick parser (with BEAST style ``[&key=value]`` node
attributes) and the streaming NEXUS statement reader built on top of it.
"""

from .newick_parser import (
    parse_newick,
    parse_attribute_value,
    split_top_level,
    split_token,
    parse_metadata,
    flush_meta_buffer,
    flush_character_buffer,
    flush_length_buffer,
    flush_buffer,
    close_node,
    create_new_node,
    init_nodestack,
)
from .nexus_parser import (
    NexusStatement,
    iter_nexus_statements,
    iter_newick_strings,
    iter_nexus_trees,
    parse_translate,
    strip_tree_comments,
)

__all__ = [
    "parse_newick",
    "parse_attribute_value",
    "split_top_level",
    "split_token",
    "parse_metadata",
    "flush_meta_buffer",
    "flush_character_buffer",
    "flush_length_buffer",
    "flush_buffer",
    "close_node",
    "create_new_node",
    "init_nodestack",
    "NexusStatement",
    "iter_nexus_statements",
    "iter_newick_strings",
    "iter_nexus_trees",
    "parse_translate",
    "strip_tree_comments",
]
