"""
Input modules for trees and tip observations.

This module provides readers for:

- **Phylogenetic trees**: Newick format, renumbered tips-first
- **Trait tables**: CSV/TSV files or DataFrames of discrete observations

Missing observations become uninformative (all-ones) tip evidence.
"""

from traitml.io.traits import TraitData
from traitml.io.trees import TreeNode, parse_newick, read_newick

__all__ = ["TraitData", "TreeNode", "parse_newick", "read_newick"]
