"""Check command implementation."""

import sys
from pathlib import Path
from typing import Optional

from traitml.exceptions import TraitMLError
from traitml.io.traits import TraitData
from traitml.io.trees import read_newick
from traitml.utils.logger_setup import set_log_level


def run_check(
    tree: Path,
    data: Optional[Path],
    taxon_column: Optional[str],
    trait_column: Optional[str],
    verbose: bool,
):
    """Validate inputs and print a short description of them."""
    set_log_level("DEBUG" if verbose else "WARNING")

    try:
        tree_obj = read_newick(tree)
    except TraitMLError as e:
        print(f"Error: Invalid tree in {tree}", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Tree: {tree}")
    print(f"  tips:         {tree_obj.n_tips}")
    print(f"  nodes:        {tree_obj.n_nodes}")
    print(f"  total length: {tree_obj.total_length:.6g}")

    if data is None:
        return

    try:
        traits = TraitData.from_csv(data, taxon_column, trait_column)
        evidence = traits.to_evidence(tree_obj.tip_names)
    except (TraitMLError, OSError) as e:
        print(f"Error: Trait data in {data} does not match the tree", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)

    n_missing = int((evidence.matrix.min(axis=1) > 0).sum())
    print(f"Data: {data}")
    print(f"  states:       {', '.join(traits.states)}")
    print(f"  missing tips: {n_missing}")
