"""Loglik command implementation."""

import sys
from pathlib import Path
from typing import Optional

from traitml import compute_likelihood
from traitml.exceptions import TraitMLError
from traitml.io.traits import TraitData
from traitml.io.trees import read_newick
from traitml.utils.logger_setup import set_log_level


def _split(text: Optional[str]) -> Optional[list[str]]:
    if text is None:
        return None
    return [part.strip() for part in text.split(",") if part.strip()]


def run_loglik(
    tree: Path,
    data: Path,
    alpha: Optional[float],
    beta: Optional[float],
    rates: Optional[str],
    model: str,
    root_prior: str,
    taxon_column: Optional[str],
    trait_column: Optional[str],
    states: Optional[str],
    output: Optional[Path],
    format: str,
    verbose: bool,
    quiet: bool,
):
    """Evaluate one rate model and report the log-likelihood."""
    set_log_level("DEBUG" if verbose else "ERROR" if quiet else "WARNING")

    rate_values = None
    if rates is not None:
        try:
            rate_values = [float(r) for r in _split(rates)]
        except ValueError:
            print(f"Error: Could not parse rates '{rates}'", file=sys.stderr)
            sys.exit(1)

    try:
        tree_obj = read_newick(tree)
    except TraitMLError as e:
        print(f"Error: Could not load tree from {tree}", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        traits = TraitData.from_csv(data, taxon_column, trait_column, _split(states))
    except (TraitMLError, OSError) as e:
        print(f"Error: Could not load trait data from {data}", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)

    if not quiet:
        print(f"Tree:   {tree} ({tree_obj.n_tips} tips)", file=sys.stderr)
        print(f"Data:   {data} ({traits.n_states} states: {', '.join(traits.states)})", file=sys.stderr)
        print(file=sys.stderr)

    try:
        result = compute_likelihood(
            tree_obj,
            traits,
            rates=rate_values,
            alpha=alpha,
            beta=beta,
            model=model,
            root_prior=root_prior,
        )
    except TraitMLError as e:
        print("Error: Likelihood evaluation failed", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)

    if format == "json":
        output_text = result.to_json()
    else:
        output_text = result.summary()

    if output:
        with open(output, 'w') as f:
            f.write(output_text)
        if not quiet:
            print(f"Results written to {output}", file=sys.stderr)
    else:
        print(output_text)
