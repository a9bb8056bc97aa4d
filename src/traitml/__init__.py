"""
traitml: likelihood of discrete character evolution on phylogenies.

Computes the likelihood of a continuous-time Markov model of character
change on a fixed rooted tree with Felsenstein's pruning algorithm, for
use inside samplers and optimizers that evaluate it many times.

Quick Start
-----------
Evaluate a two-state gain/loss model:

>>> from traitml import compute_likelihood
>>> result = compute_likelihood("tree.nwk", "traits.csv", alpha=1.0, beta=2.0)
>>> print(result.summary())

Repeated evaluation from a sampler:

>>> from traitml import LikelihoodCalculator, TipEvidence, read_newick
>>> tree = read_newick("tree.nwk")
>>> calc = LikelihoodCalculator(tree, TipEvidence.from_states(states, n_states=2))
>>> lnL = calc.compute_log_likelihood((alpha, beta), root_prior="stationary")
"""

__version__ = "0.1.0"

# High-level API (simple interface)
from .api import compute_likelihood, LikelihoodResult

# Core likelihood calculator (expert use)
from .core.evidence import TipEvidence
from .core.likelihood import LikelihoodCalculator, PruningResult
from .core.prior import RootPrior
from .core.tree import Tree

# Rate models
from .models.rates import RateMatrix, TwoStateModel, mk_rate_matrix, reversible_rate_matrix

# I/O
from .io.traits import TraitData
from .io.trees import read_newick

from .exceptions import (
    TraitMLError,
    MalformedTree,
    InvalidRateMatrix,
    InvalidBranchLength,
    MalformedBranchLength,
    InvalidPrior,
    InvalidTipEvidence,
    NonFiniteLikelihood,
)

# start the logger at log_level WARNING
from .utils.logger_setup import set_log_level
set_log_level("WARNING")

__all__ = [
    # Simple API - Start here!
    "compute_likelihood",
    "LikelihoodResult",

    # Core (expert)
    "LikelihoodCalculator",
    "PruningResult",
    "TipEvidence",
    "Tree",
    "RootPrior",

    # Rate models
    "RateMatrix",
    "TwoStateModel",
    "mk_rate_matrix",
    "reversible_rate_matrix",

    # I/O
    "TraitData",
    "read_newick",

    # Errors
    "TraitMLError",
    "MalformedTree",
    "InvalidRateMatrix",
    "InvalidBranchLength",
    "MalformedBranchLength",
    "InvalidPrior",
    "InvalidTipEvidence",
    "NonFiniteLikelihood",

    # Logging
    "set_log_level",

    # Version
    "__version__",
]
