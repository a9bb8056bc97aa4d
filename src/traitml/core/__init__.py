"""
Core algorithms for discrete character likelihoods.

This module provides low-level computational routines:

- **Likelihood calculation**: Felsenstein's pruning algorithm in log space
- **Matrix operations**: closed-form, eigendecomposition and Padé matrix exponentials
- **Tree model**: index-based rooted tree with a cached pruning order
- **Root priors**: uniform, stationary, FitzJohn and user-supplied priors

These are expert-level classes typically not needed by end users.
The high-level API (:mod:`traitml.api`) provides easier access.
"""

from traitml.core.evidence import TipEvidence
from traitml.core.likelihood import LikelihoodCalculator, PruningResult
from traitml.core.matrix import (
    eigen_decompose_rev,
    matrix_exponential,
    stationary_distribution,
    two_state_transition,
)
from traitml.core.prior import RootPrior, resolve_root_prior
from traitml.core.tree import Tree

__all__ = [
    "LikelihoodCalculator",
    "PruningResult",
    "TipEvidence",
    "Tree",
    "RootPrior",
    "resolve_root_prior",
    "matrix_exponential",
    "two_state_transition",
    "eigen_decompose_rev",
    "stationary_distribution",
]
