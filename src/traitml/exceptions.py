"""
Exception types raised by traitml.

Every error derives from :class:`TraitMLError`. Validation errors are also
``ValueError`` subclasses so code that catches ``ValueError`` keeps working.
"""


class TraitMLError(Exception):
    """Base class for all traitml errors."""


class MalformedTree(TraitMLError, ValueError):
    """Tree topology is invalid (cycles, several or zero roots, unreachable nodes)."""


class InvalidRateMatrix(TraitMLError, ValueError):
    """Rate matrix violates the generator invariants."""


class InvalidBranchLength(TraitMLError, ValueError):
    """Branch length is negative or not finite."""


class MalformedBranchLength(MalformedTree, InvalidBranchLength):
    """Invalid branch length found while building a tree."""


class InvalidPrior(TraitMLError, ValueError):
    """Root prior has negative entries, wrong length or does not sum to one."""


class InvalidTipEvidence(TraitMLError, ValueError):
    """Tip evidence matrix is malformed or does not match the tree."""


class NonFiniteLikelihood(TraitMLError, ArithmeticError):
    """A conditional likelihood became NaN or +inf during pruning."""
