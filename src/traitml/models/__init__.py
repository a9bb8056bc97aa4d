"""
Rate models for discrete character evolution.

This module provides:

- **RateMatrix**: validated CTMC generator over any number of states
- **TwoStateModel**: gain/loss model with closed-form transition probabilities
- **Mk models**: equal-rates (ER), symmetric (SYM) and all-rates-different (ARD)
- **Reversible models**: GTR-style exchangeabilities times equilibrium frequencies
"""

from traitml.models.rates import (
    MK_MODELS,
    RateMatrix,
    TwoStateModel,
    as_rate_model,
    mk_rate_matrix,
    n_mk_rates,
    reversible_rate_matrix,
)

__all__ = [
    "RateMatrix",
    "TwoStateModel",
    "mk_rate_matrix",
    "n_mk_rates",
    "reversible_rate_matrix",
    "as_rate_model",
    "MK_MODELS",
]
