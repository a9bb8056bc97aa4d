"""
Root state priors.
"""

from enum import Enum
from typing import Optional, Union

import numpy as np

from ..exceptions import InvalidPrior, InvalidRateMatrix

PRIOR_TOLERANCE = 1e-8


class RootPrior(str, Enum):
    """Named root prior policies."""
    UNIFORM = "uniform"
    STATIONARY = "stationary"
    FITZJOHN = "fitzjohn"


RootPriorLike = Union[RootPrior, str, np.ndarray, list, tuple]


def validate_prior(prior, n_states: int) -> np.ndarray:
    """
    Check a user-supplied root prior.

    Raises
    ------
    InvalidPrior
        If the vector has the wrong length, non-finite or negative
        entries, or does not sum to 1 within 1e-8
    """
    prior = np.array(prior, dtype=float)
    if prior.shape != (n_states,):
        raise InvalidPrior(f"Root prior must have shape ({n_states},), got {prior.shape}")
    if not np.all(np.isfinite(prior)) or np.any(prior < 0):
        raise InvalidPrior(f"Root prior entries must be finite and >= 0, got {prior.tolist()}")
    if abs(prior.sum() - 1.0) > PRIOR_TOLERANCE:
        raise InvalidPrior(f"Root prior must sum to 1, sums to {prior.sum()!r}")
    return prior


def resolve_root_prior(
    policy: RootPriorLike,
    n_states: int,
    rate_model=None,
    root_log_likelihoods: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Produce a root prior vector from a policy.

    Parameters
    ----------
    policy : str, RootPrior or array_like
        "uniform", "stationary", "fitzjohn", or an explicit prior vector
    n_states : int
        Number of states
    rate_model : RateMatrix, optional
        Required for the stationary policy
    root_log_likelihoods : ndarray, optional
        Log conditional likelihoods at the root, required for the fitzjohn
        policy (root weights proportional to the root likelihoods)

    Returns
    -------
    prior : ndarray, shape (n_states,)
        Probabilities summing to 1
    """
    if not isinstance(policy, str):
        return validate_prior(policy, n_states)

    try:
        policy = RootPrior(policy.lower())
    except ValueError:
        raise InvalidPrior(
            f"Unknown root prior '{policy}'. Valid policies: "
            f"{', '.join(p.value for p in RootPrior)}, or an explicit vector"
        ) from None

    if policy is RootPrior.UNIFORM:
        return np.full(n_states, 1.0 / n_states)

    if policy is RootPrior.STATIONARY:
        if rate_model is None:
            raise InvalidPrior("The stationary root prior needs a rate model")
        try:
            return rate_model.stationary_distribution()
        except InvalidRateMatrix as e:
            raise InvalidPrior(f"Cannot use the stationary root prior: {e}") from e

    if root_log_likelihoods is None:
        raise InvalidPrior("The fitzjohn root prior needs the root conditional likelihoods")
    finite = root_log_likelihoods[np.isfinite(root_log_likelihoods)]
    if finite.size == 0:
        # Nothing at the root is possible; weights are irrelevant
        return np.full(n_states, 1.0 / n_states)
    weights = np.exp(root_log_likelihoods - finite.max())
    return weights / weights.sum()
