"""
Rate models for discrete character evolution.

Rate models are immutable value objects. A sampler builds a new one for
every proposal, so anything cached on the object (the eigendecomposition,
the stationary distribution) lives exactly as long as one evaluation.
"""

from functools import cached_property
from typing import Optional, Union

import numpy as np

from ..core.matrix import (
    check_branch_length,
    check_detailed_balance,
    create_reversible_Q,
    eigen_decompose_rev,
    matrix_exponential,
    stationary_distribution,
    transition_from_eigen,
    two_state_transition,
    validate_rate_matrix,
)
from ..exceptions import InvalidRateMatrix

MK_MODELS = ("ER", "SYM", "ARD")


class RateMatrix:
    """
    CTMC generator over a finite state space.

    Parameters
    ----------
    Q : array_like, shape (n, n)
        Rate matrix with non-negative off-diagonal entries and zero row sums
    validate : bool, default=True
        Check the generator invariants on construction

    Examples
    --------
    >>> rm = RateMatrix([[-1.0, 1.0], [2.0, -2.0]])
    >>> rm.transition_matrix(0.1).sum(axis=1)
    array([1., 1.])
    """

    def __init__(self, Q, validate: bool = True):
        Q = validate_rate_matrix(Q) if validate else np.array(Q, dtype=float)
        Q.setflags(write=False)
        self._Q = Q

    @property
    def Q(self) -> np.ndarray:
        """Read-only rate matrix."""
        return self._Q

    @property
    def n_states(self) -> int:
        return self._Q.shape[0]

    def stationary_distribution(self) -> np.ndarray:
        """Stationary distribution of the chain (left null vector of Q)."""
        return self._stationary.copy()

    @cached_property
    def _stationary(self) -> np.ndarray:
        return stationary_distribution(self._Q)

    def is_reversible(self) -> bool:
        """True if Q satisfies detailed balance with a strictly positive stationary distribution."""
        return self._eigen is not None

    @cached_property
    def _eigen(self) -> Optional[tuple[np.ndarray, np.ndarray, np.ndarray]]:
        try:
            pi = self._stationary
        except InvalidRateMatrix:
            return None
        if np.any(pi <= 0.0) or not check_detailed_balance(self._Q, pi, rtol=1e-8):
            return None
        return eigen_decompose_rev(self._Q, pi)

    def transition_matrix(self, t: float) -> np.ndarray:
        """
        Transition probabilities P(t) = exp(Q*t).

        Two-state matrices use the closed form, reversible matrices the
        eigendecomposition, and all others scipy's Padé expm.
        """
        t = check_branch_length(t)
        if self.n_states == 2 or self._eigen is None:
            return matrix_exponential(self._Q, t)
        return transition_from_eigen(*self._eigen, t)

    def __repr__(self) -> str:
        return f"RateMatrix(n_states={self.n_states})"


class TwoStateModel(RateMatrix):
    """
    Two-state gain/loss model.

    Parameters
    ----------
    alpha : float
        Gain rate (state 0 -> 1)
    beta : float
        Loss rate (state 1 -> 0)
    """

    def __init__(self, alpha: float, beta: float):
        alpha = float(alpha)
        beta = float(beta)
        if not (np.isfinite(alpha) and np.isfinite(beta)) or alpha < 0 or beta < 0:
            raise InvalidRateMatrix(
                f"Gain and loss rates must be finite and >= 0, got alpha={alpha}, beta={beta}"
            )
        self.alpha = alpha
        self.beta = beta
        super().__init__([[-alpha, alpha], [beta, -beta]], validate=False)

    def transition_matrix(self, t: float) -> np.ndarray:
        return two_state_transition(self.alpha, self.beta, t)

    def __repr__(self) -> str:
        return f"TwoStateModel(alpha={self.alpha}, beta={self.beta})"


def n_mk_rates(n_states: int, model: str) -> int:
    """Number of free rates of an Mk model."""
    model = model.upper()
    if model == "ER":
        return 1
    if model == "SYM":
        return n_states * (n_states - 1) // 2
    if model == "ARD":
        return n_states * (n_states - 1)
    raise InvalidRateMatrix(f"Unknown Mk model '{model}'. Valid models: {', '.join(MK_MODELS)}")


def mk_rate_matrix(rates, n_states: int, model: str = "ARD") -> RateMatrix:
    """
    Build an Mk rate matrix from a vector of rates.

    Parameters
    ----------
    rates : array_like
        Free rates. ER takes a single rate, SYM the upper triangle in
        row-major order, ARD all off-diagonal entries in row-major order.
    n_states : int
        Number of states
    model : str, default="ARD"
        One of "ER", "SYM", "ARD" (case-insensitive)

    Returns
    -------
    RateMatrix

    Examples
    --------
    >>> mk_rate_matrix([0.5], 3, model="ER").Q[0]
    array([-1. ,  0.5,  0.5])
    """
    if n_states < 2:
        raise InvalidRateMatrix(f"Mk models need at least 2 states, got {n_states}")
    model = model.upper()
    rates = np.atleast_1d(np.asarray(rates, dtype=float))
    expected = n_mk_rates(n_states, model)
    if rates.shape != (expected,):
        raise InvalidRateMatrix(
            f"{model} model with {n_states} states takes {expected} rates, got {rates.size}"
        )
    if not np.all(np.isfinite(rates)) or np.any(rates < 0):
        raise InvalidRateMatrix(f"Rates must be finite and >= 0, got {rates.tolist()}")

    Q = np.zeros((n_states, n_states))
    off_diag = ~np.eye(n_states, dtype=bool)
    if model == "ER":
        Q[off_diag] = rates[0]
    elif model == "SYM":
        upper = np.triu_indices(n_states, k=1)
        Q[upper] = rates
        Q = Q + Q.T
    else:
        Q[off_diag] = rates
    np.fill_diagonal(Q, -Q.sum(axis=1))

    if n_states == 2:
        return TwoStateModel(Q[0, 1], Q[1, 0])
    return RateMatrix(Q)


def reversible_rate_matrix(exchangeabilities, frequencies, normalize: bool = False) -> RateMatrix:
    """
    Build a time-reversible (GTR-style) rate matrix.

    Q[i, j] = r[i, j] * pi[j] for i != j, so the chain satisfies detailed
    balance and ``frequencies`` is its stationary distribution.

    Parameters
    ----------
    exchangeabilities : array_like
        Symmetric exchangeability rates, either the upper triangle in
        row-major order (length n(n-1)/2, as for SYM) or a full symmetric
        (n, n) matrix whose diagonal is ignored
    frequencies : array_like, shape (n,)
        Equilibrium state frequencies, positive and summing to 1
    normalize : bool, default=False
        Scale Q to one expected change per unit time

    Returns
    -------
    RateMatrix
        A :class:`TwoStateModel` when n == 2

    Raises
    ------
    InvalidRateMatrix
        If the frequencies are not a positive probability vector, or the
        exchangeabilities have the wrong shape, are negative or asymmetric

    Examples
    --------
    >>> rm = reversible_rate_matrix([1.0, 2.0, 1.0], [0.5, 0.25, 0.25])
    >>> rm.stationary_distribution().round(6)
    array([0.5 , 0.25, 0.25])
    """
    pi = np.atleast_1d(np.asarray(frequencies, dtype=float))
    n_states = pi.shape[0]
    if pi.ndim != 1 or n_states < 2:
        raise InvalidRateMatrix(f"Frequencies must be a vector of at least 2 states, got shape {pi.shape}")
    if not np.all(np.isfinite(pi)) or np.any(pi <= 0) or abs(pi.sum() - 1.0) > 1e-8:
        raise InvalidRateMatrix(f"Frequencies must be positive and sum to 1, got {pi.tolist()}")

    r = np.asarray(exchangeabilities, dtype=float)
    if r.shape == (n_states, n_states):
        off_diag = ~np.eye(n_states, dtype=bool)
        if not np.allclose(r[off_diag], r.T[off_diag]):
            raise InvalidRateMatrix("Exchangeability matrix must be symmetric")
        r = np.where(off_diag, r, 0.0)
    elif r.shape == (n_mk_rates(n_states, "SYM"),):
        full = np.zeros((n_states, n_states))
        full[np.triu_indices(n_states, k=1)] = r
        r = full + full.T
    else:
        raise InvalidRateMatrix(
            f"Expected {n_mk_rates(n_states, 'SYM')} exchangeabilities or a "
            f"({n_states}, {n_states}) matrix, got shape {r.shape}"
        )
    if not np.all(np.isfinite(r)) or np.any(r < 0):
        raise InvalidRateMatrix("Exchangeabilities must be finite and >= 0")

    Q = create_reversible_Q(r, pi, normalize=normalize)
    if n_states == 2:
        return TwoStateModel(Q[0, 1], Q[1, 0])
    return RateMatrix(Q)


RateModelLike = Union[RateMatrix, np.ndarray, tuple, list]


def as_rate_model(obj: RateModelLike) -> RateMatrix:
    """
    Coerce a per-evaluation rate input into a rate model.

    Accepts a :class:`RateMatrix`, a square matrix, or an ``(alpha, beta)``
    pair for the two-state gain/loss model.
    """
    if isinstance(obj, RateMatrix):
        return obj
    arr = np.asarray(obj, dtype=float)
    if arr.shape == (2,):
        return TwoStateModel(arr[0], arr[1])
    if arr.ndim == 2 and arr.shape == (2, 2):
        Q = validate_rate_matrix(arr)
        return TwoStateModel(max(Q[0, 1], 0.0), max(Q[1, 0], 0.0))
    return RateMatrix(arr)
