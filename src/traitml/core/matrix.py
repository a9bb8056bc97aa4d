"""
Matrix operations for continuous-time Markov character models.

This module provides the transition probability computations used by the
pruning engine: a closed form for two-state models, an eigendecomposition
for reversible rate matrices and a Padé scaling-and-squaring fallback for
everything else.
"""

import numpy as np
from scipy.linalg import expm, null_space

from ..exceptions import InvalidBranchLength, InvalidRateMatrix

# Absolute tolerance on generator invariants, scaled by max(1, max|Q|)
RATE_TOLERANCE = 1e-8


def validate_rate_matrix(Q) -> np.ndarray:
    """
    Check that Q is a valid CTMC generator and return it as a float array.

    Parameters
    ----------
    Q : array_like, shape (n, n)
        Candidate rate matrix

    Returns
    -------
    Q : ndarray, shape (n, n)
        Validated copy of the rate matrix

    Raises
    ------
    InvalidRateMatrix
        If Q is not square, has fewer than 2 states, contains non-finite
        values, has negative off-diagonal rates or rows not summing to zero
    """
    Q = np.array(Q, dtype=float)
    if Q.ndim != 2 or Q.shape[0] != Q.shape[1]:
        raise InvalidRateMatrix(f"Rate matrix must be square, got shape {Q.shape}")
    n = Q.shape[0]
    if n < 2:
        raise InvalidRateMatrix(f"Rate matrix needs at least 2 states, got {n}")
    if not np.all(np.isfinite(Q)):
        raise InvalidRateMatrix("Rate matrix contains non-finite values")

    atol = RATE_TOLERANCE * max(1.0, float(np.max(np.abs(Q))))

    off_diag = Q[~np.eye(n, dtype=bool)]
    if np.any(off_diag < -atol):
        raise InvalidRateMatrix(
            f"Off-diagonal rates must be non-negative, found {off_diag.min():.3g}"
        )

    row_sums = Q.sum(axis=1)
    bad_rows = np.flatnonzero(np.abs(row_sums) > atol)
    if bad_rows.size:
        raise InvalidRateMatrix(
            f"Rows {bad_rows.tolist()} of the rate matrix do not sum to zero "
            f"(sums: {row_sums[bad_rows].tolist()})"
        )
    return Q


def check_branch_length(t: float) -> float:
    """Return t as a float, raising InvalidBranchLength if negative or non-finite."""
    t = float(t)
    if not np.isfinite(t) or t < 0:
        raise InvalidBranchLength(f"Branch length must be finite and >= 0, got {t}")
    return t


def two_state_transition(alpha: float, beta: float, t: float) -> np.ndarray:
    """
    Closed-form transition probabilities for a two-state model.

    Parameters
    ----------
    alpha : float
        Gain rate (0 -> 1)
    beta : float
        Loss rate (1 -> 0)
    t : float
        Branch length (time)

    Returns
    -------
    P : ndarray, shape (2, 2)
        Transition probability matrix

    Notes
    -----
    With s = alpha + beta and e = exp(-s*t)::

        P00 = beta/s + alpha/s * e      P01 = alpha/s - alpha/s * e
        P10 = beta/s - beta/s * e       P11 = alpha/s + beta/s * e

    Rows converge to (beta/s, alpha/s) as t grows. When s == 0 nothing
    ever changes and P(t) is the identity.
    """
    t = check_branch_length(t)
    total = alpha + beta
    if total == 0.0:
        return np.eye(2)

    pi0 = beta / total
    pi1 = alpha / total
    # 1 - exp(-s*t) via expm1 keeps short branches accurate
    decay = -np.expm1(-total * t)
    return np.array([
        [1.0 - pi1 * decay, pi1 * decay],
        [pi0 * decay, 1.0 - pi0 * decay],
    ])


def matrix_exponential(Q: np.ndarray, t: float) -> np.ndarray:
    """
    Compute transition probability matrix P(t) = exp(Q*t).

    Two-state matrices use the closed form; larger matrices use scipy's
    matrix exponential (Padé approximation with scaling and squaring).

    Parameters
    ----------
    Q : ndarray, shape (n, n)
        Rate matrix (assumed already validated)
    t : float
        Branch length (time)

    Returns
    -------
    P : ndarray, shape (n, n)
        Transition probability matrix where P[i,j] is the probability
        of state i transitioning to state j over time t

    Notes
    -----
    The transition probability matrix satisfies:
    - Row sums equal 1 (stochastic matrix)
    - All entries are non-negative
    - P(0) = I (identity matrix)
    - P(t1 + t2) = P(t1) @ P(t2) (semigroup property)

    Examples
    --------
    >>> # Mk model with equal rates
    >>> alpha = 0.25
    >>> Q = np.array([[-2*alpha, alpha, alpha],
    ...               [alpha, -2*alpha, alpha],
    ...               [alpha, alpha, -2*alpha]])
    >>> P = matrix_exponential(Q, 0.1)
    >>> np.isclose(np.sum(P[0]), 1.0)
    True
    """
    t = check_branch_length(t)
    if Q.shape == (2, 2):
        return two_state_transition(Q[0, 1], Q[1, 0], t)
    if t == 0.0:
        return np.eye(Q.shape[0])
    # Round-off can leave entries like -1e-17
    return np.maximum(expm(Q * t), 0.0)


def eigen_decompose_rev(Q: np.ndarray, pi: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Eigendecompose reversible rate matrix Q = U @ diag(eigenvalues) @ V.

    Uses symmetrization trick for reversible (time-reversible) rate matrices:
    Transform Q to symmetric matrix Q' = √D @ Q @ √D^(-1), where D = diag(pi),
    then eigendecompose Q' and transform back.

    Parameters
    ----------
    Q : ndarray, shape (n, n)
        Reversible rate matrix satisfying detailed balance: π_i * Q[i,j] = π_j * Q[j,i]
    pi : ndarray, shape (n,)
        Stationary distribution, strictly positive

    Returns
    -------
    eigenvalues : ndarray, shape (n,)
        Eigenvalues of Q, sorted in ascending order
    U : ndarray, shape (n, n)
        Left eigenvector matrix
    V : ndarray, shape (n, n)
        Right eigenvector matrix

    Notes
    -----
    The decomposition satisfies:
    - Q = U @ diag(eigenvalues) @ V
    - P(t) = U @ diag(exp(eigenvalues * t)) @ V
    - Largest eigenvalue is 0 (stationary distribution)
    """
    sqrt_pi = np.sqrt(pi)

    # Symmetric when Q satisfies detailed balance; average away round-off
    Q_sym = Q * sqrt_pi[:, np.newaxis] / sqrt_pi[np.newaxis, :]
    Q_sym = (Q_sym + Q_sym.T) / 2.0

    eigenvalues, eigenvectors = np.linalg.eigh(Q_sym)

    U = eigenvectors / sqrt_pi[:, np.newaxis]
    V = eigenvectors.T * sqrt_pi[np.newaxis, :]

    return eigenvalues, U, V


def transition_from_eigen(
    eigenvalues: np.ndarray, U: np.ndarray, V: np.ndarray, t: float
) -> np.ndarray:
    """
    Compute P(t) = U @ diag(exp(eigenvalues * t)) @ V.

    Parameters
    ----------
    eigenvalues, U, V : ndarray
        Output of :func:`eigen_decompose_rev`
    t : float
        Branch length (time)

    Returns
    -------
    P : ndarray, shape (n, n)
        Transition probability matrix, with round-off negatives clipped
    """
    t = check_branch_length(t)
    if t == 0.0:
        return np.eye(len(eigenvalues))
    P = (U * np.exp(eigenvalues * t)[np.newaxis, :]) @ V
    return np.maximum(P, 0.0)


def stationary_distribution(Q: np.ndarray) -> np.ndarray:
    """
    Stationary distribution of a rate matrix (normalized left null vector).

    Parameters
    ----------
    Q : ndarray, shape (n, n)
        Validated rate matrix

    Returns
    -------
    pi : ndarray, shape (n,)
        Stationary distribution, summing to 1

    Raises
    ------
    InvalidRateMatrix
        If the stationary distribution is not unique (reducible chain)
    """
    if Q.shape == (2, 2):
        alpha, beta = Q[0, 1], Q[1, 0]
        if alpha + beta == 0.0:
            raise InvalidRateMatrix(
                "Stationary distribution is not unique when all rates are zero"
            )
        return np.array([beta, alpha]) / (alpha + beta)

    kernel = null_space(Q.T)
    if kernel.shape[1] != 1:
        raise InvalidRateMatrix(
            f"Stationary distribution is not unique (null space dimension "
            f"{kernel.shape[1]})"
        )
    pi = kernel[:, 0]
    pi = pi / pi.sum()
    # Components are all the same sign up to round-off
    pi = np.maximum(pi, 0.0)
    return pi / pi.sum()


def create_reversible_Q(
    rates: np.ndarray, pi: np.ndarray, normalize: bool = True
) -> np.ndarray:
    """
    Create a reversible rate matrix from exchangeability rates and stationary distribution.

    Parameters
    ----------
    rates : ndarray, shape (n, n)
        Symmetric exchangeability matrix (r[i,j] = r[j,i])
    pi : ndarray, shape (n,)
        Stationary distribution (equilibrium frequencies)
    normalize : bool, default=True
        If True, scale Q so that expected rate is 1 change per time unit.
        All-zero exchangeabilities are left unscaled.

    Returns
    -------
    Q : ndarray, shape (n, n)
        Reversible rate matrix satisfying detailed balance

    Notes
    -----
    The rate matrix is constructed as Q[i,j] = r[i,j] * pi[j] for i ≠ j,
    and Q[i,i] = -sum(Q[i,j] for j ≠ i).
    """
    pi = np.asarray(pi, dtype=float)
    Q = np.asarray(rates, dtype=float) * pi[np.newaxis, :]

    np.fill_diagonal(Q, 0.0)
    np.fill_diagonal(Q, -Q.sum(axis=1))

    expected_rate = -np.dot(pi, Q.diagonal())
    # A chain with no changes has nothing to rescale
    if normalize and expected_rate > 0:
        Q /= expected_rate

    return Q


def check_detailed_balance(Q: np.ndarray, pi: np.ndarray, rtol: float = 1e-10) -> bool:
    """
    Test if rate matrix Q satisfies detailed balance with stationary distribution pi.

    Detailed balance: π_i * Q[i,j] = π_j * Q[j,i] for all i, j
    """
    flux = pi[:, np.newaxis] * Q
    return bool(np.allclose(flux, flux.T, rtol=rtol, atol=rtol * np.max(np.abs(flux))))
