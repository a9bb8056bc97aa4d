"""
Tip evidence: per-tip conditional likelihoods of every state.
"""

import numbers
from typing import Optional, Sequence

import numpy as np

from ..exceptions import InvalidTipEvidence


class TipEvidence:
    """
    Conditional likelihood of the data at each tip given each state.

    Observed states are one-hot rows, missing data is an all-ones row and
    partial uncertainty has ones at every compatible state.

    Parameters
    ----------
    matrix : array_like, shape (n_tips, n_states)
        Non-negative values; every row needs at least one positive entry
    names : sequence of str, optional
        Tip names matching the rows

    Raises
    ------
    InvalidTipEvidence
        If the matrix is malformed or a row rules out every state
    """

    def __init__(self, matrix, names: Optional[Sequence[str]] = None):
        matrix = np.array(matrix, dtype=float)
        if matrix.ndim != 2:
            raise InvalidTipEvidence(f"Tip evidence must be 2-d, got shape {matrix.shape}")
        n_tips, n_states = matrix.shape
        if n_states < 2:
            raise InvalidTipEvidence(f"Tip evidence needs at least 2 states, got {n_states}")
        if not np.all(np.isfinite(matrix)) or np.any(matrix < 0):
            raise InvalidTipEvidence("Tip evidence must be finite and non-negative")
        impossible = np.flatnonzero(~np.any(matrix > 0, axis=1))
        if impossible.size:
            raise InvalidTipEvidence(
                f"Tip rows {impossible.tolist()} give zero likelihood to every state"
            )
        if names is not None:
            names = list(names)
            if len(names) != n_tips:
                raise InvalidTipEvidence(f"Expected {n_tips} tip names, got {len(names)}")
            if len(set(names)) != n_tips:
                raise InvalidTipEvidence("Tip names must be unique")

        matrix.setflags(write=False)
        self.matrix = matrix
        self.names = names

    @classmethod
    def from_states(
        cls,
        states: Sequence,
        n_states: int,
        names: Optional[Sequence[str]] = None,
    ) -> "TipEvidence":
        """
        One-hot evidence from observed state indices.

        ``None``, NaN and negative values mark missing data (all-ones row).

        Examples
        --------
        >>> TipEvidence.from_states([1, 0, None], n_states=2).matrix
        array([[0., 1.],
               [1., 0.],
               [1., 1.]])
        """
        matrix = np.zeros((len(states), n_states))
        for row, state in enumerate(states):
            if state is None:
                matrix[row, :] = 1.0
                continue
            # numpy scalars register as numbers.Real; strings do not
            if not isinstance(state, numbers.Real):
                raise InvalidTipEvidence(
                    f"State {state!r} of tip {row} is not a number; use TraitData for labels"
                )
            if np.isnan(state) or state < 0:
                matrix[row, :] = 1.0
                continue
            if not np.isfinite(state) or int(state) != state or state >= n_states:
                raise InvalidTipEvidence(
                    f"State {state!r} of tip {row} is not an integer in 0..{n_states - 1}"
                )
            matrix[row, int(state)] = 1.0
        return cls(matrix, names)

    @property
    def n_tips(self) -> int:
        return self.matrix.shape[0]

    @property
    def n_states(self) -> int:
        return self.matrix.shape[1]

    def log_matrix(self) -> np.ndarray:
        """Log of the evidence, with -inf for zero entries."""
        with np.errstate(divide="ignore"):
            return np.log(self.matrix)

    def ordered_for(self, tip_names: Sequence[str]) -> "TipEvidence":
        """
        Reorder rows to match the given tip names.

        Raises
        ------
        InvalidTipEvidence
            If a tip name has no row. Evidence without names is returned
            unchanged when the row count matches.
        """
        if self.names is None:
            if self.n_tips != len(tip_names):
                raise InvalidTipEvidence(
                    f"Evidence has {self.n_tips} rows but the tree has {len(tip_names)} tips"
                )
            return self
        index = {name: i for i, name in enumerate(self.names)}
        missing = [name for name in tip_names if name not in index]
        if missing:
            raise InvalidTipEvidence(f"No evidence for tips: {missing}")
        rows = [index[name] for name in tip_names]
        return TipEvidence(self.matrix[rows], list(tip_names))

    def with_missing(self, tip: int) -> "TipEvidence":
        """Copy with one tip's row replaced by the uninformative all-ones row."""
        matrix = self.matrix.copy()
        matrix[tip, :] = 1.0
        return TipEvidence(matrix, self.names)

    def __repr__(self) -> str:
        return f"TipEvidence(n_tips={self.n_tips}, n_states={self.n_states})"
