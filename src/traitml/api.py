"""
High-level API for discrete character likelihoods.

This module provides a simplified interface for evaluating the likelihood
of a rate model, with automatic loading of trees and trait tables and a
result object that can be printed or exported.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
import json

import numpy as np
import pandas as pd

from .core.evidence import TipEvidence
from .core.likelihood import LikelihoodCalculator
from .core.prior import RootPrior, RootPriorLike
from .core.tree import Tree
from .exceptions import InvalidRateMatrix, InvalidTipEvidence
from .io.traits import TraitData
from .io.trees import read_newick
from .models.rates import RateMatrix, TwoStateModel, as_rate_model, mk_rate_matrix


@dataclass
class LikelihoodResult:
    """
    Result of a single likelihood evaluation.

    Attributes
    ----------
    lnL : float
        Log-likelihood of the tip data
    model_name : str
        Description of the rate model ("2-state", "ER", "SYM", "ARD", "Q")
    rate_matrix : np.ndarray
        Rate matrix used for the evaluation
    root_prior : np.ndarray
        Root prior used to combine the root conditionals
    root_log_likelihoods : np.ndarray
        Log conditional likelihood of the data for each root state
    states : list[str]
        State labels, in rate-matrix order
    n_tips : int
        Number of tips in the tree
    n_nodes : int
        Number of nodes in the tree

    Examples
    --------
    >>> from traitml import compute_likelihood
    >>> result = compute_likelihood("tree.nwk", "traits.csv", alpha=1.0, beta=2.0)
    >>> print(result.summary())
    >>> result.to_json("result.json")
    """

    lnL: float
    model_name: str
    rate_matrix: np.ndarray
    root_prior: np.ndarray
    root_log_likelihoods: np.ndarray
    states: List[str]
    n_tips: int
    n_nodes: int

    @property
    def n_states(self) -> int:
        return len(self.states)

    @property
    def root_posterior(self) -> np.ndarray:
        """Probability of each root state given the data."""
        with np.errstate(divide="ignore"):
            log_joint = np.log(self.root_prior) + self.root_log_likelihoods
        if not np.isfinite(self.lnL):
            return np.full(self.n_states, np.nan)
        return np.exp(log_joint - self.lnL)

    def summary(self) -> str:
        """
        Generate human-readable summary of the evaluation.

        Returns
        -------
        str
            Formatted multi-line summary
        """
        lines = []
        lines.append("=" * 70)
        lines.append(f"MODEL: {self.model_name} ({self.n_states} states)")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Log-likelihood:       {self.lnL:.6f}")
        lines.append("")
        lines.append("RATE MATRIX:")
        width = max(8, max(len(s) for s in self.states) + 2)
        lines.append(" " * width + "".join(f"{s:>{width}}" for s in self.states))
        for label, row in zip(self.states, self.rate_matrix):
            lines.append(f"{label:>{width}}" + "".join(f"{q:>{width}.4f}" for q in row))
        lines.append("")
        lines.append("ROOT:")
        posterior = self.root_posterior
        for label, prior, post in zip(self.states, self.root_prior, posterior):
            lines.append(f"  state {label}: prior = {prior:.4f}, posterior = {post:.4f}")
        lines.append("")
        lines.append("TREE:")
        lines.append(f"  {self.n_tips} tips")
        lines.append(f"  {self.n_nodes - 1} branches")
        lines.append("")
        lines.append("=" * 70)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """
        Export results as a JSON-serializable dictionary.

        Returns
        -------
        dict
        """
        return {
            'model_name': self.model_name,
            'lnL': float(self.lnL),
            'states': list(self.states),
            'rate_matrix': self.rate_matrix.tolist(),
            'root_prior': self.root_prior.tolist(),
            'root_log_likelihoods': [float(x) for x in self.root_log_likelihoods],
            'n_tips': int(self.n_tips),
            'n_nodes': int(self.n_nodes),
        }

    def to_json(self, filepath: Optional[str] = None, indent: int = 2) -> str:
        """
        Export results as JSON.

        Parameters
        ----------
        filepath : str, optional
            If provided, write JSON to this file
        indent : int, default=2
            Indentation level for pretty printing

        Returns
        -------
        str
            JSON string representation
        """
        json_str = json.dumps(self.to_dict(), indent=indent)

        if filepath:
            with open(filepath, 'w') as f:
                f.write(json_str)

        return json_str

    def __str__(self) -> str:
        return self.summary()

    def __repr__(self) -> str:
        return f"LikelihoodResult(model='{self.model_name}', lnL={self.lnL:.4f}, n_states={self.n_states})"


def _load_tree(tree: Union[str, Path, Tree]) -> Tree:
    """Load tree from a Tree object, Newick file or Newick string."""
    if isinstance(tree, Tree):
        return tree
    return read_newick(tree)


def _load_evidence(
    data: Union[str, Path, pd.DataFrame, TraitData, TipEvidence, np.ndarray],
    tree: Tree,
    taxon_column: Optional[str],
    trait_column: Optional[str],
    states: Optional[Sequence[str]],
) -> tuple[TipEvidence, List[str]]:
    """
    Turn any supported data input into tip evidence ordered as the tree's tips.

    Returns the evidence and the state labels.
    """
    if isinstance(data, (TipEvidence, np.ndarray)):
        evidence = data if isinstance(data, TipEvidence) else TipEvidence(data)
        evidence = evidence.ordered_for(tree.tip_names)
        labels = list(states) if states is not None else [str(i) for i in range(evidence.n_states)]
        return evidence, labels

    if isinstance(data, pd.DataFrame):
        data = TraitData.from_dataframe(data, taxon_column, trait_column, states)
    elif not isinstance(data, TraitData):
        data = TraitData.from_csv(data, taxon_column, trait_column, states)
    return data.to_evidence(tree.tip_names), data.states


def _build_rate_model(
    rates, alpha: Optional[float], beta: Optional[float], model: str, n_states: int
) -> tuple[RateMatrix, str]:
    if (alpha is None) != (beta is None):
        raise InvalidRateMatrix("alpha and beta must be given together")
    if alpha is not None:
        if rates is not None:
            raise InvalidRateMatrix("Give either rates or alpha/beta, not both")
        return TwoStateModel(alpha, beta), "2-state"
    if rates is None:
        raise InvalidRateMatrix("A rate model is required: pass rates or alpha/beta")

    if isinstance(rates, RateMatrix):
        name = "2-state" if isinstance(rates, TwoStateModel) else "Q"
        return rates, name
    arr = np.asarray(rates, dtype=float)
    if arr.ndim == 2:
        return as_rate_model(arr), "Q"
    return mk_rate_matrix(arr, n_states, model), model.upper()


def compute_likelihood(
    tree: Union[str, Path, Tree],
    data: Union[str, Path, pd.DataFrame, TraitData, TipEvidence, np.ndarray],
    rates=None,
    alpha: Optional[float] = None,
    beta: Optional[float] = None,
    model: str = "ARD",
    root_prior: RootPriorLike = RootPrior.UNIFORM,
    taxon_column: Optional[str] = None,
    trait_column: Optional[str] = None,
    states: Optional[Sequence[str]] = None,
) -> LikelihoodResult:
    """
    Evaluate the likelihood of a discrete character model.

    Parameters
    ----------
    tree : str, Path, or Tree
        Phylogenetic tree: path to a Newick file, Newick string, or Tree
    data : str, Path, DataFrame, TraitData, TipEvidence or ndarray
        Tip observations. Files are read as CSV (TSV for .tsv/.txt).
    rates : RateMatrix, 2-d array or 1-d array, optional
        A rate model, a full rate matrix, or free rates of the Mk ``model``
    alpha, beta : float, optional
        Gain and loss rates of the two-state model (instead of ``rates``)
    model : str, default="ARD"
        Mk parameterization used when ``rates`` is 1-d: "ER", "SYM" or "ARD"
    root_prior : str or array_like, default="uniform"
        "uniform", "stationary", "fitzjohn" or an explicit prior vector
    taxon_column, trait_column : str, optional
        Columns of the trait table (default: first and second)
    states : sequence of str, optional
        State labels and their order

    Returns
    -------
    LikelihoodResult

    Raises
    ------
    MalformedTree, InvalidTipEvidence, InvalidRateMatrix, InvalidPrior
        On invalid inputs
    NonFiniteLikelihood
        If the computation degenerates to NaN or +inf

    Examples
    --------
    Two-state gain/loss model:

    >>> result = compute_likelihood("tree.nwk", "traits.csv", alpha=0.5, beta=1.0)
    >>> print(f"lnL = {result.lnL:.4f}")

    Three-state symmetric model with the stationary root prior:

    >>> result = compute_likelihood(
    ...     "tree.nwk", "traits.csv", rates=[0.1, 0.2, 0.3], model="SYM",
    ...     root_prior="stationary",
    ... )
    """
    tree_obj = _load_tree(tree)
    evidence, labels = _load_evidence(data, tree_obj, taxon_column, trait_column, states)
    if len(labels) != evidence.n_states:
        raise InvalidTipEvidence(
            f"Got {len(labels)} state labels for {evidence.n_states} states"
        )

    rate_model, model_name = _build_rate_model(rates, alpha, beta, model, evidence.n_states)

    calc = LikelihoodCalculator(tree_obj, evidence)
    result = calc.evaluate(rate_model, root_prior)

    return LikelihoodResult(
        lnL=result.log_likelihood,
        model_name=model_name,
        rate_matrix=np.array(rate_model.Q),
        root_prior=result.root_prior,
        root_log_likelihoods=result.root_log_likelihoods.copy(),
        states=list(labels),
        n_tips=tree_obj.n_tips,
        n_nodes=tree_obj.n_nodes,
    )
