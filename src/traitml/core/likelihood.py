"""
Likelihood calculation for discrete character models.

This module implements Felsenstein's pruning algorithm in log space for a
single character on a fixed tree.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np
from loguru import logger
from scipy.special import logsumexp

from ..exceptions import InvalidRateMatrix, NonFiniteLikelihood
from ..models.rates import RateModelLike, as_rate_model
from .evidence import TipEvidence
from .prior import RootPrior, RootPriorLike, resolve_root_prior
from .tree import Tree

logger = logger.bind(name="traitml")


@dataclass
class PruningResult:
    """
    Result of one pruning pass.

    Attributes
    ----------
    log_likelihood : float
        Total log-likelihood of the tip data
    node_log_likelihoods : ndarray, shape (n_nodes, n_states)
        log L_n(s): log probability of the data below node n given state s
    root_prior : ndarray, shape (n_states,)
        Root prior used to combine the root conditionals
    root : int
        Index of the root node
    """

    log_likelihood: float
    node_log_likelihoods: np.ndarray
    root_prior: np.ndarray
    root: int

    @property
    def root_log_likelihoods(self) -> np.ndarray:
        return self.node_log_likelihoods[self.root]


class LikelihoodCalculator:
    """
    Compute the likelihood of tip data using Felsenstein's pruning algorithm.

    The calculator is built once from a tree and tip evidence and then
    evaluated any number of times with different rate models. It keeps no
    state between evaluations, so one instance can be shared by several
    threads.

    Attributes
    ----------
    tree : Tree
        Rooted tree (tips numbered first)
    evidence : TipEvidence
        Tip evidence, rows ordered as the tree's tips
    n_states : int
        Number of character states
    """

    def __init__(self, tree: Tree, evidence: Union[TipEvidence, np.ndarray]):
        """
        Initialize likelihood calculator.

        Parameters
        ----------
        tree : Tree
            Rooted tree
        evidence : TipEvidence or array_like, shape (n_tips, n_states)
            Tip evidence. Named evidence is reordered to the tree's tips.
        """
        if not isinstance(evidence, TipEvidence):
            evidence = TipEvidence(evidence)

        self.tree = tree
        self.evidence = evidence.ordered_for(tree.tip_names)
        self.n_states = self.evidence.n_states

        self._log_tips = self.evidence.log_matrix()
        self._log_tips.setflags(write=False)
        self._branches = tree.branches()

        logger.debug(
            f"likelihood calculator ready: {tree.n_tips} tips, {tree.n_nodes} nodes, "
            f"{self.n_states} states"
        )

    def _check_rate_model(self, rate_model: RateModelLike):
        rate_model = as_rate_model(rate_model)
        if rate_model.n_states != self.n_states:
            raise InvalidRateMatrix(
                f"Rate matrix has {rate_model.n_states} states, tip evidence has "
                f"{self.n_states}"
            )
        return rate_model

    def _prune(self, rate_model) -> np.ndarray:
        """Fill the per-node log conditional likelihood table."""
        lam = np.zeros((self.tree.n_nodes, self.n_states))
        lam[: self.tree.n_tips] = self._log_tips

        # Transition matrices are reused for repeated branch lengths in this pass only
        P_matrices = {}
        with np.errstate(divide="ignore"):
            for child, parent, t in self._branches:
                P = P_matrices.get(t)
                if P is None:
                    P = P_matrices[t] = rate_model.transition_matrix(t)

                # log sum_i P[d, i] * exp(lam[child, i]) for every parent state d
                lam[parent] += logsumexp(lam[child][np.newaxis, :], b=P, axis=1)

                if np.any(np.isnan(lam[parent]) | (lam[parent] == np.inf)):
                    raise NonFiniteLikelihood(
                        f"Conditional likelihood of node {parent} became non-finite "
                        f"after adding the branch from node {child} (length {t})"
                    )
        return lam

    def compute_node_log_likelihoods(self, rate_model: RateModelLike) -> np.ndarray:
        """
        Per-node log conditional likelihoods.

        Parameters
        ----------
        rate_model : RateMatrix, ndarray or (alpha, beta)
            Rate model for this evaluation

        Returns
        -------
        ndarray, shape (n_nodes, n_states)
            Row n holds log L_n(s), indexed by node number. Tip rows equal
            the log tip evidence.
        """
        return self._prune(self._check_rate_model(rate_model))

    def evaluate(
        self,
        rate_model: RateModelLike,
        root_prior: RootPriorLike = RootPrior.UNIFORM,
    ) -> PruningResult:
        """
        Run one pruning pass and combine the root with the prior.

        Parameters
        ----------
        rate_model : RateMatrix, ndarray or (alpha, beta)
            Rate model for this evaluation
        root_prior : str, RootPrior or array_like, default="uniform"
            "uniform", "stationary", "fitzjohn" or an explicit vector

        Returns
        -------
        PruningResult
            Total log-likelihood, per-node table (indexed by node number)
            and the root prior used

        Raises
        ------
        NonFiniteLikelihood
            If a conditional likelihood becomes NaN or +inf
        """
        rate_model = self._check_rate_model(rate_model)
        lam = self._prune(rate_model)
        root_lam = lam[self.tree.root]

        prior = resolve_root_prior(root_prior, self.n_states, rate_model, root_lam)
        with np.errstate(divide="ignore"):
            log_likelihood = float(logsumexp(root_lam, b=prior))

        if np.isnan(log_likelihood) or log_likelihood == np.inf:
            raise NonFiniteLikelihood(f"Total log-likelihood is {log_likelihood}")

        return PruningResult(
            log_likelihood=log_likelihood,
            node_log_likelihoods=lam,
            root_prior=prior,
            root=self.tree.root,
        )

    def compute_log_likelihood(
        self,
        rate_model: RateModelLike,
        root_prior: RootPriorLike = RootPrior.UNIFORM,
    ) -> float:
        """
        Compute the log-likelihood for a rate model.

        Parameters
        ----------
        rate_model : RateMatrix, ndarray or (alpha, beta)
            Rate model for this evaluation
        root_prior : str, RootPrior or array_like, default="uniform"
            Root prior policy or explicit vector

        Returns
        -------
        float
            Log-likelihood value (-inf if the data are impossible under
            the model)

        Examples
        --------
        >>> tree = Tree(parent=[2, 2, -1], branch_lengths=[0.1, 0.2, 0.0], n_tips=2)
        >>> calc = LikelihoodCalculator(tree, TipEvidence.from_states([1, 0], 2))
        >>> round(calc.compute_log_likelihood((1.0, 2.0)), 4)
        -1.8257
        """
        return self.evaluate(rate_model, root_prior).log_likelihood
