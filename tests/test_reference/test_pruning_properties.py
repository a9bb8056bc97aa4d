"""
Reference tests for the pruning engine.

Each test checks a property the likelihood must satisfy independently of
implementation details: closed forms on tiny trees, invariance to
relabeling and missing data, and numerical stability on large trees.
"""

import numpy as np
import pytest

from traitml.core.evidence import TipEvidence
from traitml.core.likelihood import LikelihoodCalculator
from traitml.core.matrix import two_state_transition
from traitml.core.tree import Tree
from traitml.models.rates import RateMatrix, TwoStateModel, mk_rate_matrix


class TestConcreteScenario:
    """Tips A (state 1, t=0.1) and B (state 0, t=0.2) joined at the root; alpha=1, beta=2."""

    def test_hand_computed_reference(self, cherry_tree):
        alpha, beta = 1.0, 2.0
        s = alpha + beta

        # P(1 | d, 0.1) and P(0 | d, 0.2) written out for d = 0, 1
        eA = np.exp(-s * 0.1)
        eB = np.exp(-s * 0.2)
        p1_given0_A = alpha / s - alpha / s * eA
        p1_given1_A = alpha / s + beta / s * eA
        p0_given0_B = beta / s + alpha / s * eB
        p0_given1_B = beta / s - beta / s * eB

        L0 = p1_given0_A * p0_given0_B
        L1 = p1_given1_A * p0_given1_B
        expected = np.log(0.5 * L0 + 0.5 * L1)

        calc = LikelihoodCalculator(cherry_tree, TipEvidence.from_states([1, 0], 2))
        result = calc.evaluate(TwoStateModel(alpha, beta), root_prior="uniform")

        np.testing.assert_allclose(result.log_likelihood, expected, rtol=1e-12)
        np.testing.assert_allclose(result.root_log_likelihoods, np.log([L0, L1]), rtol=1e-12)
        np.testing.assert_allclose(result.log_likelihood, -1.8256691, atol=1e-6)


class TestTwoTipStar:
    """Two tips in state 1 hanging from the root."""

    @pytest.mark.parametrize("prior", ["uniform", "stationary", [0.9, 0.1]])
    def test_matches_direct_sum(self, prior):
        alpha, beta, t1, t2 = 0.4, 1.1, 0.3, 0.75
        tree = Tree(parent=[2, 2, -1], branch_lengths=[t1, t2, 0.0], n_tips=2)
        calc = LikelihoodCalculator(tree, TipEvidence.from_states([1, 1], 2))

        P1 = two_state_transition(alpha, beta, t1)
        P2 = two_state_transition(alpha, beta, t2)
        if prior == "uniform":
            root = np.array([0.5, 0.5])
        elif prior == "stationary":
            root = np.array([beta, alpha]) / (alpha + beta)
        else:
            root = np.array(prior)
        expected = np.log(sum(root[s] * P1[s, 1] * P2[s, 1] for s in range(2)))

        np.testing.assert_allclose(
            calc.compute_log_likelihood((alpha, beta), root_prior=prior), expected, rtol=1e-12
        )


class TestMissingData:
    """All-ones tip evidence contributes a factor of exactly one."""

    def test_missing_tip_equals_pruned_tip(self, five_tip_tree, five_tip_evidence):
        """Tip C is missing; the same tree with C removed gives the same likelihood."""
        # tips A,B,D,E = 0..3; 4 = (A,B); 5 = knuckle above 4; 6 = (D,E); 7 = root
        pruned = Tree(
            parent=[4, 4, 6, 6, 5, 7, 7, -1],
            branch_lengths=[0.1, 0.2, 0.25, 0.15, 0.05, 0.1, 0.2, 0.0],
            n_tips=4,
            tip_names=["A", "B", "D", "E"],
        )
        pruned_evidence = TipEvidence.from_states([1, 0, 1, 1], 2, names=["A", "B", "D", "E"])

        full = LikelihoodCalculator(five_tip_tree, five_tip_evidence)
        reduced = LikelihoodCalculator(pruned, pruned_evidence)

        for params in [(1.0, 2.0), (0.2, 0.05), (5.0, 5.0)]:
            np.testing.assert_allclose(
                full.compute_log_likelihood(params), reduced.compute_log_likelihood(params),
                rtol=1e-12,
            )

    def test_missing_tip_rows_are_zero(self, five_tip_tree, five_tip_evidence):
        """Missing tips start from log 1 = 0 in every state."""
        missing_a = LikelihoodCalculator(five_tip_tree, five_tip_evidence.with_missing(0))

        table = missing_a.compute_node_log_likelihoods((1.0, 2.0))
        np.testing.assert_array_equal(table[0], [0.0, 0.0])
        np.testing.assert_array_equal(table[2], [0.0, 0.0])

    def test_all_missing_is_zero(self, five_tip_tree):
        """With no information at any tip the likelihood is one."""
        calc = LikelihoodCalculator(five_tip_tree, np.ones((5, 2)))
        np.testing.assert_allclose(calc.compute_log_likelihood((1.0, 3.0)), 0.0, atol=1e-12)


class TestRelabeling:
    """Renumbering nodes consistently must not change the likelihood."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_permuted_nodes(self, five_tip_tree, five_tip_evidence, seed):
        rng = np.random.RandomState(seed)
        perm = np.concatenate([rng.permutation(5), 5 + rng.permutation(4)])
        relabeled = five_tip_tree.relabel(perm)

        original = LikelihoodCalculator(five_tip_tree, five_tip_evidence)
        permuted = LikelihoodCalculator(relabeled, five_tip_evidence)

        Q = mk_rate_matrix([0.5, 1.5], 2, model="ARD")
        np.testing.assert_allclose(
            permuted.compute_log_likelihood(Q), original.compute_log_likelihood(Q), rtol=1e-12
        )

    def test_permuted_three_state(self, five_tip_tree, three_state_Q):
        evidence = TipEvidence.from_states([0, 2, 1, None, 2], 3, names=list("ABCDE"))
        perm = [4, 3, 2, 1, 0, 8, 7, 6, 5]

        original = LikelihoodCalculator(five_tip_tree, evidence)
        permuted = LikelihoodCalculator(five_tip_tree.relabel(perm), evidence)

        np.testing.assert_allclose(
            permuted.compute_log_likelihood(three_state_Q, root_prior="stationary"),
            original.compute_log_likelihood(three_state_Q, root_prior="stationary"),
            rtol=1e-12,
        )


class TestZeroLengthBranch:
    """A zero-length branch copies the child's conditionals to the parent."""

    def test_knuckle_copies_child(self):
        # tip 0 -> knuckle 1 (length 0) -> root 2 (length 0.4)
        tree = Tree(parent=[1, 2, -1], branch_lengths=[0.0, 0.4, 0.0], n_tips=1)
        calc = LikelihoodCalculator(tree, TipEvidence.from_states([1], 2))

        table = calc.compute_node_log_likelihoods((1.0, 2.0))
        np.testing.assert_array_equal(table[1], table[0])

    def test_zero_branch_same_as_multifurcation(self, five_tip_evidence):
        # (A,B) joined to C's parent by a zero-length branch ...
        binary = Tree(
            parent=[5, 5, 6, 7, 7, 6, 8, 8, -1],
            branch_lengths=[0.1, 0.2, 0.3, 0.25, 0.15, 0.0, 0.1, 0.2, 0.0],
            n_tips=5,
            tip_names=list("ABCDE"),
        )
        # ... equals the polytomy (A,B,C)
        polytomy = Tree(
            parent=[5, 5, 5, 6, 6, 7, 7, -1],
            branch_lengths=[0.1, 0.2, 0.3, 0.25, 0.15, 0.1, 0.2, 0.0],
            n_tips=5,
            tip_names=list("ABCDE"),
        )
        for params in [(1.0, 2.0), (0.1, 0.9)]:
            np.testing.assert_allclose(
                LikelihoodCalculator(binary, five_tip_evidence).compute_log_likelihood(params),
                LikelihoodCalculator(polytomy, five_tip_evidence).compute_log_likelihood(params),
                rtol=1e-12,
            )


class TestNumericalStability:
    """Log-space accumulation keeps large trees finite."""

    @staticmethod
    def _caterpillar(n_tips: int, length: float) -> Tree:
        parent = np.full(2 * n_tips - 1, -1)
        parent[0] = n_tips
        for k in range(1, n_tips):
            parent[k] = n_tips + max(k - 1, 0)
        for k in range(n_tips, 2 * n_tips - 2):
            parent[k] = k + 1
        return Tree(parent, np.full(2 * n_tips - 1, length), n_tips)

    def test_large_tree_no_underflow(self):
        """3000 independent tips: lnL = n * log(0.5), far below the float64 range of L."""
        n = 3000
        tree = self._caterpillar(n, length=50.0)
        states = [i % 2 for i in range(n)]
        calc = LikelihoodCalculator(tree, TipEvidence.from_states(states, 2))

        lnL = calc.compute_log_likelihood((1.0, 1.0))

        assert np.isfinite(lnL)
        np.testing.assert_allclose(lnL, n * np.log(0.5), rtol=1e-10)

    def test_impossible_data_gives_minus_infinity(self):
        """With no change possible, tips in different states have zero likelihood."""
        tree = Tree(parent=[2, 2, -1], branch_lengths=[0.5, 0.5, 0.0], n_tips=2)
        calc = LikelihoodCalculator(tree, TipEvidence.from_states([0, 1], 2))

        assert calc.compute_log_likelihood(TwoStateModel(0.0, 0.0)) == -np.inf

    def test_reproducible(self, five_tip_tree, five_tip_evidence):
        """Same parameters give bit-identical output."""
        calc = LikelihoodCalculator(five_tip_tree, five_tip_evidence)
        first = calc.compute_log_likelihood(RateMatrix([[-1.0, 1.0], [2.0, -2.0]]))
        second = calc.compute_log_likelihood(RateMatrix([[-1.0, 1.0], [2.0, -2.0]]))
        assert first == second
