"""
Unit tests for root priors.
"""

import numpy as np
import pytest

from traitml.core.prior import RootPrior, resolve_root_prior, validate_prior
from traitml.exceptions import InvalidPrior
from traitml.models.rates import RateMatrix, TwoStateModel


class TestNamedPolicies:
    def test_uniform(self):
        np.testing.assert_array_equal(resolve_root_prior("uniform", 4), np.full(4, 0.25))

    def test_enum_and_case(self):
        np.testing.assert_array_equal(
            resolve_root_prior(RootPrior.UNIFORM, 2),
            resolve_root_prior("Uniform", 2),
        )

    def test_stationary(self, three_state_Q):
        prior = resolve_root_prior("stationary", 3, RateMatrix(three_state_Q))
        np.testing.assert_allclose(prior, np.array([1, 4, 2]) / 7)

    def test_stationary_needs_model(self):
        with pytest.raises(InvalidPrior):
            resolve_root_prior(RootPrior.STATIONARY, 2)

    def test_stationary_not_unique(self):
        with pytest.raises(InvalidPrior, match="stationary"):
            resolve_root_prior("stationary", 2, TwoStateModel(0.0, 0.0))

    def test_unknown_policy(self):
        with pytest.raises(InvalidPrior, match="Unknown root prior"):
            resolve_root_prior("flat", 2)


class TestFitzJohn:
    """Root weights proportional to the root conditional likelihoods."""

    def test_weights(self):
        lam = np.log([0.2, 0.6])
        np.testing.assert_allclose(resolve_root_prior("fitzjohn", 2, root_log_likelihoods=lam), [0.25, 0.75])

    def test_tiny_likelihoods(self):
        lam = np.array([-1000.0, -1001.0])
        prior = resolve_root_prior(RootPrior.FITZJOHN, 2, root_log_likelihoods=lam)
        np.testing.assert_allclose(prior, np.array([1.0, np.exp(-1.0)]) / (1.0 + np.exp(-1.0)))

    def test_impossible_state(self):
        lam = np.array([-np.inf, -2.0, -3.0])
        prior = resolve_root_prior("fitzjohn", 3, root_log_likelihoods=lam)
        assert prior[0] == 0.0
        np.testing.assert_allclose(prior.sum(), 1.0)

    def test_all_impossible(self):
        lam = np.full(2, -np.inf)
        np.testing.assert_array_equal(resolve_root_prior("fitzjohn", 2, root_log_likelihoods=lam), [0.5, 0.5])

    def test_needs_root_likelihoods(self):
        with pytest.raises(InvalidPrior):
            resolve_root_prior("fitzjohn", 2)


class TestExplicitPrior:
    def test_accepted(self):
        np.testing.assert_array_equal(resolve_root_prior([0.2, 0.3, 0.5], 3), [0.2, 0.3, 0.5])

    def test_within_tolerance(self):
        validate_prior([0.5, 0.5 + 1e-10], 2)

    @pytest.mark.parametrize("prior", [
        [0.5, 0.5 + 1e-6],
        [1.2, -0.2],
        [0.5, 0.25, 0.25],
        [np.nan, 1.0],
    ])
    def test_rejected(self, prior):
        with pytest.raises(InvalidPrior):
            validate_prior(prior, 2)

    def test_degenerate_prior_allowed(self):
        np.testing.assert_array_equal(validate_prior(np.array([0.0, 1.0]), 2), [0.0, 1.0])
