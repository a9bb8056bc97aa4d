"""
Pytest configuration and shared fixtures.
"""

import numpy as np
import pytest
from typer.testing import CliRunner

from traitml.core.evidence import TipEvidence
from traitml.core.tree import Tree


FIVE_TIP_NEWICK = "(((A:0.1,B:0.2):0.05,C:0.3):0.1,(D:0.25,E:0.15):0.2);"


@pytest.fixture
def cli_runner():
    """CLI test runner for Typer apps."""
    return CliRunner()


@pytest.fixture
def cherry_tree():
    """Root (node 2) directly parenting tips A (0.1) and B (0.2)."""
    return Tree(parent=[2, 2, -1], branch_lengths=[0.1, 0.2, 0.0], n_tips=2, tip_names=["A", "B"])


@pytest.fixture
def five_tip_tree():
    """
    Five tips, four internal nodes, root = 8.

    Topology: (((A,B)5,C)6,(D,E)7)8
    """
    parent = [5, 5, 6, 7, 7, 6, 8, 8, -1]
    lengths = [0.1, 0.2, 0.3, 0.25, 0.15, 0.05, 0.1, 0.2, 0.0]
    return Tree(parent, lengths, n_tips=5, tip_names=["A", "B", "C", "D", "E"])


@pytest.fixture
def five_tip_evidence():
    """Binary observations with one missing tip (C)."""
    return TipEvidence.from_states([1, 0, None, 1, 1], n_states=2, names=["A", "B", "C", "D", "E"])


@pytest.fixture
def three_state_Q():
    """Non-reversible three-state rate matrix."""
    Q = np.array([
        [0.0, 0.6, 0.2],
        [0.1, 0.0, 0.3],
        [0.2, 0.5, 0.0],
    ])
    np.fill_diagonal(Q, -Q.sum(axis=1))
    return Q


@pytest.fixture
def tree_file(tmp_path):
    """Temporary Newick file for the five-tip tree."""
    path = tmp_path / "tree.nwk"
    path.write_text(FIVE_TIP_NEWICK + "\n")
    return path


@pytest.fixture
def traits_file(tmp_path):
    """Temporary CSV of binary observations for the five-tip tree."""
    path = tmp_path / "traits.csv"
    path.write_text(
        "taxon,presence\n"
        "A,1\n"
        "B,0\n"
        "C,?\n"
        "D,1\n"
        "E,1\n"
    )
    return path
