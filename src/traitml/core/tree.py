"""
Index-based rooted tree used by the pruning engine.

Nodes are numbered 0..n_nodes-1 with tips first (0..n_tips-1) and internal
nodes afterwards. Parent pointers and branch lengths are stored in flat
arrays, and the pruning order is computed once at construction.
"""

from collections import deque
from typing import Optional, Sequence

import numpy as np
from loguru import logger

from ..exceptions import MalformedBranchLength, MalformedTree

logger = logger.bind(name="traitml")

NO_PARENT = -1


class Tree:
    """
    Rooted phylogenetic tree stored as an index arena.

    Parameters
    ----------
    parent : sequence of int, length n_nodes
        Parent index of every node, ``-1`` for the root
    branch_lengths : sequence of float, length n_nodes
        Length of the branch above every node (ignored for the root)
    n_tips : int
        Number of tips; tips must be nodes 0..n_tips-1
    tip_names : sequence of str, optional
        Tip labels, defaults to "t0", "t1", ...

    Attributes
    ----------
    n_nodes : int
        Total number of nodes
    n_tips : int
        Number of tips
    root : int
        Index of the root node
    postorder : ndarray of int
        Pruning order: every node appears after all of its children and
        the root comes last

    Raises
    ------
    MalformedTree
        On zero or several roots, cycles, unreachable nodes, tips with
        children or internal nodes without children
    MalformedBranchLength
        On negative or non-finite branch lengths

    Examples
    --------
    >>> tree = Tree(parent=[2, 2, -1], branch_lengths=[0.1, 0.2, 0.0], n_tips=2)
    >>> tree.postorder.tolist()
    [0, 1, 2]
    """

    def __init__(
        self,
        parent: Sequence[int],
        branch_lengths: Sequence[float],
        n_tips: int,
        tip_names: Optional[Sequence[str]] = None,
    ):
        parent = np.asarray(parent, dtype=np.int64)
        lengths = np.asarray(branch_lengths, dtype=float)
        if parent.ndim != 1 or lengths.shape != parent.shape:
            raise MalformedTree(
                f"parent and branch_lengths must be 1-d arrays of equal length, "
                f"got shapes {parent.shape} and {lengths.shape}"
            )
        n_nodes = parent.shape[0]
        if n_tips < 1 or n_tips > n_nodes:
            raise MalformedTree(f"n_tips must be between 1 and {n_nodes}, got {n_tips}")
        if np.any((parent < NO_PARENT) | (parent >= n_nodes)):
            raise MalformedTree("Parent indices must be -1 or a valid node index")
        if np.any(parent == np.arange(n_nodes)):
            raise MalformedTree("A node cannot be its own parent")

        roots = np.flatnonzero(parent == NO_PARENT)
        if roots.size != 1:
            raise MalformedTree(f"Tree must have exactly one root, found {roots.size}")
        root = int(roots[0])

        non_root = parent != NO_PARENT
        bad = np.flatnonzero(non_root & ~(np.isfinite(lengths) & (lengths >= 0)))
        if bad.size:
            raise MalformedBranchLength(
                f"Branch lengths must be finite and >= 0; nodes {bad.tolist()} "
                f"have {lengths[bad].tolist()}"
            )

        n_children = np.bincount(parent[non_root], minlength=n_nodes)
        if np.any(n_children[:n_tips] > 0):
            raise MalformedTree(
                f"Tips must be numbered first: nodes {np.flatnonzero(n_children[:n_tips]).tolist()} "
                f"have children"
            )
        if np.any(n_children[n_tips:] == 0):
            childless = np.flatnonzero(n_children[n_tips:] == 0) + n_tips
            raise MalformedTree(f"Internal nodes {childless.tolist()} have no children")

        self.parent = parent
        self.branch_lengths = np.where(non_root, lengths, 0.0)
        self.n_nodes = int(n_nodes)
        self.n_tips = int(n_tips)
        self.root = root
        self.postorder = self._pruning_order(n_children)

        if tip_names is None:
            tip_names = [f"t{i}" for i in range(n_tips)]
        if len(tip_names) != n_tips:
            raise MalformedTree(f"Expected {n_tips} tip names, got {len(tip_names)}")
        if len(set(tip_names)) != n_tips:
            raise MalformedTree("Tip names must be unique")
        self.tip_names = list(tip_names)

        for arr in (self.parent, self.branch_lengths, self.postorder):
            arr.setflags(write=False)

        logger.debug(
            f"built tree with {self.n_tips} tips and {self.n_nodes} nodes (root={self.root})"
        )

    def _pruning_order(self, n_children: np.ndarray) -> np.ndarray:
        """Children-before-parents order; a node is queued once its last child is done."""
        pending = n_children.copy()
        queue = deque(range(self.n_tips))
        order = []
        while queue:
            node = queue.popleft()
            order.append(node)
            up = self.parent[node]
            if up == NO_PARENT:
                continue
            pending[up] -= 1
            if pending[up] == 0:
                queue.append(int(up))

        if len(order) != self.n_nodes:
            stuck = sorted(set(range(self.n_nodes)) - set(order))
            raise MalformedTree(
                f"Nodes {stuck} are not reachable from the tips to the root "
                f"(cycle or disconnected component)"
            )
        return np.asarray(order, dtype=np.int64)

    @classmethod
    def from_edges(
        cls,
        parent: Sequence[int],
        child: Sequence[int],
        branch_lengths: Sequence[float],
        n_nodes: int,
        n_tips: int,
        tip_names: Optional[Sequence[str]] = None,
    ) -> "Tree":
        """
        Build a tree from an edge list.

        Parameters
        ----------
        parent, child : sequence of int, length n_nodes - 1
            Parent and child index of every branch (0-based)
        branch_lengths : sequence of float, length n_nodes - 1
            Length of every branch
        n_nodes : int
            Total number of nodes
        n_tips : int
            Number of tips (numbered first)
        tip_names : sequence of str, optional
            Tip labels
        """
        parent = np.asarray(parent, dtype=np.int64)
        child = np.asarray(child, dtype=np.int64)
        lengths = np.asarray(branch_lengths, dtype=float)
        n_edges = n_nodes - 1
        if not (parent.shape == child.shape == lengths.shape == (n_edges,)):
            raise MalformedTree(
                f"A tree with {n_nodes} nodes needs {n_edges} branches; got parent "
                f"{parent.shape}, child {child.shape}, lengths {lengths.shape}"
            )
        for name, idx in (("parent", parent), ("child", child)):
            if np.any((idx < 0) | (idx >= n_nodes)):
                raise MalformedTree(f"{name} indices must be within 0..{n_nodes - 1}")
        if np.unique(child).size != n_edges:
            raise MalformedTree("Every node can have at most one parent")

        parent_of = np.full(n_nodes, NO_PARENT, dtype=np.int64)
        length_of = np.zeros(n_nodes)
        parent_of[child] = parent
        length_of[child] = lengths
        return cls(parent_of, length_of, n_tips, tip_names)

    @property
    def n_branches(self) -> int:
        return self.n_nodes - 1

    @property
    def total_length(self) -> float:
        return float(self.branch_lengths.sum())

    def is_tip(self, node: int) -> bool:
        return 0 <= node < self.n_tips

    def children(self, node: int) -> list[int]:
        """Children of a node, in increasing index order."""
        return np.flatnonzero(self.parent == node).tolist()

    def branches(self) -> list[tuple[int, int, float]]:
        """
        Branches as (child, parent, length) in pruning order.

        Every branch appears after all branches below its child node.
        """
        return [
            (int(node), int(self.parent[node]), float(self.branch_lengths[node]))
            for node in self.postorder
            if node != self.root
        ]

    def relabel(self, permutation: Sequence[int]) -> "Tree":
        """
        Renumber nodes, keeping the topology.

        Parameters
        ----------
        permutation : sequence of int
            ``permutation[old] = new``. Tips must map onto 0..n_tips-1.

        Returns
        -------
        Tree
            New tree with tip names carried along
        """
        perm = np.asarray(permutation, dtype=np.int64)
        if sorted(perm.tolist()) != list(range(self.n_nodes)):
            raise MalformedTree("Relabeling must be a permutation of all nodes")
        if np.any(perm[: self.n_tips] >= self.n_tips):
            raise MalformedTree("Relabeling must keep tips numbered first")

        parent = np.full(self.n_nodes, NO_PARENT, dtype=np.int64)
        lengths = np.zeros(self.n_nodes)
        non_root = self.parent != NO_PARENT
        parent[perm[non_root]] = perm[self.parent[non_root]]
        lengths[perm] = self.branch_lengths

        names = [""] * self.n_tips
        for old, name in enumerate(self.tip_names):
            names[perm[old]] = name
        return Tree(parent, lengths, self.n_tips, names)

    def to_newick(self, precision: int = 6) -> str:
        """Write the tree in Newick format."""
        kids = [[] for _ in range(self.n_nodes)]
        for node in range(self.n_nodes):
            if self.parent[node] != NO_PARENT:
                kids[self.parent[node]].append(node)

        text = {}
        for node in self.postorder:
            if self.is_tip(node):
                label = self.tip_names[node]
            else:
                label = "(" + ",".join(text.pop(c) for c in kids[node]) + ")"
            if node != self.root:
                label += f":{self.branch_lengths[node]:.{precision}g}"
            text[node] = label
        return text[self.root] + ";"

    def __repr__(self) -> str:
        return f"Tree(n_tips={self.n_tips}, n_nodes={self.n_nodes})"
