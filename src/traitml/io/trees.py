"""
Newick tree parsing.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..core.tree import NO_PARENT, Tree
from ..exceptions import MalformedTree


@dataclass
class TreeNode:
    """
    Node of a parsed Newick tree.

    Attributes
    ----------
    name : Optional[str]
        Node name (tips, and optionally internal nodes)
    parent : Optional[TreeNode]
        Parent node
    children : list[TreeNode]
        Child nodes
    branch_length : float
        Branch length to parent (0 when absent)
    """

    name: Optional[str] = None
    parent: Optional["TreeNode"] = field(default=None, repr=False, compare=False)
    children: list["TreeNode"] = field(default_factory=list)
    branch_length: float = 0.0

    @property
    def is_leaf(self) -> bool:
        """Check if node is a leaf."""
        return len(self.children) == 0


def _skip_whitespace(s: str, pos: int) -> int:
    while pos < len(s) and s[pos] in ' \t\n\r':
        pos += 1
    return pos


def _parse_label(s: str, pos: int, node: TreeNode) -> int:
    """Read an optional (quoted) name and ``:length`` for node starting at pos."""
    if pos < len(s) and s[pos] == "'":
        end = s.find("'", pos + 1)
        if end < 0:
            raise MalformedTree(f"Unterminated quoted name at position {pos}")
        node.name = s[pos + 1:end]
        pos = end + 1
    else:
        name_start = pos
        while pos < len(s) and s[pos] not in ',:(); \t\n\r':
            pos += 1
        if pos > name_start:
            node.name = s[name_start:pos]

    pos = _skip_whitespace(s, pos)

    if pos < len(s) and s[pos] == ':':
        pos = _skip_whitespace(s, pos + 1)
        length_start = pos
        while pos < len(s) and s[pos] not in ',(); \t\n\r':
            pos += 1
        try:
            node.branch_length = float(s[length_start:pos])
        except ValueError:
            raise MalformedTree(f"Invalid branch length: {s[length_start:pos]!r}") from None

    return _skip_whitespace(s, pos)


def parse_newick(newick_string: str) -> TreeNode:
    """
    Parse a Newick string into linked nodes.

    The parser walks the string once with an explicit cursor instead of
    recursing, so ladderized trees of any depth can be read.

    Parameters
    ----------
    newick_string : str
        Newick format tree, terminated by a semicolon

    Returns
    -------
    TreeNode
        Root node

    Raises
    ------
    MalformedTree
        If the string is not valid Newick
    """
    # Remove [...] comments (NHX annotations, rooting flags)
    newick = re.sub(r'\[[^\]]*\]', '', newick_string).strip()

    if ';' not in newick:
        raise MalformedTree("Invalid Newick format: missing semicolon")
    newick = newick[:newick.index(';')]
    newick = newick.replace('\n', '').replace('\t', '').replace('\r', '')
    if not newick.strip():
        raise MalformedTree("Invalid Newick format: no tree found")

    root = TreeNode()
    node = root
    pos = 0
    while True:
        pos = _skip_whitespace(newick, pos)
        # Each '(' opens the first child of the current node
        while pos < len(newick) and newick[pos] == '(':
            child = TreeNode(parent=node)
            node.children.append(child)
            node = child
            pos = _skip_whitespace(newick, pos + 1)

        # Label the current node, then every node closed right after it
        pos = _parse_label(newick, pos, node)
        while pos < len(newick) and newick[pos] == ')' and node.parent is not None:
            node = node.parent
            pos = _parse_label(newick, _skip_whitespace(newick, pos + 1), node)

        if pos < len(newick) and newick[pos] == ',' and node.parent is not None:
            sibling = TreeNode(parent=node.parent)
            node.parent.children.append(sibling)
            node = sibling
            pos += 1
            continue
        break

    if node.parent is not None:
        raise MalformedTree(f"Expected ',' or ')' at position {pos}")
    if pos != len(newick):
        raise MalformedTree(f"Unexpected text after tree at position {pos}: {newick[pos:]!r}")
    return root


def to_arena(root: TreeNode) -> Tree:
    """
    Number parsed nodes tips-first and build the index-based tree.

    Tips are numbered 0..n_tips-1 in left-to-right order, internal nodes
    follow in post-order with the root last. Unnamed tips are called
    "t<index>".
    """
    postorder = []
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded or node.is_leaf:
            postorder.append(node)
        else:
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))

    leaves = [node for node in postorder if node.is_leaf]
    internals = [node for node in postorder if not node.is_leaf]
    index = {id(node): i for i, node in enumerate(leaves + internals)}

    parent = [NO_PARENT] * len(index)
    lengths = [0.0] * len(index)
    for node in postorder:
        i = index[id(node)]
        if node.parent is not None:
            parent[i] = index[id(node.parent)]
            lengths[i] = node.branch_length

    tip_names = [
        node.name if node.name else f"t{i}" for i, node in enumerate(leaves)
    ]
    return Tree(parent, lengths, n_tips=len(leaves), tip_names=tip_names)


def read_newick(tree: Union[str, Path]) -> Tree:
    """
    Read a tree from a Newick file or string.

    Parameters
    ----------
    tree : str or Path
        Path to a Newick file, or a Newick string

    Returns
    -------
    Tree
        Index-based tree with tips numbered first

    Raises
    ------
    MalformedTree
        If parsing or validation fails

    Examples
    --------
    >>> tree = read_newick("((A:0.1,B:0.2):0.3,C:0.4);")
    >>> tree.tip_names
    ['A', 'B', 'C']
    """
    text = str(tree)
    if not text.lstrip().startswith('('):
        path = Path(text)
        if path.exists():
            text = path.read_text()
    return to_arena(parse_newick(text))
