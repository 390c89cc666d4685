from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from .errors import PreconditionViolation, TableConfigurationError


logger = logging.getLogger(__name__)

Nested = Union[int, Sequence["Nested"]]


@dataclass(frozen=True)
class DecisionTree:
    """Read-only weighted decision tree stored as an arena of nodes.

    Nodes are addressed by stable integer ids. ``children[i]`` lists the
    ordered child ids of node ``i`` and ``sizes[i]`` is the number of
    configurations enumerated below it. A leaf has no children and an explicit
    positive size (1 unless the leaf stands for a block of configurations that
    later placement passes split further).
    """

    children: Tuple[Tuple[int, ...], ...]
    sizes: Tuple[int, ...]
    root: int = 0

    def __post_init__(self) -> None:
        self._validate()

    @property
    def total(self) -> int:
        return self.sizes[self.root]

    def size(self, node: int) -> int:
        return self.sizes[node]

    def is_leaf(self, node: int) -> bool:
        return not self.children[node]

    def _validate(self) -> None:
        n = len(self.children)
        if n == 0 or len(self.sizes) != n:
            raise TableConfigurationError("tree must have as many sizes as nodes")
        if not 0 <= self.root < n:
            raise TableConfigurationError(f"root id {self.root} out of range")

        # Iterative DFS from the root: reject cycles, shared nodes and bad sums
        seen = [False] * n
        stack: List[int] = [self.root]
        while stack:
            node = stack.pop()
            if seen[node]:
                raise TableConfigurationError("tree node reachable twice", node=node)
            seen[node] = True
            kids = self.children[node]
            for c in kids:
                if not 0 <= c < n:
                    raise TableConfigurationError("child id out of range", node=node, child=c)
            if not kids:
                if self.sizes[node] <= 0:
                    raise TableConfigurationError("leaf size must be positive", node=node)
                continue
            total = sum(self.sizes[c] for c in kids)
            if total != self.sizes[node]:
                raise TableConfigurationError(
                    "subtree size is not the sum of its children",
                    node=node,
                    size=self.sizes[node],
                    children_sum=total,
                )
            stack.extend(kids)

    @classmethod
    def from_nested(cls, obj: Nested) -> "DecisionTree":
        """Build a tree from nested lists.

        An ``int`` is a leaf of that size and a list is an internal node whose
        elements are its children, e.g. ``[[1, 1], 3]``.
        """
        builder = TreeBuilder()

        def visit(o: Nested) -> int:
            if isinstance(o, bool):
                raise TableConfigurationError("leaf size must be an integer")
            if isinstance(o, int):
                return builder.leaf(o)
            return builder.node([visit(c) for c in o])

        return builder.build(visit(obj))


class TreeBuilder:
    """Accumulate nodes bottom-up; internal sizes are summed from children."""

    def __init__(self) -> None:
        self._children: List[Tuple[int, ...]] = []
        self._sizes: List[int] = []

    def leaf(self, size: int = 1) -> int:
        self._children.append(())
        self._sizes.append(int(size))
        return len(self._sizes) - 1

    def node(self, children: Sequence[int]) -> int:
        kids = tuple(children)
        if not kids:
            raise TableConfigurationError("internal node needs at least one child")
        self._children.append(kids)
        self._sizes.append(sum(self._sizes[c] for c in kids))
        return len(self._sizes) - 1

    def build(self, root: int) -> DecisionTree:
        return DecisionTree(children=tuple(self._children), sizes=tuple(self._sizes), root=root)


def navigate(tree: DecisionTree, node: int, index: int) -> Tuple[int, int, int]:
    """Route ``index`` to the matching child of ``node``.

    Returns:
        Tuple[int, int, int]: ``(child, ordinal, residual)``. ``ordinal`` is
            the position of the child among its siblings, which is the decoded
            value, and ``residual`` is ``index`` minus the sizes of the
            preceding siblings.

    Raises:
        PreconditionViolation: If ``index`` is not below the size of ``node``.

    Notes:
        A leaf answers every further decision with ordinal 0, consumes
        nothing and keeps the cursor in place.
    """
    if index < 0 or index >= tree.sizes[node]:
        raise PreconditionViolation(
            "index not below subtree size", node=node, index=index, size=tree.sizes[node]
        )
    kids = tree.children[node]
    if not kids:
        return node, 0, index
    for ordinal, child in enumerate(kids):
        size = tree.sizes[child]
        if index < size:
            return child, ordinal, index
        index -= size
    # Unreachable once the tree passed validation
    raise PreconditionViolation("no child matched index", node=node)


def tree_from_dict(data: Any) -> DecisionTree:
    """Parse ``{"root": id, "nodes": [{"children": [...]} | {"size": n}]}``.

    Sizes may be given as decimal strings. Internal node sizes are computed
    from children; a stated size on an internal node must match.
    """
    if not isinstance(data, dict) or not isinstance(data.get("nodes"), list):
        raise TableConfigurationError("tree document must be an object with a 'nodes' list")
    raw_nodes = data["nodes"]
    children: List[Tuple[int, ...]] = []
    stated: List[Optional[int]] = []
    for i, ent in enumerate(raw_nodes):
        if not isinstance(ent, dict):
            raise TableConfigurationError("tree node must be an object", node=i)
        try:
            kids = tuple(int(c) for c in ent.get("children", []))
            size = int(ent["size"]) if ent.get("size") is not None else None
        except (TypeError, ValueError) as e:
            raise TableConfigurationError(f"invalid tree node {i}: {e}", node=i) from e
        children.append(kids)
        stated.append(size)

    sizes: List[Optional[int]] = [None] * len(children)
    # 0 = unvisited, 1 = on the current path, 2 = resolved
    state = [0] * len(children)

    def finish(cur: int) -> None:
        if not children[cur]:
            sizes[cur] = stated[cur] if stated[cur] is not None else 1
        else:
            sizes[cur] = sum(sizes[c] or 0 for c in children[cur])
            if stated[cur] is not None and stated[cur] != sizes[cur]:
                raise TableConfigurationError(
                    "stated subtree size does not match children",
                    node=cur,
                    size=stated[cur],
                    children_sum=sizes[cur],
                )
        state[cur] = 2

    def resolve(node: int) -> None:
        # Post-order without recursion; trees can be deep
        stack: List[Tuple[int, bool]] = [(node, False)]
        while stack:
            cur, expanded = stack.pop()
            if expanded:
                finish(cur)
                continue
            if state[cur]:
                continue
            state[cur] = 1
            stack.append((cur, True))
            for c in children[cur]:
                if not 0 <= c < len(children):
                    raise TableConfigurationError("child id out of range", node=cur, child=c)
                if state[c] == 1:
                    raise TableConfigurationError("tree contains a cycle", node=cur)
                if state[c] == 0:
                    stack.append((c, False))

    root = int(data.get("root", 0))
    if not 0 <= root < len(children):
        raise TableConfigurationError(f"root id {root} out of range")
    for i in range(len(children)):
        resolve(i)
    return DecisionTree(
        children=tuple(children), sizes=tuple(s or 0 for s in sizes), root=root
    )


def load_tree(path: str) -> DecisionTree:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise TableConfigurationError(f"invalid tree JSON: {e}") from e
    tree = tree_from_dict(data)
    logger.info(
        "tree loaded",
        extra={"path": path, "nodes": len(tree.sizes), "total": str(tree.total)},
    )
    return tree
