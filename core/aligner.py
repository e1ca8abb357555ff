"""
Aligner Module
Pairs the children of two trees, synthesizes phantoms for inserted and
deleted nodes, and classifies every pairing (status and move direction).

Matching is first-fit: each left child takes the first unused right sibling
that its rule does not consider a different node. There is no backtracking
and no attempt at a minimum-cost edit script.
"""

from typing import List, Optional, Set, Tuple
import logging

from .comparison_graph import ComparisonGraph, MoveState, NodeStatus
from .difference_index import DifferenceIndex
from .equality import ContentStatus, EqualityEngine
from .rules import RuleSet
from .xml_node import Node

logger = logging.getLogger(__name__)


def classify_pairing(content: ContentStatus, left_index: int, right_index: int,
                     order_significant: bool) -> Tuple[NodeStatus, MoveState]:
    """Status and move state of a matched pair.

    When order matters any reorder counts as an update ("then updated").
    When it does not, a pure reorder is only a move, and a reorder combined
    with a content change is "and updated".
    """
    if content is ContentStatus.DIFFERENT:
        raise ValueError('Different nodes cannot be paired')
    if left_index == right_index:
        if content is ContentStatus.IDENTICAL:
            return NodeStatus.UNCHANGED, MoveState.NONE
        return NodeStatus.UPDATED, MoveState.NONE

    down = left_index < right_index
    if order_significant:
        return NodeStatus.UPDATED, MoveState.DOWN_THEN_UPDATED if down else MoveState.UP_THEN_UPDATED
    if content is ContentStatus.IDENTICAL:
        return NodeStatus.UNCHANGED, MoveState.DOWN if down else MoveState.UP
    return NodeStatus.UPDATED, MoveState.DOWN_AND_UPDATED if down else MoveState.UP_AND_UPDATED


class Aligner:
    def __init__(self, rules: Optional[RuleSet] = None, engine: Optional[EqualityEngine] = None):
        self.rules = rules or RuleSet()
        self.engine = engine or EqualityEngine()

    def align(self, left_root: Optional[Node],
              right_root: Optional[Node]) -> Tuple[ComparisonGraph, DifferenceIndex]:
        """Compare two trees; either root may be None (no counterpart at all)."""
        if left_root is None and right_root is None:
            raise ValueError('At least one root node is required')

        graph = ComparisonGraph()
        if left_root is not None:
            left = graph.wrap_tree(left_root, True)
        else:
            left = graph.add_phantom(True, right_root.name)
        if right_root is not None:
            right = graph.wrap_tree(right_root, False)
        else:
            right = graph.add_phantom(False, left_root.name)

        root = graph.pair(left, right)
        graph.root = root
        if left_root is None:
            graph.mark_status(root, NodeStatus.NEW)
        elif right_root is None:
            graph.mark_status(root, NodeStatus.DELETED)
        elif not self.engine.structurally_equal(self.rules.resolve(left_root.name), left_root, right_root):
            graph.mark_status(root, NodeStatus.UPDATED)

        differences = DifferenceIndex()
        stack = [root]
        while stack:
            handle = stack.pop()
            node = graph.node(handle)
            if node.is_different():
                differences.append(node)
            children = self._align_children(graph, handle)
            stack.extend(reversed(children))

        logger.debug(f"Aligned {len(graph)} positions, {len(differences)} differences")
        return graph, differences

    def _align_children(self, graph: ComparisonGraph, handle: int) -> List[int]:
        node = graph.node(handle)
        left = graph.wrapper(node.left)
        right = graph.wrapper(node.right)
        if right.is_phantom:
            return self._cascade(graph, handle, left.children, NodeStatus.DELETED)
        if left.is_phantom:
            return self._cascade(graph, handle, right.children, NodeStatus.NEW)

        created = []
        used: Set[int] = set()
        for left_child in left.children:
            match = self._first_fit(graph, left_child, right.children, used)
            if match is None:
                created.append(self._unmatched(graph, handle, left_child, NodeStatus.DELETED))
                continue
            position, content = match
            used.add(position)
            right_child = right.children[position]
            left_wrapper = graph.wrapper(left_child)
            right_wrapper = graph.wrapper(right_child)
            rule = self.rules.resolve(left_wrapper.name)
            status, moved = classify_pairing(content, left_wrapper.node.index,
                                             right_wrapper.node.index, rule.order_significant)
            child = graph.pair(left_child, right_child)
            graph.add_child(handle, child)
            graph.node(child).moved_state = moved
            graph.mark_status(child, status)
            created.append(child)

        for position, right_child in enumerate(right.children):
            if position not in used:
                created.append(self._unmatched(graph, handle, right_child, NodeStatus.NEW))
        return created

    def _first_fit(self, graph: ComparisonGraph, left_child: int, candidates: List[int],
                   used: Set[int]) -> Optional[Tuple[int, ContentStatus]]:
        left_node = graph.wrapper(left_child).node
        rule = self.rules.resolve(left_node.name)
        for position, candidate in enumerate(candidates):
            if position in used:
                continue
            content = self.engine.status(rule, left_node, graph.wrapper(candidate).node)
            if content is not ContentStatus.DIFFERENT:
                return position, content
        return None

    def _cascade(self, graph: ComparisonGraph, handle: int, children: List[int],
                 status: NodeStatus) -> List[int]:
        return [self._unmatched(graph, handle, child, status) for child in children]

    def _unmatched(self, graph: ComparisonGraph, parent: int, real: int, status: NodeStatus) -> int:
        """Pair a real wrapper with a new phantom on the other side."""
        real_wrapper = graph.wrapper(real)
        phantom = graph.add_phantom(not real_wrapper.is_left, real_wrapper.name)
        if real_wrapper.is_left:
            child = graph.pair(real, phantom)
        else:
            child = graph.pair(phantom, real)
        graph.add_child(parent, child)
        graph.mark_status(child, status)
        graph.insert_phantom(phantom, real)
        return child
