"""
Comparison Graph Module
Dual-sided result tree of a comparison run.

Each side of the comparison is projected into a tree of SideWrapper entries
(real nodes plus phantom placeholders), and every position is paired with
its counterpart through a ComparisonNode. Wrappers and comparison nodes are
stored in two lists and refer to each other by integer handle.
"""

from typing import Dict, Iterator, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum

from .xml_node import Node


class NodeStatus(Enum):
    UNCHANGED = 'unchanged'
    NEW = 'new'
    DELETED = 'deleted'
    UPDATED = 'updated'


class MoveState(Enum):
    NONE = 'none'
    UP = 'up'
    DOWN = 'down'
    UP_AND_UPDATED = 'up_and_updated'
    DOWN_AND_UPDATED = 'down_and_updated'
    UP_THEN_UPDATED = 'up_then_updated'
    DOWN_THEN_UPDATED = 'down_then_updated'

    def mirrored(self) -> 'MoveState':
        """The same move seen from the other side (up and down swap)."""
        return _MIRRORED.get(self, self)

    @property
    def is_up(self) -> bool:
        return self in (MoveState.UP, MoveState.UP_AND_UPDATED, MoveState.UP_THEN_UPDATED)

    @property
    def is_down(self) -> bool:
        return self in (MoveState.DOWN, MoveState.DOWN_AND_UPDATED, MoveState.DOWN_THEN_UPDATED)


_MIRRORED = {
    MoveState.UP: MoveState.DOWN,
    MoveState.DOWN: MoveState.UP,
    MoveState.UP_AND_UPDATED: MoveState.DOWN_AND_UPDATED,
    MoveState.DOWN_AND_UPDATED: MoveState.UP_AND_UPDATED,
    MoveState.UP_THEN_UPDATED: MoveState.DOWN_THEN_UPDATED,
    MoveState.DOWN_THEN_UPDATED: MoveState.UP_THEN_UPDATED,
}


@dataclass(frozen=True)
class NodeKey:
    """Structural key of a compared position; equality uses the path only."""
    path: Tuple[int, ...]
    name: str = field(compare=False)

    def __str__(self) -> str:
        return self.name


@dataclass
class SideWrapper:
    """One position in the projected tree of one side.

    ``children`` lists the wrappers of the real child nodes in document
    order; ``display_children`` is the projected order, phantoms included.
    ``index`` is the real node's sibling index and stays 0 for phantoms,
    whose place is given by ``ComparisonGraph.display_position``.
    """
    handle: int
    is_left: bool
    name: str
    node: Optional[Node] = None
    parent: Optional[int] = None
    index: int = 0
    children: List[int] = field(default_factory=list)
    display_children: List[int] = field(default_factory=list)
    owner: Optional[int] = None

    @property
    def is_phantom(self) -> bool:
        return self.node is None


@dataclass
class ComparisonNode:
    handle: int
    left: int
    right: int
    key: NodeKey
    status: NodeStatus = NodeStatus.UNCHANGED
    moved_state: MoveState = MoveState.NONE
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)
    has_different_descendant: bool = False

    @property
    def name(self) -> str:
        return self.key.name

    def is_different(self) -> bool:
        return self.status is not NodeStatus.UNCHANGED


class ComparisonGraph:
    """Arena holding both projected trees and the comparison nodes pairing them."""

    def __init__(self):
        self.wrappers: List[SideWrapper] = []
        self.nodes: List[ComparisonNode] = []
        self.root: Optional[int] = None
        self._by_path: Dict[Tuple[bool, Tuple[int, ...]], int] = {}

    # --- wrappers ---

    def wrapper(self, handle: int) -> SideWrapper:
        return self.wrappers[handle]

    def add_phantom(self, is_left: bool, name: str) -> int:
        handle = len(self.wrappers)
        self.wrappers.append(SideWrapper(handle=handle, is_left=is_left, name=name))
        return handle

    def wrap_tree(self, root: Node, is_left: bool) -> int:
        """Create wrappers for ``root`` and all its descendants; returns the root handle."""
        root_handle = self._add_real(root, is_left, None)
        stack = [(root, root_handle)]
        while stack:
            node, handle = stack.pop()
            for child in node.children:
                child_handle = self._add_real(child, is_left, handle)
                stack.append((child, child_handle))
        return root_handle

    def _add_real(self, node: Node, is_left: bool, parent: Optional[int]) -> int:
        handle = len(self.wrappers)
        wrapper = SideWrapper(handle=handle, is_left=is_left, name=node.name, node=node, parent=parent)
        self.wrappers.append(wrapper)
        if parent is not None:
            parent_wrapper = self.wrappers[parent]
            wrapper.index = len(parent_wrapper.children)
            parent_wrapper.children.append(handle)
            parent_wrapper.display_children.append(handle)
        return handle

    def counterpart(self, handle: int) -> Optional[int]:
        """Wrapper on the other side paired with ``handle``."""
        wrapper = self.wrappers[handle]
        if wrapper.owner is None:
            return None
        owner = self.nodes[wrapper.owner]
        return owner.right if wrapper.is_left else owner.left

    def insert_phantom(self, phantom: int, counterpart: int) -> None:
        """Place a phantom so it mirrors the position of its real counterpart.

        A first child is mirrored as first child of the counterpart's parent;
        any other child goes right after the counterpart of its previous
        sibling.
        """
        real = self.wrappers[counterpart]
        if real.parent is None:
            return
        real_parent = self.wrappers[real.parent]
        if real.index == 0:
            other_parent = self.wrappers[self.counterpart(real_parent.handle)]
            position = 0
        else:
            previous = real_parent.children[real.index - 1]
            other_previous = self.counterpart(previous)
            other_parent = self.wrappers[self.wrappers[other_previous].parent]
            position = other_parent.display_children.index(other_previous) + 1
        other_parent.display_children.insert(position, phantom)
        self.wrappers[phantom].parent = other_parent.handle

    # --- comparison nodes ---

    def node(self, handle: int) -> ComparisonNode:
        return self.nodes[handle]

    def pair(self, left: int, right: int) -> int:
        """Create the comparison node owning a left and a right wrapper."""
        left_wrapper = self.wrappers[left]
        right_wrapper = self.wrappers[right]
        real = left_wrapper.node if not left_wrapper.is_phantom else right_wrapper.node
        name = left_wrapper.name if not left_wrapper.is_phantom else right_wrapper.name
        key = NodeKey(real.path if real is not None else (), name)
        handle = len(self.nodes)
        self.nodes.append(ComparisonNode(handle=handle, left=left, right=right, key=key))
        left_wrapper.owner = handle
        right_wrapper.owner = handle
        for wrapper in (left_wrapper, right_wrapper):
            if not wrapper.is_phantom:
                self._by_path[(wrapper.is_left, wrapper.node.path)] = handle
        return handle

    def mark_status(self, handle: int, status: NodeStatus) -> None:
        """Set a status; a difference flags every ancestor as having a different descendant."""
        node = self.nodes[handle]
        node.status = status
        if status is not NodeStatus.UNCHANGED:
            self._propagate(node.parent)

    def add_child(self, parent: int, child: int) -> None:
        parent_node = self.nodes[parent]
        child_node = self.nodes[child]
        parent_node.children.append(child)
        child_node.parent = parent
        if child_node.is_different() or child_node.has_different_descendant:
            self._propagate(parent)

    def _propagate(self, handle: Optional[int]) -> None:
        while handle is not None:
            node = self.nodes[handle]
            if node.has_different_descendant:
                break
            node.has_different_descendant = True
            handle = node.parent

    # --- queries ---

    def find(self, key: NodeKey, is_left: bool = True) -> Optional[ComparisonNode]:
        """Comparison node owning the real node at ``key.path`` on the given side."""
        handle = self._by_path.get((is_left, key.path))
        return self.nodes[handle] if handle is not None else None

    def display_position(self, handle: int) -> int:
        """Position of a wrapper among its parent's projected children."""
        wrapper = self.wrappers[handle]
        if wrapper.parent is None:
            return 0
        return self.wrappers[wrapper.parent].display_children.index(handle)

    def left_of(self, node: ComparisonNode) -> SideWrapper:
        return self.wrappers[node.left]

    def right_of(self, node: ComparisonNode) -> SideWrapper:
        return self.wrappers[node.right]

    def ancestors(self, handle: int) -> Iterator[ComparisonNode]:
        parent = self.nodes[handle].parent
        while parent is not None:
            node = self.nodes[parent]
            yield node
            parent = node.parent

    def walk(self) -> Iterator[ComparisonNode]:
        """Comparison nodes in pre-order, left to right."""
        if self.root is None:
            return
        stack = [self.root]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def side_status(self, handle: int) -> NodeStatus:
        wrapper = self.wrappers[handle]
        if wrapper.owner is not None:
            return self.nodes[wrapper.owner].status
        return NodeStatus.NEW if wrapper.is_left else NodeStatus.DELETED

    def side_moved_state(self, handle: int) -> MoveState:
        """Move direction as seen from the wrapper's own side."""
        wrapper = self.wrappers[handle]
        if wrapper.owner is None:
            return MoveState.NONE
        moved = self.nodes[wrapper.owner].moved_state
        return moved if wrapper.is_left else moved.mirrored()

    def projected_names(self, is_left: bool) -> List[Tuple[int, str, bool]]:
        """Flatten one side's projected tree as (depth, name, is_phantom) rows."""
        if self.root is None:
            return []
        root_node = self.nodes[self.root]
        start = root_node.left if is_left else root_node.right
        rows = []
        stack = [(start, 0)]
        while stack:
            handle, depth = stack.pop()
            wrapper = self.wrappers[handle]
            rows.append((depth, wrapper.name, wrapper.is_phantom))
            stack.extend((child, depth + 1) for child in reversed(wrapper.display_children))
        return rows

    def __len__(self) -> int:
        return len(self.nodes)
