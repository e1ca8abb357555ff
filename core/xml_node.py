"""
XML Node Module
In-memory ordered, attributed tree that the comparison engine works on.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field


@dataclass(eq=False)
class Node:
    """A materialized XML element.

    Attributes:
        name: Qualified name (``prefix:local`` when the element is prefixed).
        attributes: Attribute name -> value, in document order.
        text: Character data directly under the element, or None.
        children: Child elements in document order.
        index: Position among the parent's children (0 for the root).
        path: Sibling indices from the root down to this node; ``()`` for the root.
    """
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: Optional[str] = None
    children: List['Node'] = field(default_factory=list)
    index: int = 0
    path: Tuple[int, ...] = ()
    parent: Optional['Node'] = field(default=None, repr=False)

    def append(self, child: 'Node') -> 'Node':
        """Attach a child and renumber the subtree below it."""
        child.parent = self
        child.index = len(self.children)
        self.children.append(child)
        stack = [child]
        while stack:
            current = stack.pop()
            current.path = current.parent.path + (current.index,)
            stack.extend(current.children)
        return child

    def __repr__(self) -> str:
        return f"Node({self.name!r}, path={self.path})"


def element(name: str,
            attributes: Optional[Dict[str, str]] = None,
            text: Optional[str] = None,
            children: Optional[List[Node]] = None) -> Node:
    """Build a node and attach the given children."""
    node = Node(name=name, attributes=dict(attributes or {}), text=text)
    for child in children or []:
        node.append(child)
    return node
