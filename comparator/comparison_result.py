"""
Comparison Result Module
Outcome of one comparison run: the graph, its differences and the inputs.
"""

from typing import Dict, Optional
from dataclasses import dataclass
from pathlib import Path

from core.comparison_graph import ComparisonGraph, ComparisonNode, NodeStatus
from core.difference_index import DifferenceIndex


@dataclass
class ComparisonResult:
    graph: ComparisonGraph
    differences: DifferenceIndex
    left_file: Optional[Path] = None
    right_file: Optional[Path] = None

    @property
    def root(self) -> ComparisonNode:
        return self.graph.node(self.graph.root)

    @property
    def comparison_state(self) -> NodeStatus:
        """UNCHANGED iff there is no difference at all."""
        return NodeStatus.UPDATED if self.differences else NodeStatus.UNCHANGED

    def to_dict(self) -> Dict:
        """Convert the comparison result to a plain dictionary."""
        nodes = []
        for node in self.graph.walk():
            left = self.graph.left_of(node)
            right = self.graph.right_of(node)
            nodes.append({
                'name': node.name,
                'path': list(node.key.path),
                'status': node.status.value,
                'moved_state': node.moved_state.value,
                'left': None if left.is_phantom else left.name,
                'right': None if right.is_phantom else right.name,
                'has_different_descendant': node.has_different_descendant,
            })
        return {
            'left_file': str(self.left_file) if self.left_file else None,
            'right_file': str(self.right_file) if self.right_file else None,
            'comparison_state': self.comparison_state.value,
            'difference_count': len(self.differences),
            'nodes': nodes,
        }
