"""
Difference Index Module
Flat, ordered list of the compared positions that are not unchanged, with a
cursor for stepping through them.
"""

from typing import Iterator, List, Optional

from .comparison_graph import ComparisonNode


class DifferenceIndex:
    """Differences in pre-order with a clamped, non-wrapping cursor.

    The cursor starts before the first entry (-1).
    """

    def __init__(self):
        self._differences: List[ComparisonNode] = []
        self.cursor = -1

    def append(self, node: ComparisonNode) -> None:
        self._differences.append(node)

    def next(self) -> Optional[ComparisonNode]:
        """Advance by one and return the entry under the cursor."""
        if not self._differences:
            return None
        self.cursor = min(self.cursor + 1, len(self._differences) - 1)
        return self._differences[self.cursor]

    def previous(self) -> Optional[ComparisonNode]:
        """Step back by one and return the entry under the cursor."""
        if not self._differences:
            return None
        self.cursor = max(self.cursor - 1, 0)
        return self._differences[self.cursor]

    def has_next(self) -> bool:
        return self.cursor < len(self._differences) - 1

    def has_previous(self) -> bool:
        return self.cursor > 0

    def current(self) -> Optional[ComparisonNode]:
        if 0 <= self.cursor < len(self._differences):
            return self._differences[self.cursor]
        return None

    def reset(self) -> None:
        self.cursor = -1

    def __len__(self) -> int:
        return len(self._differences)

    def __bool__(self) -> bool:
        return bool(self._differences)

    def __iter__(self) -> Iterator[ComparisonNode]:
        return iter(self._differences)

    def __getitem__(self, position: int) -> ComparisonNode:
        return self._differences[position]
