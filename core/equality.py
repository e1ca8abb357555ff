"""
Equality Engine Module
Applies a comparison rule to two nodes and decides whether they are the same
logical node, and if so whether their content changed.
"""

from typing import Dict, Iterable, List, Optional
from enum import Enum
import logging

from .rules import (
    ComparisonMode,
    RegexRewrite,
    Rule,
    TrimMode,
    apply_rewrites,
    collapse_whitespace,
)
from .xml_node import Node

logger = logging.getLogger(__name__)


class ContentStatus(Enum):
    IDENTICAL = 'identical'
    DIFFERENT = 'different'
    UPDATED = 'updated'


def _normalize(value: str, trim: TrimMode, collapse: bool, rewrites: List[RegexRewrite]) -> str:
    value = trim.apply(value)
    if collapse:
        value = collapse_whitespace(value)
    return apply_rewrites(rewrites, value)


def normalized_equal(left: str, right: str, trim: TrimMode, collapse: bool,
                     rewrites: List[RegexRewrite]) -> bool:
    """Compare two values after trimming, whitespace collapsing and regex rewrites.

    When collapsing is off and the values differ, they get one more chance
    with collapsing on.
    """
    if _normalize(left, trim, collapse, rewrites) == _normalize(right, trim, collapse, rewrites):
        return True
    if not collapse:
        return _normalize(left, trim, True, rewrites) == _normalize(right, trim, True, rewrites)
    return False


class EqualityEngine:
    """Tri-state node comparison driven by a Rule."""

    def status(self, rule: Rule, left: Node, right: Node) -> ContentStatus:
        """Return IDENTICAL, DIFFERENT (not the same logical node) or UPDATED."""
        if left.name != right.name:
            return ContentStatus.DIFFERENT
        left_attrs = self.filtered_attributes(rule, left)
        right_attrs = self.filtered_attributes(rule, right)

        if rule.mode is ComparisonMode.ON_IDENTITY:
            return self._status_on_identity(rule, left, right, left_attrs, right_attrs)

        if rule.mode is ComparisonMode.SAME_NAME:
            if not self._attributes_match(rule, left_attrs, right_attrs):
                return ContentStatus.UPDATED
            if rule.compare_text and not self.texts_equal(rule, left.text, right.text):
                return ContentStatus.UPDATED
            return ContentStatus.IDENTICAL

        if not self._attributes_match(rule, left_attrs, right_attrs):
            return ContentStatus.DIFFERENT
        if rule.compare_text and not self.texts_equal(rule, left.text, right.text):
            return ContentStatus.UPDATED
        return ContentStatus.IDENTICAL

    def _status_on_identity(self, rule: Rule, left: Node, right: Node,
                            left_attrs: Dict[str, str], right_attrs: Dict[str, str]) -> ContentStatus:
        for name in sorted(rule.identity_attributes):
            in_left = name in left_attrs
            in_right = name in right_attrs
            if in_left != in_right:
                return ContentStatus.DIFFERENT
            if not in_left:
                continue
            if not self._attribute_values_equal(rule, name, left_attrs[name], right_attrs[name]):
                return ContentStatus.DIFFERENT

        if not self._attributes_match(rule, left_attrs, right_attrs, skip=rule.identity_attributes):
            return ContentStatus.UPDATED
        if rule.compare_text and not self.texts_equal(rule, left.text, right.text):
            return ContentStatus.UPDATED
        return ContentStatus.IDENTICAL

    def filtered_attributes(self, rule: Rule, node: Node) -> Dict[str, str]:
        """Node attributes minus the ones the rule excludes."""
        return {k: v for k, v in node.attributes.items() if k not in rule.excluded_attributes}

    def _attributes_match(self, rule: Rule, left_attrs: Dict[str, str], right_attrs: Dict[str, str],
                          skip: Iterable[str] = ()) -> bool:
        if len(left_attrs) != len(right_attrs):
            return False
        skip = set(skip)
        for name, value in left_attrs.items():
            if name in skip:
                continue
            if name not in right_attrs:
                return False
            if not self._attribute_values_equal(rule, name, value, right_attrs[name]):
                return False
        return True

    def _attribute_values_equal(self, rule: Rule, name: str, left: str, right: str) -> bool:
        if rule.is_description_attribute(name):
            return normalized_equal(left, right, rule.description_trim,
                                    rule.collapse_description_newlines, rule.description_rewrites)
        return left == right

    def texts_equal(self, rule: Rule, left: Optional[str], right: Optional[str]) -> bool:
        """Compare text payloads with the rule's text normalization."""
        if left is None or right is None:
            return left is None and right is None
        return normalized_equal(left, right, rule.text_trim,
                                rule.collapse_text_newlines, rule.text_rewrites)

    def structurally_equal(self, rule: Rule, left: Node, right: Node) -> bool:
        """Strict name, text and attribute equality; used for document roots."""
        if left is None or right is None:
            return left is None and right is None
        if left.name != right.name:
            return False
        if (left.text is None) != (right.text is None):
            return False
        if left.text is not None and left.text.strip() != right.text.strip():
            return False
        left_attrs = self.filtered_attributes(rule, left)
        right_attrs = self.filtered_attributes(rule, right)
        if left_attrs.keys() != right_attrs.keys():
            return False
        for name, value in left_attrs.items():
            other = right_attrs[name]
            if value == other:
                continue
            if not rule.is_description_attribute(name):
                return False
            if not normalized_equal(value, other, rule.description_trim, True, []):
                return False
        return True
