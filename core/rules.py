"""
Rules Module
Per-node-name comparison policies and the registry that resolves them.
"""

from typing import Dict, Iterable, List, Optional, Set
from dataclasses import dataclass, field
from enum import Enum
import copy
import logging
import re

logger = logging.getLogger(__name__)

_NAMED_GROUP = re.compile(r'(?<!\\)\(\?<(?=[A-Za-z_])')
_WHITESPACE_RUN = re.compile(r'\s+')


class ComparisonMode(Enum):
    """How two same-named nodes are decided to be the same logical node."""
    STRICT_ANY = 'StrictAny'
    SAME_NAME = 'SameNameSame'
    ON_IDENTITY = 'OnIdentityAttributes'

    @classmethod
    def from_token(cls, token: Optional[str], default: 'ComparisonMode') -> 'ComparisonMode':
        """Parse a mode token, falling back to ``default`` for anything unknown."""
        return _MODE_TOKENS.get((token or '').strip(), default)


_MODE_TOKENS = {
    'AnyDiff': ComparisonMode.STRICT_ANY,
    'StrictAny': ComparisonMode.STRICT_ANY,
    'SameNodeName': ComparisonMode.SAME_NAME,
    'SameNameSame': ComparisonMode.SAME_NAME,
    'OnAttributes': ComparisonMode.ON_IDENTITY,
    'OnIdentityAttributes': ComparisonMode.ON_IDENTITY,
}


class TrimMode(Enum):
    NONE = 'None'
    LEFT = 'TrimLeft'
    RIGHT = 'TrimRight'
    BOTH = 'Trim'

    @classmethod
    def from_token(cls, token: Optional[str]) -> 'TrimMode':
        token = (token or '').strip()
        for mode in cls:
            if mode.value == token:
                return mode
        return cls.NONE

    def apply(self, value: str) -> str:
        if self is TrimMode.LEFT:
            return value.lstrip()
        if self is TrimMode.RIGHT:
            return value.rstrip()
        if self is TrimMode.BOTH:
            return value.strip()
        return value


def collapse_whitespace(value: str) -> str:
    """Turn newlines and every whitespace run into a single space."""
    return _WHITESPACE_RUN.sub(' ', value.replace('\n', ' '))


def to_python_template(replacement: str, compiled: 're.Pattern') -> str:
    """Translate a rule-file replacement into an ``re.sub`` template.

    Rule files reference groups as ``$1`` or ``${name}`` and escape any
    character with a backslash (``\\$`` is a literal dollar). Multi-digit
    references are read as long as the group exists, so ``$12`` is group 1
    followed by ``2`` when the pattern has fewer than 12 groups.

    Raises ``re.error`` for a reference to a missing group, a dangling
    ``$`` or a trailing backslash.
    """
    parts: List[str] = []
    position = 0
    length = len(replacement)
    while position < length:
        char = replacement[position]
        if char == '\\':
            position += 1
            if position == length:
                raise re.error('trailing backslash in replacement', replacement, position - 1)
            literal = replacement[position]
            parts.append('\\\\' if literal == '\\' else literal)
            position += 1
        elif char == '$':
            start = position
            position += 1
            if position == length:
                raise re.error('dangling $ in replacement', replacement, start)
            if replacement[position] == '{':
                end = replacement.find('}', position)
                if end == -1:
                    raise re.error('unterminated group name in replacement', replacement, start)
                name = replacement[position + 1:end]
                if name not in compiled.groupindex:
                    raise re.error(f"unknown group name {name!r} in replacement", replacement, start)
                parts.append(f"\\g<{name}>")
                position = end + 1
            elif replacement[position].isdigit():
                number = int(replacement[position])
                position += 1
                while position < length and replacement[position].isdigit():
                    extended = number * 10 + int(replacement[position])
                    if extended > compiled.groups:
                        break
                    number = extended
                    position += 1
                if number > compiled.groups:
                    raise re.error(f"invalid group reference {number} in replacement", replacement, start)
                parts.append(f"\\g<{number}>")
            else:
                raise re.error('illegal group reference in replacement', replacement, start)
        else:
            parts.append(char)
            position += 1
    return ''.join(parts)


@dataclass
class RegexRewrite:
    """One ``replaceFrom`` -> ``replaceTo`` substitution, applied to every match."""
    pattern: str
    replacement: str
    compiled: 're.Pattern' = field(repr=False, compare=False)
    template: str = field(repr=False, compare=False)

    @classmethod
    def compile(cls, pattern: str, replacement: str) -> 'RegexRewrite':
        """Compile the pattern and its replacement.

        Both are checked here, so applying a rewrite never fails. Raises
        ``re.error`` when either one is invalid. ``(?<name>...)`` groups are
        accepted as named groups.
        """
        compiled = re.compile(_NAMED_GROUP.sub('(?P<', pattern))
        return cls(pattern=pattern, replacement=replacement, compiled=compiled,
                   template=to_python_template(replacement, compiled))

    def apply(self, value: str) -> str:
        return self.compiled.sub(self.template, value)


def apply_rewrites(rewrites: List[RegexRewrite], value: str) -> str:
    for rewrite in rewrites:
        value = rewrite.apply(value)
    return value


# Properties copied from a base rule when the child did not set them.
INHERITABLE = (
    'mode',
    'order_significant',
    'compare_text',
    'identity_attributes',
    'excluded_attributes',
    'description_attributes',
    'description_trim',
    'collapse_description_newlines',
    'description_rewrites',
    'text_trim',
    'collapse_text_newlines',
    'text_rewrites',
)


@dataclass
class Rule:
    """Comparison policy for one node type."""
    rule_id: Optional[str] = None
    mode: ComparisonMode = ComparisonMode.STRICT_ANY
    order_significant: bool = True
    compare_text: bool = True
    identity_attributes: Set[str] = field(default_factory=set)
    excluded_attributes: Set[str] = field(default_factory=set)
    description_attributes: Set[str] = field(default_factory=set)
    description_trim: TrimMode = TrimMode.NONE
    collapse_description_newlines: bool = True
    description_rewrites: List[RegexRewrite] = field(default_factory=list)
    text_trim: TrimMode = TrimMode.NONE
    collapse_text_newlines: bool = False
    text_rewrites: List[RegexRewrite] = field(default_factory=list)
    explicit: Set[str] = field(default_factory=set, repr=False)

    def configure(self, **values) -> 'Rule':
        """Set properties and remember them as explicitly chosen for this rule."""
        for name, value in values.items():
            if name not in INHERITABLE:
                raise AttributeError(f"Unknown rule property: {name}")
            setattr(self, name, value)
            self.explicit.add(name)
        return self

    def add_identity_attribute(self, name: str) -> None:
        self.identity_attributes.add(name)
        self.mode = ComparisonMode.ON_IDENTITY
        self.explicit.update(('identity_attributes', 'mode'))

    def add_excluded_attribute(self, name: str) -> None:
        self.excluded_attributes.add(name)
        self.explicit.add('excluded_attributes')

    def add_description_attribute(self, name: str) -> None:
        self.description_attributes.add(name)
        self.explicit.add('description_attributes')

    def add_description_rewrite(self, rewrite: RegexRewrite) -> None:
        self.description_rewrites.append(rewrite)
        self.explicit.add('description_rewrites')

    def add_text_rewrite(self, rewrite: RegexRewrite) -> None:
        self.text_rewrites.append(rewrite)
        self.explicit.add('text_rewrites')

    def is_description_attribute(self, name: str) -> bool:
        return name in self.description_attributes

    def inherit_from(self, base: 'Rule') -> None:
        """Copy every property of ``base`` this rule has not set itself."""
        for name in INHERITABLE:
            if name not in self.explicit:
                setattr(self, name, copy.copy(getattr(base, name)))

    def __str__(self) -> str:
        return self.rule_id or ''


class RuleSet:
    """Registry of rules by node name and by rule id, plus the default rule.

    Every node name resolves to exactly one rule: its own, or the default.
    """

    def __init__(self, default_rule: Optional[Rule] = None):
        self.default_rule = default_rule or Rule()
        self.rules_by_name: Dict[str, Rule] = {}
        self.rules_by_id: Dict[str, Rule] = {}

    def resolve(self, node_name: str) -> Rule:
        return self.rules_by_name.get(node_name, self.default_rule)

    def create_rule(self, rule_id: Optional[str] = None, node_names: Iterable[str] = ()) -> Rule:
        """Create a rule, registering it under its id and the given node names."""
        rule = Rule(rule_id=rule_id)
        if rule_id is not None:
            self.rules_by_id[rule_id] = rule
        self.bind(rule, node_names)
        return rule

    def bind(self, rule: Rule, node_names: Iterable[str]) -> None:
        for name in node_names:
            self.rules_by_name[name] = rule

    def has_rule(self, rule_id: str) -> bool:
        return rule_id in self.rules_by_id

    def rule_by_id(self, rule_id: str) -> Optional[Rule]:
        return self.rules_by_id.get(rule_id)

    def extend(self, rule: Rule, base_id: Optional[str] = None) -> bool:
        """Make ``rule`` inherit from the default rule or from the rule ``base_id``.

        Returns False (and leaves the rule untouched) when ``base_id`` is unknown.
        """
        if base_id is None:
            base = self.default_rule
        else:
            base = self.rules_by_id.get(base_id)
            if base is None:
                logger.debug(f"Rule {rule} extends unknown rule {base_id!r}, skipping")
                return False
        if base is rule:
            return False
        rule.inherit_from(base)
        return True
