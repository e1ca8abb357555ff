"""
Rules Parser Module
Builds a RuleSet from a rule-description XML document.

Problems in the document never abort loading: they are reported to a
RulesErrorListener and the offending definition is dropped.
"""

from bs4 import BeautifulSoup, Tag
from typing import Optional, Union
from pathlib import Path
import logging
import re

from .errors import RuleConfigError, RulesErrorListener
from .rules import ComparisonMode, RegexRewrite, Rule, RuleSet, TrimMode
from utils.file_utils import read_file_content

logger = logging.getLogger(__name__)

# Spellings accepted for the same setting; the first one is the preferred one.
COMPARE_TEXT = ('compareText', 'compareCDATA')
REMOVE_TEXT_NEWLINES = ('removeTextNewlines', 'removeCDATANewLines')
KEEP_TEXT_NEWLINES = ('keepTextNewlines', 'keepCDATANewLines')
EXCLUDE_TEXT = ('excludeText', 'excludeCDATA')
TEXT_ELEMENTS = ('text', 'CDATA')


def _flag(value: str) -> bool:
    return value.strip().lower() == 'true'


def _lookup(tag: Tag, names) -> Optional[str]:
    for name in names:
        if tag.has_attr(name):
            return tag[name]
    return None


class RulesParser:
    """Parser for ``<nodeRules>`` documents."""

    def __init__(self, error_listener: Optional[RulesErrorListener] = None):
        self.error_listener = error_listener or RulesErrorListener()

    def parse_file(self, file_path: Union[str, Path]) -> RuleSet:
        logger.info(f"Loading comparison rules from {file_path}")
        try:
            content = read_file_content(Path(file_path))
        except OSError as e:
            self.error_listener.fatal(RuleConfigError(f"Cannot read rules file {file_path}: {e}"))
            return RuleSet()
        return self.parse(content)

    def parse(self, content: Union[str, bytes]) -> RuleSet:
        rules = RuleSet()
        soup = BeautifulSoup(content, 'xml')
        root = soup.find('nodeRules')
        if root is None:
            self.error_listener.fatal(RuleConfigError('Missing <nodeRules> root element'))
            return rules

        default_mode = self._parse_root(root, rules.default_rule)
        for child in root.find_all(True, recursive=False):
            if child.name == 'defaultRule':
                self._parse_default_rule(child, rules.default_rule)
                default_mode = rules.default_rule.mode
            elif child.name == 'rule':
                self._parse_rule(child, rules, default_mode)
            else:
                self.error_listener.warning(RuleConfigError(f"Unknown element <{child.name}> in rules"))
        logger.info(f"Loaded {len(rules.rules_by_name)} node rules, {len(rules.rules_by_id)} named rules")
        return rules

    def _parse_root(self, root: Tag, default_rule: Rule) -> ComparisonMode:
        mode = ComparisonMode.from_token(root.get('defaultComparisonMode'), ComparisonMode.STRICT_ANY)
        default_rule.configure(mode=mode)
        self._parse_common(root, default_rule)
        return mode

    def _parse_default_rule(self, tag: Tag, default_rule: Rule) -> None:
        if tag.has_attr('comparisonMode'):
            default_rule.configure(mode=ComparisonMode.from_token(tag['comparisonMode'], default_rule.mode))
        self._parse_common(tag, default_rule)
        self._parse_rule_body(tag, default_rule)

    def _parse_common(self, tag: Tag, rule: Rule) -> None:
        if tag.has_attr('orderIsSignificant'):
            rule.configure(order_significant=_flag(tag['orderIsSignificant']))
        compare_text = _lookup(tag, COMPARE_TEXT)
        if compare_text is not None:
            rule.configure(compare_text=_flag(compare_text))
        remove_newlines = _lookup(tag, REMOVE_TEXT_NEWLINES)
        if remove_newlines is not None:
            rule.configure(collapse_text_newlines=_flag(remove_newlines))
        keep_newlines = _lookup(tag, KEEP_TEXT_NEWLINES)
        if keep_newlines is not None:
            rule.configure(collapse_text_newlines=not _flag(keep_newlines))

    def _parse_rule(self, tag: Tag, rules: RuleSet, default_mode: ComparisonMode) -> None:
        rule_id = tag.get('ruleName')
        rule_id = rule_id.strip() if rule_id else None
        node_names = set()
        if tag.get('nodeName'):
            node_names.add(tag['nodeName'].strip())
        for applies_on in tag.find_all('appliesOn', recursive=False):
            for name_tag in applies_on.find_all('nodeName', recursive=False):
                if name_tag.get('name'):
                    node_names.add(name_tag['name'].strip())
        if rule_id is None and not node_names:
            self.error_listener.warning(RuleConfigError('Rule has neither ruleName nor nodeName, ignored'))
            return

        rule = rules.create_rule(rule_id, sorted(node_names))
        rule.mode = default_mode
        if tag.has_attr('comparisonMode'):
            rule.configure(mode=ComparisonMode.from_token(tag['comparisonMode'], default_mode))
        self._parse_common(tag, rule)
        self._parse_rule_body(tag, rule)

        # Inherited values only fill what the rule did not set itself
        for extends in tag.find_all(['extendsDefaultRule', 'extendsRule'], recursive=False):
            if extends.name == 'extendsDefaultRule':
                rules.extend(rule)
            else:
                base_id = extends.get('ruleName') or extends.get('name')
                if base_id:
                    rules.extend(rule, base_id.strip())
        logger.debug(f"Rule {rule_id or '-'} applies on {sorted(node_names)}")

    def _parse_rule_body(self, tag: Tag, rule: Rule) -> None:
        for child in tag.find_all(True, recursive=False):
            if child.name == 'identification':
                for name in self._attribute_names(child):
                    rule.add_identity_attribute(name)
            elif child.name == 'excluded':
                for name in self._attribute_names(child):
                    rule.add_excluded_attribute(name)
            elif child.name == 'attribute':
                if child.get('name'):
                    rule.add_excluded_attribute(child['name'].strip())
            elif child.name == 'descriptions':
                self._parse_descriptions(child, rule)
            elif child.name in TEXT_ELEMENTS:
                self._parse_text(child, rule)

    def _attribute_names(self, tag: Tag):
        return [a['name'].strip() for a in tag.find_all('attribute', recursive=False) if a.get('name')]

    def _parse_descriptions(self, tag: Tag, rule: Rule) -> None:
        if tag.has_attr('removeNewLines'):
            rule.configure(collapse_description_newlines=_flag(tag['removeNewLines']))
        if tag.has_attr('trimType'):
            rule.configure(description_trim=TrimMode.from_token(tag['trimType']))
        for description in tag.find_all('description', recursive=False):
            if description.get('name'):
                rule.add_description_attribute(description['name'].strip())
        for regex_tag in tag.find_all('applyRegex', recursive=False):
            rewrite = self._parse_regex(regex_tag, rule)
            if rewrite is not None:
                rule.add_description_rewrite(rewrite)

    def _parse_text(self, tag: Tag, rule: Rule) -> None:
        if tag.has_attr('removeNewLines'):
            rule.configure(collapse_text_newlines=_flag(tag['removeNewLines']))
        if tag.has_attr('trimType'):
            rule.configure(text_trim=TrimMode.from_token(tag['trimType']))
        exclude = _lookup(tag, EXCLUDE_TEXT)
        if exclude is not None:
            rule.configure(compare_text=not _flag(exclude))
        for regex_tag in tag.find_all('applyRegex', recursive=False):
            rewrite = self._parse_regex(regex_tag, rule)
            if rewrite is not None:
                rule.add_text_rewrite(rewrite)

    def _parse_regex(self, tag: Tag, rule: Rule) -> Optional[RegexRewrite]:
        pattern = tag.get('replaceFrom')
        replacement = tag.get('replaceTo')
        if pattern is None or replacement is None:
            self.error_listener.warning(
                RuleConfigError(f"applyRegex in rule {rule.rule_id or '-'} needs replaceFrom and replaceTo"))
            return None
        try:
            return RegexRewrite.compile(pattern, replacement)
        except re.error as e:
            self.error_listener.error(
                RuleConfigError(f"Invalid regex {pattern!r} in rule {rule.rule_id or '-'}: {e}"))
            return None
