"""
Errors Module
Exception hierarchy and the error sink used while loading comparison rules.
"""

from typing import List
import logging

logger = logging.getLogger(__name__)


class XMLDiffError(Exception):
    """Base error for all xml diff operations."""


class RuleConfigError(XMLDiffError):
    """A malformed rule definition or an invalid regex pattern."""


class DocumentLoadError(XMLDiffError):
    """A document could not be read or has no root element."""


class RulesErrorListener:
    """Collects non-fatal problems found while loading a rules file.

    Loading never stops on these: the offending definition is dropped and
    the rest of the rules are kept.
    """

    def __init__(self):
        self.warnings: List[RuleConfigError] = []
        self.errors: List[RuleConfigError] = []

    def warning(self, error: RuleConfigError) -> None:
        logger.warning(f"Rules warning: {error}")
        self.warnings.append(error)

    def error(self, error: RuleConfigError) -> None:
        logger.error(f"Rules error: {error}")
        self.errors.append(error)

    def fatal(self, error: RuleConfigError) -> None:
        logger.error(f"Fatal rules error: {error}")
        self.errors.append(error)

    def has_errors(self) -> bool:
        return bool(self.errors)
