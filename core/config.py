"""
Configuration Module
Settings for a comparison session and logging setup.
"""

from typing import Any, Dict, Optional, Union
from dataclasses import dataclass
from pathlib import Path
import json
import logging

from .errors import RulesErrorListener
from .rules import RuleSet
from .rules_parser import RulesParser

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
REPORT_FORMATS = ('text', 'json')


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """Install the default handler if none exists and set the root level."""
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


@dataclass
class DiffConfiguration:
    """Settings for a comparison session.

    Attributes:
        rules_file: Rule-description XML file; None means the default rules.
        log_level: Root log level applied by ``configure_logging``.
        report_format: ``text`` or ``json``, used by ``StructureDiff.write_report``.
    """
    rules_file: Optional[Path] = None
    log_level: str = 'INFO'
    report_format: str = 'text'

    def __post_init__(self):
        if self.rules_file is not None:
            self.rules_file = Path(self.rules_file)
        self.log_level = str(self.log_level).upper()
        if self.report_format not in REPORT_FORMATS:
            raise ValueError(f"Unsupported report format: {self.report_format}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DiffConfiguration':
        known = {k: data[k] for k in ('rules_file', 'log_level', 'report_format') if k in data}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        return cls(**known)

    @classmethod
    def from_json_file(cls, config_path: Union[str, Path]) -> 'DiffConfiguration':
        """Read settings from a JSON file; a relative rules_file is resolved against it."""
        config_path = Path(config_path)
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        config = cls.from_dict(data)
        if config.rules_file is not None and not config.rules_file.is_absolute():
            config.rules_file = config_path.parent / config.rules_file
        return config

    def configure_logging(self) -> None:
        setup_logging(self.log_level)

    def load_rules(self, error_listener: Optional[RulesErrorListener] = None) -> RuleSet:
        if self.rules_file is None:
            logger.debug("No rules file configured, using default rules")
            return RuleSet()
        return RulesParser(error_listener).parse_file(self.rules_file)
