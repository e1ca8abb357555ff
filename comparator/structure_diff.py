"""
Structure Diff Module
Runs structural comparisons of XML documents and keeps the last result.
"""

from typing import Dict, List, Optional, Union
from pathlib import Path
import logging

from core.aligner import Aligner
from core.comparison_graph import ComparisonNode, MoveState
from core.config import DiffConfiguration
from core.errors import RulesErrorListener, XMLDiffError
from core.rules import RuleSet
from core.xml_node import Node
from core.xml_parser import XMLParser
from utils.file_utils import normalize_path

from .comparison_result import ComparisonResult
from .report_builder import ReportBuilder

logger = logging.getLogger(__name__)


class StructureDiff:
    def __init__(self, rules: Optional[RuleSet] = None, config: Optional[DiffConfiguration] = None):
        self.config = config or DiffConfiguration()
        self.error_listener = RulesErrorListener()
        self.rules = rules if rules is not None else self.config.load_rules(self.error_listener)
        self.parser = XMLParser()
        self.left_file: Optional[Path] = None
        self.right_file: Optional[Path] = None
        self.left_root: Optional[Node] = None
        self.right_root: Optional[Node] = None
        self.result: Optional[ComparisonResult] = None

    @classmethod
    def from_config_file(cls, config_path: Union[str, Path]) -> 'StructureDiff':
        """Build a comparator from a JSON settings file and apply its log level."""
        config = DiffConfiguration.from_json_file(config_path)
        config.configure_logging()
        return cls(config=config)

    def set_files(self, left_file: Union[str, Path], right_file: Union[str, Path]) -> None:
        self.left_file = normalize_path(left_file)
        self.right_file = normalize_path(right_file)
        self.left_root = None
        self.right_root = None

    def compare_files(self, left_file: Union[str, Path], right_file: Union[str, Path]) -> ComparisonResult:
        """Parse two XML files and compare them."""
        self.set_files(left_file, right_file)
        return self.run_compare()

    def run_compare(self) -> ComparisonResult:
        if self.left_file is None or self.right_file is None:
            raise XMLDiffError('No files to compare, call set_files first')
        try:
            left_root = self.parser.parse_file(self.left_file)
            right_root = self.parser.parse_file(self.right_file)
        except XMLDiffError as e:
            logger.error(f"Error loading documents: {str(e)}", exc_info=True)
            raise
        return self.compare_structures(left_root, right_root)

    def compare_structures(self, left_root: Optional[Node], right_root: Optional[Node]) -> ComparisonResult:
        """Compare two node trees; the result is only published once complete."""
        try:
            logger.info(f"Comparing {getattr(left_root, 'name', None)} with {getattr(right_root, 'name', None)}")
            graph, differences = Aligner(self.rules).align(left_root, right_root)
        except Exception as e:
            logger.error(f"Error during comparison: {str(e)}", exc_info=True)
            raise
        self.left_root = left_root
        self.right_root = right_root
        self.result = ComparisonResult(graph=graph, differences=differences,
                                       left_file=self.left_file, right_file=self.right_file)
        logger.info(f"Comparison finished with {len(differences)} differences")
        return self.result

    def reload(self, rules: Optional[RuleSet] = None) -> ComparisonResult:
        """Rebuild the comparison of the same documents, with new rules if given.

        Without explicit rules, a configured rules file is read again.
        """
        if self.left_root is None and self.right_root is None:
            raise XMLDiffError('Nothing to reload, no comparison has been run')
        if rules is not None:
            self.rules = rules
        elif self.config.rules_file is not None:
            self.error_listener = RulesErrorListener()
            self.rules = self.config.load_rules(self.error_listener)
        return self.compare_structures(self.left_root, self.right_root)

    def find_moved_elements(self) -> List[ComparisonNode]:
        """Compared positions whose sibling index changed between the two documents."""
        if self.result is None:
            return []
        return [node for node in self.result.graph.walk() if node.moved_state is not MoveState.NONE]

    def generate_diff_report(self) -> Dict:
        """Generate detailed report of structural differences."""
        if self.result is None:
            raise XMLDiffError('No comparison has been run')
        return self.result.to_dict()

    def write_report(self, output_path: Optional[Union[str, Path]] = None,
                     report_format: Optional[str] = None) -> str:
        """Render the last result in the configured report format."""
        if self.result is None:
            raise XMLDiffError('No comparison has been run')
        return ReportBuilder().generate(self.result, report_format or self.config.report_format, output_path)
