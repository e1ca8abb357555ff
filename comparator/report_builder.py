"""
Report Builder Module
Generates comparison reports using Jinja2 templates.
"""

from jinja2 import Environment, FileSystemLoader
from typing import Dict, Optional, Union
from collections import Counter
from pathlib import Path
import json
import logging

from core.comparison_graph import MoveState

from .comparison_result import ComparisonResult

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / 'templates'


def format_path(path) -> str:
    return '/' + '/'.join(str(i) for i in path)


class ReportBuilder:
    def __init__(self, template_dir: Optional[Path] = None):
        self.env = Environment(loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
                               keep_trailing_newline=True)
        self.template = self.env.get_template('report.txt.j2')
        self.data: Dict = {}

    def collect_metrics(self, result: ComparisonResult) -> Dict:
        """Collect and organize comparison metrics."""
        status_counts = Counter(node.status.value for node in result.differences)
        moved_counts = Counter(node.moved_state.value for node in result.graph.walk()
                               if node.moved_state is not MoveState.NONE)
        self.data = {
            'left_file': str(result.left_file) if result.left_file else None,
            'right_file': str(result.right_file) if result.right_file else None,
            'comparison_state': result.comparison_state.value,
            'difference_count': len(result.differences),
            'status_counts': dict(sorted(status_counts.items())),
            'moved_counts': dict(sorted(moved_counts.items())),
            'differences': [
                {
                    'name': node.name,
                    'path': format_path(node.key.path),
                    'status': node.status.value,
                    'moved_state': node.moved_state.value,
                }
                for node in result.differences
            ],
        }
        return self.data

    def generate_text_report(self, result: ComparisonResult,
                             output_path: Optional[Union[str, Path]] = None) -> str:
        """Render the text report, optionally writing it to ``output_path``."""
        report = self.template.render(**self.collect_metrics(result))
        self._write(report, output_path)
        return report

    def generate_json_report(self, result: ComparisonResult,
                             output_path: Optional[Union[str, Path]] = None) -> str:
        """Generate JSON report with raw comparison data."""
        data = self.collect_metrics(result)
        data['nodes'] = result.to_dict()['nodes']
        report = json.dumps(data, indent=2)
        self._write(report, output_path)
        return report

    def generate(self, result: ComparisonResult, report_format: str = 'text',
                 output_path: Optional[Union[str, Path]] = None) -> str:
        if report_format == 'json':
            return self.generate_json_report(result, output_path)
        return self.generate_text_report(result, output_path)

    def _write(self, report: str, output_path: Optional[Union[str, Path]]) -> None:
        if output_path is None:
            return
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report, encoding='utf-8')
        logger.info(f"Report written to {path}")
