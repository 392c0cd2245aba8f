# utils/validators.py
"""
Input validation and mapping quality checks
"""
import re
from typing import Dict, List, Optional, Sequence
import logging

from utils.color_scale import LOW_CONFIDENCE_THRESHOLD
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ('xlsx', 'html', 'both')
DEFAULT_PROJECT_NAME = 'mapping-output'
SCHEMA_EXTENSIONS = ('.xsd',)
SOURCE_EXTENSIONS = ('.csv', '.txt', '.xlsx', '.xlsm', '.xls')


def upload_types(extensions: Sequence[str]) -> List[str]:
    """File uploader type list ('xlsx') for a tuple of extensions ('.xlsx')"""
    return [ext.lstrip('.') for ext in extensions]


class DataValidator:
    """Validate run inputs and flag weak mapping predictions"""

    @staticmethod
    def validate_output_format(output_format: Optional[str]) -> str:
        fmt = (output_format or 'both').strip().lower()
        if fmt not in OUTPUT_FORMATS:
            raise ValidationError(f"output_format must be {'|'.join(OUTPUT_FORMATS)}, got {output_format!r}")
        return fmt

    @staticmethod
    def validate_inputs(schema_files: Sequence, source_file) -> None:
        """Require at least one XSD and exactly one source file"""
        if not schema_files:
            raise ValidationError('At least one XSD schema file is required')
        if source_file is None:
            raise ValidationError('A source file is required')

        for name, _ in schema_files:
            if not str(name).lower().endswith(SCHEMA_EXTENSIONS):
                logger.warning(f"Schema file {name} does not have an .xsd extension")

        source_name = source_file[0]
        if not str(source_name).lower().endswith(SOURCE_EXTENSIONS):
            logger.warning(f"Source file {source_name} is not CSV/XLSX/XLS, reading as delimited text")

    @staticmethod
    def sanitize_project_name(name: Optional[str]) -> str:
        """Filesystem-safe base name for produced artifacts"""
        cleaned = re.sub(r'[^A-Za-z0-9._ -]+', '_', (name or '').strip())
        cleaned = cleaned.strip(' ._')
        return cleaned or DEFAULT_PROJECT_NAME

    @staticmethod
    def validate_mapping_predictions(rows) -> List[Dict]:
        """
        Flag low-confidence and unmapped rows

        Returns:
            List of validation issues
        """
        issues = []

        for row in rows:
            if not row.suggested_target_path:
                issues.append({
                    'source_order': row.source_order,
                    'issue_type': 'unmapped',
                    'message': f"No target path suggested for {row.source_field}",
                    'severity': 'error'
                })
            elif row.match_score < LOW_CONFIDENCE_THRESHOLD:
                issues.append({
                    'source_order': row.source_order,
                    'issue_type': 'low_confidence',
                    'message': f"Low confidence ({row.match_score:.2f}) for "
                               f"{row.source_field} → {row.suggested_target_path}",
                    'severity': 'warning'
                })

            if row.suggested_target_path and not row.target_schema:
                issues.append({
                    'source_order': row.source_order,
                    'issue_type': 'unknown_path',
                    'message': f"Suggested path {row.suggested_target_path} is not in the target dictionary",
                    'severity': 'warning'
                })

        return issues
