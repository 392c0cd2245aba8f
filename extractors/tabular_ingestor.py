# extractors/tabular_ingestor.py
"""
Normalize a CSV / Excel source into ordered field -> value records
"""
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from utils.exceptions import SourceIngestError

logger = logging.getLogger(__name__)

DELIMITER_CANDIDATES = [',', ';', '\t', '|']
EXCEL_EXTENSIONS = ('.xlsx', '.xlsm', '.xls')
SNIFF_BYTES = 10000


@dataclass
class SourceTable:
    """Ingested source rows; field order follows the first record"""
    records: List[Dict[str, str]] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)

    def preview(self, limit: int = 50) -> List[Dict[str, str]]:
        return self.records[:limit]


def sniff_delimiter(first_line: str) -> str:
    """Pick the candidate delimiter that occurs most often in the header line"""
    best, best_count = ',', -1
    for candidate in DELIMITER_CANDIDATES:
        count = first_line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def _clean(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and pd.isna(value):
        return ''
    return str(value).strip()


def _to_table(df: pd.DataFrame) -> SourceTable:
    df.columns = [str(c).strip() for c in df.columns]
    records = [
        {column: _clean(value) for column, value in row.items()}
        for row in df.to_dict(orient='records')
    ]
    fields = list(records[0].keys()) if records else []
    return SourceTable(records=records, fields=fields)


def _read_excel(data: bytes, filename: str) -> pd.DataFrame:
    try:
        return pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=str)
    except ImportError as e:
        raise SourceIngestError(f"Cannot read {filename}: {str(e)}") from e
    except (ValueError, OSError) as e:
        raise SourceIngestError(f"Unreadable spreadsheet {filename}: {str(e)}") from e


def _read_delimited(data: bytes, filename: str) -> pd.DataFrame:
    text = data.decode('utf-8-sig', errors='replace')
    head = text[:SNIFF_BYTES].splitlines()
    delimiter = sniff_delimiter(head[0] if head else ',')
    logger.info(f"Detected delimiter {delimiter!r} for {filename}")

    try:
        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            engine='python',
            on_bad_lines='skip'  # Handle malformed rows
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (pd.errors.ParserError, ValueError) as e:
        raise SourceIngestError(f"Unreadable delimited file {filename}: {str(e)}") from e


def read_source(data: bytes, filename: str) -> SourceTable:
    """
    Load a tabular source

    Args:
        data: Raw file bytes
        filename: Original file name, used only to pick Excel vs delimited text

    Returns:
        SourceTable with string values (missing cells as '')
    """
    lower = (filename or '').lower()
    if lower.endswith(EXCEL_EXTENSIONS):
        df = _read_excel(data, filename)
    else:
        df = _read_delimited(data, filename)

    table = _to_table(df)
    logger.info(f"Loaded {len(table.records)} rows x {len(table.fields)} fields from {filename}")
    return table
