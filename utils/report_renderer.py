# utils/report_renderer.py
"""
Render mapping tables to an Excel workbook and styled HTML pages
"""
import html
import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, PatternFill
from openpyxl.utils import get_column_letter

from mapper.schemas import DICTIONARY_COLUMNS, REPORT_COLUMNS
from utils.color_scale import fill_for_score, format_score, is_low_confidence, score_value
from utils.validators import DataValidator

logger = logging.getLogger(__name__)

SCORE_COLUMN = 'MatchScore'
MAX_SHEET_NAME = 31
PREVIEW_ROWS = 50
MIN_COLUMN_WIDTH = 12
MAX_COLUMN_WIDTH = 60

XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
ZIP_MEDIA_TYPE = 'application/zip'


@dataclass
class ReportTable:
    title: str
    filename: str
    frame: pd.DataFrame
    score_styled: bool = False


@dataclass
class RenderedReport:
    spreadsheet: Optional[bytes] = None
    documents: List[Tuple[str, bytes]] = field(default_factory=list)


@dataclass
class ReportArtifact:
    filename: str
    content: bytes
    media_type: str


def cell_text(value: Any) -> str:
    """Display text for a cell; None and NaN become ''"""
    if value is None:
        return ''
    try:
        if pd.isna(value):
            return ''
    except (TypeError, ValueError):
        pass
    return str(value)


def _as_records(rows: Sequence[Any]) -> List[dict]:
    records = []
    for row in rows:
        if hasattr(row, 'to_record'):
            records.append(row.to_record())
        else:
            records.append(dict(row))
    return records


def _frame(rows: Sequence[Any], columns: Optional[List[str]] = None) -> pd.DataFrame:
    records = _as_records(rows)
    if columns is None:
        columns = list(records[0].keys()) if records else []
    return pd.DataFrame(records, columns=columns)


def build_tables(by_source, by_score, dictionary, source_preview) -> List[ReportTable]:
    """The four tables every output carries"""
    return [
        ReportTable('Suggested Mapping (By Source)', 'Suggested_Mapping_By_Source.html',
                    _frame(by_source, REPORT_COLUMNS), score_styled=True),
        ReportTable('Suggested Mapping (By Score)', 'Suggested_Mapping_By_Score.html',
                    _frame(by_score, REPORT_COLUMNS), score_styled=True),
        ReportTable('Target Dictionary', 'Target_Dictionary.html',
                    _frame(dictionary, DICTIONARY_COLUMNS)),
        ReportTable(f'Source Preview (first {PREVIEW_ROWS})', f'Source_Preview_first_{PREVIEW_ROWS}.html',
                    _frame(list(source_preview)[:PREVIEW_ROWS])),
    ]


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

def _column_width(header: Any) -> int:
    return max(MIN_COLUMN_WIDTH, min(MAX_COLUMN_WIDTH, len(str(header)) + 2))


def _style_scores(worksheet, table: ReportTable) -> None:
    columns = list(table.frame.columns)
    if SCORE_COLUMN not in columns:
        return
    col_idx = columns.index(SCORE_COLUMN) + 1
    for row_idx, raw in enumerate(table.frame[SCORE_COLUMN], start=2):
        cell = worksheet.cell(row=row_idx, column=col_idx)
        value = score_value(raw)
        cell.value = format_score(value) if value is not None else ''
        bg = fill_for_score(value) if value is not None else '#FFFFFF'
        cell.fill = PatternFill('solid', fgColor=bg.lstrip('#').upper())
        cell.alignment = Alignment(horizontal='center')


def _sheet_value(value: Any) -> Any:
    """Drop control characters openpyxl refuses to write"""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


def _keep_as_text(worksheet) -> None:
    # openpyxl types any string starting with "=" as a formula
    for row in worksheet.iter_rows():
        for cell in row:
            if cell.data_type == 'f':
                cell.data_type = 's'


def render_spreadsheet(tables: Sequence[ReportTable]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        for table in tables:
            sheet_name = table.title[:MAX_SHEET_NAME]
            frame = table.frame.astype(object).where(pd.notna(table.frame), '').map(_sheet_value)
            frame.columns = [_sheet_value(c) for c in frame.columns]
            frame.to_excel(writer, sheet_name=sheet_name, index=False)

            worksheet = writer.sheets[sheet_name]
            _keep_as_text(worksheet)
            for idx, header in enumerate(frame.columns, start=1):
                worksheet.column_dimensions[get_column_letter(idx)].width = _column_width(header)
            if table.score_styled:
                _style_scores(worksheet, table)

    logger.info(f"Rendered workbook with {len(tables)} sheets")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

BRAND_CSS = """
<style>
:root{ --brand:#006A4D; --brand-50:#E6F2EE; --border:#D6E3DE; --text:#102A2C; --muted:#415B5E; --low-red:#FCE4E4; }
body{font-family:"Segoe UI", Arial, Helvetica, sans-serif; line-height:1.45; color:var(--text); background:#fff; padding:20px;}
.header{display:flex; align-items:center; gap:12px; margin-bottom:14px;}
.logo{width:18px; height:18px; background:var(--brand); border-radius:3px; display:inline-block;}
h1{font-size:20px; margin:0; color:var(--brand);} h2{font-size:16px; color:var(--muted); margin:6px 0 18px;}
.table-wrap{border:1px solid var(--border); border-radius:8px; overflow:hidden; box-shadow:0 1px 2px rgba(0,0,0,0.04);}
table{border-collapse:collapse; width:100%;}
thead th{background:var(--brand-50); color:#0E2D25; text-align:left; padding:10px; border-bottom:1px solid var(--border); font-weight:600; font-size:13px;}
tbody td{padding:8px 10px; border-bottom:1px solid #eef3f2; font-size:13px; vertical-align:top;}
tbody tr:nth-child(even) td{background:#FAFCFB;}
.ms-cell{white-space:nowrap; font-variant-numeric:tabular-nums; text-align:center;}
.ms-low{background:var(--low-red) !important;}
.footer{margin-top:16px; font-size:12px; color:#6a7f81;}
</style>"""


def _esc(value: Any) -> str:
    return html.escape(cell_text(value), quote=True)


def _score_cell(raw: Any) -> str:
    value = score_value(raw)
    if value is None:
        return '<td class="ms-cell" style="background:transparent;"></td>'
    classes = 'ms-cell ms-low' if is_low_confidence(value) else 'ms-cell'
    return f'<td class="{classes}" style="background:{fill_for_score(value)};">{_esc(format_score(value))}</td>'


def render_html_document(table: ReportTable) -> str:
    columns = list(table.frame.columns)
    thead = '<tr>' + ''.join(f'<th>{_esc(c)}</th>' for c in columns) + '</tr>'

    body_rows = []
    for record in table.frame.to_dict(orient='records'):
        cells = []
        for column in columns:
            if table.score_styled and column == SCORE_COLUMN:
                cells.append(_score_cell(record.get(column)))
            else:
                cells.append(f'<td>{_esc(record.get(column))}</td>')
        body_rows.append('<tr>' + ''.join(cells) + '</tr>')
    tbody = ''.join(body_rows)

    title = _esc(table.title)
    return f"""<!DOCTYPE html><html lang="en"><head><meta charset="utf-8"/><title>{title}</title>{BRAND_CSS}</head><body>
<div class="header"><span class="logo"></span><h1>Field Mapping</h1></div>
<h2>{title}</h2>
<div class="table-wrap"><table><thead>{thead}</thead><tbody>{tbody}</tbody></table></div>
<div class="footer">Generated by the OpenAI assisted field mapper</div>
</body></html>"""


def render_documents(tables: Sequence[ReportTable]) -> List[Tuple[str, bytes]]:
    documents = [(t.filename, render_html_document(t).encode('utf-8')) for t in tables]
    logger.info(f"Rendered {len(documents)} HTML documents")
    return documents


def render(by_source, by_score, dictionary, source_preview,
           spreadsheet: bool = True, documents: bool = True) -> RenderedReport:
    """Render the four report tables to a workbook and/or HTML pages"""
    tables = build_tables(by_source, by_score, dictionary, source_preview)
    report = RenderedReport()
    if spreadsheet:
        report.spreadsheet = render_spreadsheet(tables)
    if documents:
        report.documents = render_documents(tables)
    return report


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------

def _zip(files: Sequence[Tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for name, data in files:
            archive.writestr(name, data)
    return buffer.getvalue()


def package_report(by_source, by_score, dictionary, source_preview,
                   output_format: str = 'both', project_name: Optional[str] = None) -> ReportArtifact:
    """
    Render what the output format asks for and bundle it

    xlsx -> <project>.xlsx, html -> <project>_html.zip, both -> <project>.zip
    """
    fmt = DataValidator.validate_output_format(output_format)
    base = DataValidator.sanitize_project_name(project_name)

    report = render(by_source, by_score, dictionary, source_preview,
                    spreadsheet=fmt in ('xlsx', 'both'), documents=fmt in ('html', 'both'))

    if fmt == 'xlsx':
        return ReportArtifact(f'{base}.xlsx', report.spreadsheet, XLSX_MEDIA_TYPE)
    if fmt == 'html':
        return ReportArtifact(f'{base}_html.zip', _zip(report.documents), ZIP_MEDIA_TYPE)
    files = [(f'{base}.xlsx', report.spreadsheet)] + report.documents
    return ReportArtifact(f'{base}.zip', _zip(files), ZIP_MEDIA_TYPE)
