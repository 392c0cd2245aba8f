import pytest

from extractors.tabular_ingestor import EXCEL_EXTENSIONS, read_source
from mapper.schemas import AssembledRow
from utils.config import MapperSettings
from utils.cost_estimator import PayloadEstimator
from utils.exceptions import ValidationError
from utils.validators import SOURCE_EXTENSIONS, DataValidator, upload_types


class WordEncoding:
    """Stands in for a tiktoken encoding: one token per whitespace-separated word"""

    def encode(self, text):
        return text.split()


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv('AZURE_OPENAI_ENDPOINT', 'https://example.openai.azure.com/')
    monkeypatch.setenv('AZURE_OPENAI_API_KEY', 'secret')
    monkeypatch.setenv('MAPPER_BATCH_SIZE', '25')
    monkeypatch.setenv('MAPPER_SKIP_INVALID_SCHEMAS', 'yes')
    monkeypatch.delenv('LOG_FILE', raising=False)

    settings = MapperSettings.from_env()

    assert settings.uses_azure
    assert settings.batch_size == 25
    assert settings.skip_invalid_schemas is True
    assert settings.dictionary_cap == 3000
    assert settings.log_file is None


def test_settings_reject_zero_batch_size():
    with pytest.raises(ValidationError):
        MapperSettings(batch_size=0)


@pytest.mark.parametrize('raw, expected', [
    (None, 'both'),
    ('XLSX', 'xlsx'),
    (' html ', 'html'),
])
def test_output_format_normalized(raw, expected):
    assert DataValidator.validate_output_format(raw) == expected


@pytest.mark.parametrize('raw, expected', [
    (None, 'mapping-output'),
    ('   ', 'mapping-output'),
    ('Q3 / Invoices', 'Q3 _ Invoices'),
    ('report:v2?', 'report_v2'),
    ('.hidden', 'hidden'),
])
def test_project_name_sanitized(raw, expected):
    assert DataValidator.sanitize_project_name(raw) == expected


def test_mapping_issues():
    rows = [
        AssembledRow(source_order=1, source_field='Id', suggested_target_path='Invoice/Id',
                     target_schema='invoice.xsd', match_score=0.9),
        AssembledRow(source_order=2, source_field='Amount'),
        AssembledRow(source_order=3, source_field='Note', suggested_target_path='Invoice/Note',
                     match_score=0.4),
    ]

    issues = DataValidator.validate_mapping_predictions(rows)

    assert [(i['source_order'], i['issue_type']) for i in issues] == [
        (2, 'unmapped'), (3, 'low_confidence'), (3, 'unknown_path')
    ]


def test_payload_estimator_tracks_tokens():
    estimator = PayloadEstimator('gpt-4o', encoding=WordEncoding())

    estimate = estimator.estimate_request('map fields', '{"source_fields": ["Id"]}', max_output_tokens=1000)

    assert estimate['input_tokens'] == 4
    assert estimate['max_cost_usd'] == round(4 / 1000 * 0.0025 + 1000 / 1000 * 0.01, 4)
    assert estimator.total_tokens == 4
    assert len(estimator.call_history) == 1


def test_payload_estimator_unknown_model_has_no_price():
    estimator = PayloadEstimator('my-deployment', encoding=WordEncoding())
    assert estimator.estimate_request('a', 'b')['max_cost_usd'] is None


def test_upload_types_cover_every_readable_source():
    assert upload_types(SOURCE_EXTENSIONS) == ['csv', 'txt', 'xlsx', 'xlsm', 'xls']
    assert set(EXCEL_EXTENSIONS) <= set(SOURCE_EXTENSIONS)


def test_txt_source_reads_as_delimited_text():
    table = read_source(b'Id|Name\n1|Ann\n', 'export.txt')
    assert table.records == [{'Id': '1', 'Name': 'Ann'}]
