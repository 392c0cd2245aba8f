import io

import pandas as pd
import pytest

from extractors.tabular_ingestor import read_source, sniff_delimiter


@pytest.mark.parametrize('line, expected', [
    ('a,b,c', ','),
    ('a;b;c', ';'),
    ('a\tb\tc', '\t'),
    ('a|b|c', '|'),
    ('single', ','),
    ('a;b,c;d', ';'),
])
def test_sniff_delimiter(line, expected):
    assert sniff_delimiter(line) == expected


def test_semicolon_csv_with_bom_and_padding():
    data = '\ufeffId; Name ;Amount\n1; Alice ;10.50\n2;Bob;\n'.encode('utf-8')

    table = read_source(data, 'people.csv')

    assert table.fields == ['Id', 'Name', 'Amount']
    assert table.records == [
        {'Id': '1', 'Name': 'Alice', 'Amount': '10.50'},
        {'Id': '2', 'Name': 'Bob', 'Amount': ''},
    ]


def test_values_stay_strings():
    table = read_source(b'Code,Flag\n007,NA\n', 'codes.csv')
    assert table.records == [{'Code': '007', 'Flag': 'NA'}]


def test_short_rows_are_padded():
    table = read_source(b'a,b,c\n1,2\n', 'short.csv')
    assert table.records == [{'a': '1', 'b': '2', 'c': ''}]


def test_header_only_source_has_no_fields():
    table = read_source(b'a,b,c\n', 'empty.csv')
    assert table.records == []
    assert table.fields == []


def test_empty_file():
    table = read_source(b'', 'nothing.csv')
    assert table.fields == []


def test_excel_first_sheet():
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        pd.DataFrame({'PolicyNo': ['P-1', 'P-2'], 'Premium': [100, None]}).to_excel(
            writer, sheet_name='Data', index=False)
        pd.DataFrame({'Other': ['x']}).to_excel(writer, sheet_name='Second', index=False)

    table = read_source(buffer.getvalue(), 'Policies.XLSX')

    assert table.fields == ['PolicyNo', 'Premium']
    assert table.records[0]['PolicyNo'] == 'P-1'
    assert table.records[1]['Premium'] == ''


def test_preview_is_bounded():
    rows = '\n'.join(f'{i},{i * 2}' for i in range(80))
    table = read_source(f'x,y\n{rows}\n'.encode('utf-8'), 'big.csv')

    assert len(table.records) == 80
    assert len(table.preview(50)) == 50
    assert table.preview(50)[0] == {'x': '0', 'y': '0'}
