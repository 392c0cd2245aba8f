import pytest

from mapper.mapping_assembler import (
    assemble,
    backfill,
    chunk_fields,
    collect_oracle_results,
    sample_values,
    sort_by_score,
)
from mapper.schemas import FieldMapping, TargetPathEntry
from utils.exceptions import OracleTransportError

DICTIONARY = [
    TargetPathEntry(schema_name='invoice.xsd', path='Invoice/Id', name='Id', type='string'),
    TargetPathEntry(schema_name='invoice.xsd', path='Invoice/Total', name='Total', type='decimal',
                    min_occurs='0'),
]


class RecordingOracle:
    """Maps every field to Invoice/Id and remembers each batch"""

    def __init__(self, score=0.9):
        self.calls = []
        self.score = score

    def score_batch(self, source_fields, sample_values, target_dictionary):
        self.calls.append((list(source_fields), dict(sample_values)))
        return [FieldMapping(source_field=f, suggested_target_path='Invoice/Id', match_score=self.score)
                for f in source_fields]


class FailingOracle:
    def __init__(self, fail_on_call):
        self.fail_on_call = fail_on_call
        self.calls = 0

    def score_batch(self, source_fields, sample_values, target_dictionary):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise OracleTransportError('timed out')
        return []


def test_missing_oracle_rows_are_backfilled():
    results = [FieldMapping(source_field='Id', suggested_target_path='Invoice/Id',
                            match_score=0.95, rationale='same name')]

    by_source, by_score = assemble(['Id', 'Amount'], results, DICTIONARY, {'Id': ['42']})

    assert len(by_source) == 2
    amount = by_source[1]
    assert amount.source_field == 'Amount'
    assert amount.match_score == 0
    assert amount.suggested_target_path == ''
    assert amount.rationale == ''
    assert amount.source_order == 2


def test_join_populates_dictionary_metadata():
    results = [
        FieldMapping(source_field='Total', suggested_target_path='Invoice/Total', match_score=0.8),
        FieldMapping(source_field='Ghost', suggested_target_path='Invoice/Missing', match_score=0.7),
    ]

    by_source, _ = assemble(['Total', 'Ghost'], results, DICTIONARY, {'Total': ['9.99', '1.00']})

    total, ghost = by_source
    assert (total.target_schema, total.target_type, total.occurs) == ('invoice.xsd', 'decimal', '0..1')
    assert total.sample_value == '9.99'
    assert (ghost.target_schema, ghost.target_type, ghost.occurs) == ('', '', '')
    assert ghost.suggested_target_path == 'Invoice/Missing'
    assert ghost.sample_value == ''


def test_shared_path_joins_last_schema():
    dictionary = [
        TargetPathEntry(schema_name='a.xsd', path='R/X', name='X', type='string'),
        TargetPathEntry(schema_name='b.xsd', path='R/X', name='X', type='int', max_occurs='unbounded'),
    ]
    results = [FieldMapping(source_field='X', suggested_target_path='R/X', match_score=0.9)]

    (row,), _ = assemble(['X'], results, dictionary, {})

    assert (row.target_schema, row.target_type, row.occurs) == ('b.xsd', 'int', '1..unbounded')


def test_scores_are_coerced_into_unit_interval():
    raw = [
        {'source': 'a', 'target_path': 'Invoice/Id', 'score': 1.7},
        {'source': 'b', 'target_path': 'Invoice/Id', 'score': -3},
        {'source': 'c', 'target_path': 'Invoice/Id', 'score': 'high'},
        {'source': 'd', 'target_path': 'Invoice/Id'},
        {'source': 'e', 'target_path': 'Invoice/Id', 'score': float('nan')},
        {'source': 'f', 'target_path': 'Invoice/Id', 'score': '0.65'},
    ]
    results = [FieldMapping.from_oracle(item) for item in raw]

    by_source, _ = assemble(list('abcdef'), results, DICTIONARY, {})

    assert [r.match_score for r in by_source] == [1.0, 0.0, 0.0, 0.0, 0.0, 0.65]


def test_by_score_is_stable_descending_permutation():
    scores = {'f1': 0.5, 'f2': 0.9, 'f3': 0.5, 'f4': 0.9, 'f5': 0.1}
    results = [FieldMapping(source_field=k, suggested_target_path='Invoice/Id', match_score=v)
               for k, v in scores.items()]

    by_source, by_score = assemble(list(scores), results, DICTIONARY, {})

    assert [r.source_field for r in by_score] == ['f2', 'f4', 'f1', 'f3', 'f5']
    assert sorted(r.source_order for r in by_score) == [1, 2, 3, 4, 5]
    assert [r.source_field for r in by_source] == ['f1', 'f2', 'f3', 'f4', 'f5']
    assert sort_by_score(by_source) == by_score


def test_oracle_order_does_not_change_source_order():
    results = [
        FieldMapping(source_field='b', match_score=0.2),
        FieldMapping(source_field='stranger', match_score=0.9),
        FieldMapping(source_field='a', match_score=0.4),
        FieldMapping(source_field='a', match_score=0.99),
    ]

    merged = backfill(['a', 'b', 'c'], results)

    assert [m.source_field for m in merged] == ['a', 'b', 'c']
    assert [m.match_score for m in merged] == [0.4, 0.2, 0.0]


def test_sample_values_are_first_three_distinct_non_empty():
    records = [
        {'Id': '', 'Name': 'x'},
        {'Id': '1', 'Name': 'x'},
        {'Id': '1', 'Name': None},
        {'Id': '2', 'Name': 'y'},
        {'Id': '3', 'Name': 'z'},
        {'Id': '4', 'Name': 'w'},
    ]

    assert sample_values(records, ['Id', 'Name']) == {'Id': ['1', '2', '3'], 'Name': ['x', 'y', 'z']}


def test_chunk_fields_rejects_non_positive_batch_size():
    with pytest.raises(ValueError):
        list(chunk_fields(['a'], 0))


def test_130_fields_make_three_sequential_calls():
    fields = [f'field_{i:03d}' for i in range(130)]
    samples = {f: [f'v{i}'] for i, f in enumerate(fields)}
    oracle = RecordingOracle()

    results = collect_oracle_results(oracle, fields, DICTIONARY, samples, batch_size=60)
    by_source, _ = assemble(fields, results, DICTIONARY, samples)

    assert [len(batch) for batch, _ in oracle.calls] == [60, 60, 10]
    assert oracle.calls[2][1] == {f: samples[f] for f in fields[120:]}
    assert [r.source_field for r in by_source] == fields
    assert [r.source_order for r in by_source] == list(range(1, 131))


def test_oracle_failure_aborts_collection():
    oracle = FailingOracle(fail_on_call=2)

    with pytest.raises(OracleTransportError):
        collect_oracle_results(oracle, [f'f{i}' for i in range(10)], DICTIONARY, {}, batch_size=4)
    assert oracle.calls == 2


def test_empty_field_list_gives_empty_tables():
    assert assemble([], [], DICTIONARY, {}) == ([], [])
