# mapper/mapping_assembler.py
"""
Merge oracle suggestions with the source field list and the target dictionary
"""
import logging
from typing import Dict, Iterator, List, Mapping, Sequence, Tuple

from mapper.schemas import AssembledRow, FieldMapping, TargetPathEntry

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 60
SAMPLES_PER_FIELD = 3


def sample_values(records: Sequence[Mapping[str, str]], fields: Sequence[str],
                  limit: int = SAMPLES_PER_FIELD) -> Dict[str, List[str]]:
    """First `limit` distinct non-empty values per field, in order of appearance"""
    samples = {}
    for field in fields:
        seen = []
        for record in records:
            value = record.get(field)
            value = '' if value is None else str(value)
            if value and value not in seen:
                seen.append(value)
                if len(seen) == limit:
                    break
        samples[field] = seen
    return samples


def chunk_fields(fields: Sequence[str], batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[List[str]]:
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    for start in range(0, len(fields), batch_size):
        yield list(fields[start:start + batch_size])


def collect_oracle_results(oracle, fields: Sequence[str], dictionary: Sequence[TargetPathEntry],
                           samples: Dict[str, List[str]],
                           batch_size: int = DEFAULT_BATCH_SIZE) -> List[FieldMapping]:
    """
    Score all fields, one oracle call per chunk

    Calls are made strictly one after another and their results concatenated
    in request order. Any oracle exception propagates and aborts the run.
    """
    results: List[FieldMapping] = []
    batches = list(chunk_fields(fields, batch_size))
    for number, batch in enumerate(batches, start=1):
        logger.info(f"Scoring batch {number}/{len(batches)} ({len(batch)} fields)")
        subset = {field: samples.get(field, []) for field in batch}
        results.extend(oracle.score_batch(batch, subset, dictionary))
    return results


def _index_by_path(dictionary: Sequence[TargetPathEntry]) -> Dict[str, TargetPathEntry]:
    # Later schemas override earlier ones on a shared path
    return {entry.path: entry for entry in dictionary}


def backfill(field_list: Sequence[str], oracle_results: Sequence[FieldMapping]) -> List[FieldMapping]:
    """Exactly one FieldMapping per field, in field_list order"""
    by_source: Dict[str, FieldMapping] = {}
    for mapping in oracle_results:
        if mapping.source_field in by_source:
            logger.warning(f"Ignoring duplicate oracle mapping for {mapping.source_field!r}")
            continue
        by_source[mapping.source_field] = mapping

    unknown = set(by_source) - set(field_list)
    if unknown:
        logger.warning(f"Ignoring oracle mappings for unknown fields: {sorted(unknown)}")

    merged = []
    missing = 0
    for field in field_list:
        mapping = by_source.get(field)
        if mapping is None:
            missing += 1
            mapping = FieldMapping.unmapped(field)
        merged.append(mapping)
    if missing:
        logger.info(f"Backfilled {missing} fields the oracle did not map")
    return merged


def sort_by_score(rows: Sequence[AssembledRow]) -> List[AssembledRow]:
    """Descending by score; sorted() is stable so ties keep source order"""
    return sorted(rows, key=lambda row: row.match_score, reverse=True)


def assemble(field_list: Sequence[str], oracle_results: Sequence[FieldMapping],
             dictionary: Sequence[TargetPathEntry],
             samples: Dict[str, List[str]]) -> Tuple[List[AssembledRow], List[AssembledRow]]:
    """
    Build the mapping tables

    Returns:
        (by_source, by_score) where by_source has one row per field in
        field_list and by_score is the same rows ordered by score
    """
    by_path = _index_by_path(dictionary)
    by_source = []
    for order, mapping in enumerate(backfill(field_list, oracle_results), start=1):
        entry = by_path.get(mapping.suggested_target_path) if mapping.suggested_target_path else None
        field_samples = samples.get(mapping.source_field) or ['']
        by_source.append(AssembledRow(
            source_order=order,
            source_field=mapping.source_field,
            suggested_target_path=mapping.suggested_target_path,
            target_schema=entry.schema_name if entry else '',
            target_type=entry.type if entry else '',
            occurs=entry.occurs if entry else '',
            match_score=mapping.match_score,
            sample_value=field_samples[0],
            rationale=mapping.rationale,
        ))

    return by_source, sort_by_score(by_source)
