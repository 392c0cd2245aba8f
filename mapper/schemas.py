# mapper/schemas.py
import math
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Dict, List


# Column order of the mapping tables in every rendered output
REPORT_COLUMNS = [
    'SourceOrder', 'SourceField', 'SuggestedTargetPath', 'TargetSchema',
    'TargetType', 'Occurs', 'MatchScore', 'SampleValue', 'Rationale',
]

DICTIONARY_COLUMNS = ['schema', 'path', 'name', 'type', 'minOccurs', 'maxOccurs']


def coerce_score(value: Any) -> float:
    """Coerce an oracle score to a finite float in [0, 1]; anything unusable is 0"""
    if isinstance(value, bool):
        return 0.0
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(score):
        return 0.0
    return max(0.0, min(1.0, score))


class TargetPathEntry(BaseModel):
    """A leaf element position discovered while flattening one XSD"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_name: str = Field(alias='schema', description="XSD file the path came from")
    path: str = Field(description="Slash-delimited element path")
    name: str
    type: str
    min_occurs: str = Field(default='1', alias='minOccurs')
    max_occurs: str = Field(default='1', alias='maxOccurs')

    @property
    def key(self):
        return (self.schema_name, self.path)

    @property
    def occurs(self) -> str:
        return f"{self.min_occurs}..{self.max_occurs}"

    def to_record(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class FieldMapping(BaseModel):
    """One oracle suggestion: source field -> target path"""
    model_config = ConfigDict(extra='ignore')

    source_field: str = Field(description="Source column name")
    suggested_target_path: str = Field(default='', description="Target path or empty string")
    match_score: float = Field(default=0.0, ge=0.0, le=1.0, description="Confidence 0-1")
    rationale: str = Field(default='', description="Brief explanation")

    @field_validator('source_field', 'suggested_target_path', 'rationale', mode='before')
    @classmethod
    def _text_or_empty(cls, value):
        return '' if value is None else str(value)

    @field_validator('match_score', mode='before')
    @classmethod
    def _clamp_score(cls, value):
        return coerce_score(value)

    @classmethod
    def from_oracle(cls, item: Dict[str, Any]) -> 'FieldMapping':
        return cls(
            source_field=item.get('source'),
            suggested_target_path=item.get('target_path'),
            match_score=item.get('score'),
            rationale=item.get('rationale'),
        )

    @classmethod
    def unmapped(cls, source_field: str) -> 'FieldMapping':
        return cls(source_field=source_field)


class AssembledRow(BaseModel):
    """A FieldMapping joined with its dictionary metadata"""
    model_config = ConfigDict(frozen=True)

    source_order: int
    source_field: str
    suggested_target_path: str = ''
    target_schema: str = ''
    target_type: str = ''
    occurs: str = ''
    match_score: float = Field(default=0.0, ge=0.0, le=1.0)
    sample_value: str = ''
    rationale: str = ''

    def to_record(self) -> Dict[str, Any]:
        return {
            'SourceOrder': self.source_order,
            'SourceField': self.source_field,
            'SuggestedTargetPath': self.suggested_target_path,
            'TargetSchema': self.target_schema,
            'TargetType': self.target_type,
            'Occurs': self.occurs,
            'MatchScore': self.match_score,
            'SampleValue': self.sample_value,
            'Rationale': self.rationale,
        }


class DictionaryHint(BaseModel):
    """Compact dictionary entry sent to the oracle"""
    model_config = ConfigDict(populate_by_name=True)

    path: str
    type: str = ''
    occurs: str = ''
    schema_name: str = Field(default='', alias='schema')

    @classmethod
    def from_entry(cls, entry: TargetPathEntry) -> 'DictionaryHint':
        return cls(path=entry.path, type=entry.type, occurs=entry.occurs, schema_name=entry.schema_name)


class OracleRequest(BaseModel):
    """User payload of one oracle batch call"""

    instruction: str = (
        'Map each source field to the most appropriate target path. '
        'Return an array of {source, target_path, score, rationale}.'
    )
    source_fields: List[str]
    sample_values: Dict[str, List[str]]
    target_dictionary: List[DictionaryHint]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
