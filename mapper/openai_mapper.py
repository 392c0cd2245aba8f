"""
OpenAI-powered scoring oracle - maps source fields to XSD target paths
"""
from openai import OpenAI, AzureOpenAI
from typing import Any, Dict, List, Optional, Sequence
import logging
import json
import re

from mapper.schemas import DictionaryHint, FieldMapping, OracleRequest, TargetPathEntry
from utils.config import MapperSettings
from utils.decorators import handle_openai_errors
from utils.exceptions import OracleResponseError, ValidationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = '\n'.join([
    'You map source dataset fields to XSD target element paths.',
    'Return strict JSON only. Score 0..1 (float). Prefer exact semantics.',
    'If unsure, pick the closest path but lower the score and add a short rationale.',
])

_FENCE = re.compile(r'^```(?:json)?\s*(.*?)\s*```$', re.DOTALL | re.IGNORECASE)


def parse_oracle_response(text: Any) -> List[FieldMapping]:
    """
    Interpret a completion as a list of FieldMapping

    Accepts a JSON array of {source, target_path, score, rationale} or an
    object carrying such an array under "mappings". Anything else raises
    OracleResponseError.
    """
    if isinstance(text, str):
        stripped = text.strip()
        fenced = _FENCE.match(stripped)
        if fenced:
            stripped = fenced.group(1)
        try:
            result = json.loads(stripped)
        except json.JSONDecodeError as e:
            logger.error(f"Oracle returned non-JSON content: {stripped[:200]!r}")
            raise OracleResponseError(f"Scoring oracle returned non-JSON: {str(e)}") from e
    else:
        result = text

    if isinstance(result, dict) and isinstance(result.get('mappings'), list):
        result = result['mappings']
    if not isinstance(result, list):
        raise OracleResponseError(
            f"Scoring oracle returned {type(result).__name__}, expected a mapping array"
        )

    mappings = []
    for idx, item in enumerate(result):
        if not isinstance(item, dict):
            raise OracleResponseError(f"Mapping #{idx + 1} is {type(item).__name__}, expected an object")
        mappings.append(FieldMapping.from_oracle(item))
    return mappings


class OpenAIFieldMapper:
    """
    Scoring oracle backed by an Azure OpenAI deployment, or api.openai.com
    when only OPENAI_API_KEY is configured.

    Any object exposing score_batch(source_fields, sample_values,
    target_dictionary) can stand in for it in the pipeline.
    """

    def __init__(self, settings: MapperSettings, client=None, estimator=None):
        self.settings = settings
        self.model = settings.azure_deployment if settings.uses_azure else settings.openai_model
        self.client = client if client is not None else self._build_client(settings)
        self.estimator = estimator

    @staticmethod
    def _build_client(settings: MapperSettings):
        # max_retries=0: a failed batch aborts the run
        if settings.uses_azure:
            logger.info(f"Using Azure OpenAI deployment {settings.azure_deployment}")
            return AzureOpenAI(
                azure_endpoint=settings.azure_endpoint,
                api_key=settings.azure_api_key,
                api_version=settings.azure_api_version,
                timeout=settings.oracle_timeout,
                max_retries=0,
            )
        if settings.openai_api_key:
            logger.info(f"Using OpenAI model {settings.openai_model}")
            return OpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.oracle_timeout,
                max_retries=0,
            )
        raise ValidationError(
            'Scoring oracle not configured: set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY, or OPENAI_API_KEY'
        )

    def build_request(self, source_fields: Sequence[str], sample_values: Dict[str, List[str]],
                      target_dictionary: Sequence[TargetPathEntry]) -> OracleRequest:
        capped = list(target_dictionary)[:self.settings.dictionary_cap]
        if len(capped) < len(target_dictionary):
            logger.warning(
                f"Target dictionary truncated to {len(capped)} of {len(target_dictionary)} entries"
            )
        return OracleRequest(
            source_fields=list(source_fields),
            sample_values={f: list(sample_values.get(f, [])) for f in source_fields},
            target_dictionary=[DictionaryHint.from_entry(e) for e in capped],
        )

    def score_batch(self, source_fields: Sequence[str], sample_values: Dict[str, List[str]],
                    target_dictionary: Sequence[TargetPathEntry]) -> List[FieldMapping]:
        request = self.build_request(source_fields, sample_values, target_dictionary)
        payload = request.to_json()
        if self.estimator is not None:
            self.estimator.estimate_request(SYSTEM_PROMPT, payload, self.settings.max_tokens)

        content = self._complete(payload)
        mappings = parse_oracle_response(content)
        logger.debug(f"Oracle returned {len(mappings)} mappings for {len(source_fields)} fields")
        return mappings

    @handle_openai_errors
    def _complete(self, payload: str) -> Optional[str]:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": payload}
            ],
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature
        )
        if not response.choices:
            raise OracleResponseError('Scoring oracle returned no choices')
        content = response.choices[0].message.content
        if content is None:
            raise OracleResponseError('Scoring oracle returned an empty message')
        return content
