# utils/cost_estimator.py
"""
Token estimation for scoring oracle requests
"""
import logging
from typing import Dict, Optional
import tiktoken

logger = logging.getLogger(__name__)


class PayloadEstimator:
    """Estimate and track prompt tokens sent to the scoring oracle"""

    # Pricing as of Oct 2025 (per 1K tokens)
    PRICING = {
        'gpt-4o': {
            'input': 0.0025,
            'output': 0.01
        },
        'gpt-4o-mini': {
            'input': 0.00015,
            'output': 0.0006
        }
    }

    def __init__(self, model: str = 'gpt-4o', encoding=None):
        self.model = model
        self._encoding = encoding
        self.total_tokens = 0
        self.call_history = []

    @property
    def encoding(self):
        # Loaded lazily, tiktoken fetches the BPE ranks on first use
        if self._encoding is None:
            try:
                self._encoding = tiktoken.encoding_for_model(self.model)
            except KeyError:
                self._encoding = tiktoken.get_encoding('o200k_base')
        return self._encoding

    def count_tokens(self, text: str) -> int:
        return len(self.encoding.encode(text))

    def estimate_request(self, system_prompt: str, user_payload: str,
                         max_output_tokens: int = 0) -> Dict[str, float]:
        """
        Estimate tokens and cost for one chat completion

        Args:
            system_prompt: System message text
            user_payload: Serialized user message
            max_output_tokens: Upper bound for the completion

        Returns:
            Dictionary with token counts and estimated cost in USD
        """
        input_tokens = self.count_tokens(system_prompt) + self.count_tokens(user_payload)
        pricing: Optional[Dict[str, float]] = self.PRICING.get(self.model)

        estimate = {
            'input_tokens': input_tokens,
            'max_output_tokens': max_output_tokens,
            'max_cost_usd': None,
        }
        if pricing:
            estimate['max_cost_usd'] = round(
                input_tokens / 1000 * pricing['input'] + max_output_tokens / 1000 * pricing['output'], 4
            )

        self.total_tokens += input_tokens
        self.call_history.append(estimate)
        logger.info(f"Oracle request estimate: {input_tokens} input tokens, max cost {estimate['max_cost_usd']}")
        return estimate
