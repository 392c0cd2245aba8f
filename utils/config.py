# utils/config.py
"""
Process-wide settings, read from the environment once at startup
"""
import os
from dataclasses import dataclass
from typing import Optional

from utils.exceptions import ValidationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class MapperSettings:
    """Oracle endpoint, credentials and pipeline tunables"""

    azure_endpoint: str = ''
    azure_api_key: str = ''
    azure_deployment: str = 'gpt-4o'
    azure_api_version: str = '2024-10-21'
    openai_api_key: str = ''
    openai_model: str = 'gpt-4o'
    oracle_timeout: float = 120.0
    max_tokens: int = 4000
    temperature: float = 0.2
    batch_size: int = 60
    dictionary_cap: int = 3000
    skip_invalid_schemas: bool = False
    estimate_tokens: bool = False
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValidationError(f"MAPPER_BATCH_SIZE must be at least 1, got {self.batch_size}")
        if self.dictionary_cap < 1:
            raise ValidationError(f"MAPPER_DICTIONARY_CAP must be at least 1, got {self.dictionary_cap}")

    @property
    def uses_azure(self) -> bool:
        return bool(self.azure_endpoint and self.azure_api_key)

    @classmethod
    def from_env(cls) -> 'MapperSettings':
        """
        Build settings from environment variables

        Call load_dotenv() first if a .env file should be honoured.
        """
        return cls(
            azure_endpoint=os.getenv('AZURE_OPENAI_ENDPOINT', ''),
            azure_api_key=os.getenv('AZURE_OPENAI_API_KEY', ''),
            azure_deployment=os.getenv('AZURE_OPENAI_DEPLOYMENT', 'gpt-4o'),
            azure_api_version=os.getenv('AZURE_OPENAI_API_VERSION', '2024-10-21'),
            openai_api_key=os.getenv('OPENAI_API_KEY', ''),
            openai_model=os.getenv('OPENAI_MODEL', 'gpt-4o'),
            oracle_timeout=float(os.getenv('MAPPER_ORACLE_TIMEOUT', '120')),
            batch_size=int(os.getenv('MAPPER_BATCH_SIZE', '60')),
            dictionary_cap=int(os.getenv('MAPPER_DICTIONARY_CAP', '3000')),
            skip_invalid_schemas=_env_bool('MAPPER_SKIP_INVALID_SCHEMAS'),
            estimate_tokens=_env_bool('MAPPER_ESTIMATE_TOKENS'),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            log_file=os.getenv('LOG_FILE') or None,
        )
