# utils/decorators.py
"""
Decorators for oracle error translation and stage timing
"""
import functools
import time
import logging
from typing import Callable
from openai import OpenAIError, RateLimitError, APIConnectionError, APITimeoutError, APIStatusError

from utils.exceptions import OracleTransportError

logger = logging.getLogger(__name__)


def handle_openai_errors(func: Callable) -> Callable:
    """
    Translate OpenAI SDK failures into OracleTransportError

    A failed oracle call aborts the run, so nothing is retried here.

    Usage:
        @handle_openai_errors
        def _complete(self, payload):
            return self.client.chat.completions.create(...)
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except APITimeoutError as e:
            logger.error(f"Scoring oracle timed out in {func.__name__}: {str(e)}")
            raise OracleTransportError(f"Scoring oracle timed out: {str(e)}") from e
        except RateLimitError as e:
            logger.error(f"Scoring oracle rate limit exceeded in {func.__name__}: {str(e)}")
            raise OracleTransportError(f"Scoring oracle rate limit exceeded: {str(e)}") from e
        except APIConnectionError as e:
            logger.error(f"Scoring oracle connection error in {func.__name__}: {str(e)}")
            logger.info("Check the endpoint URL and network access")
            raise OracleTransportError(f"Could not reach scoring oracle: {str(e)}") from e
        except APIStatusError as e:
            logger.error(f"Scoring oracle returned HTTP {e.status_code} in {func.__name__}")
            raise OracleTransportError(
                f"Scoring oracle returned HTTP {e.status_code}: {e.message}"
            ) from e
        except OpenAIError as e:
            logger.error(f"OpenAI API error in {func.__name__}: {str(e)}")
            raise OracleTransportError(f"Scoring oracle error: {str(e)}") from e

    return wrapper


def log_execution_time(func: Callable) -> Callable:
    """Log wall-clock duration of a pipeline stage, including failed runs"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        label = func.__qualname__
        started = time.perf_counter()
        logger.info(f"▶️ {label} started")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{label} aborted after {time.perf_counter() - started:.2f}s: {str(e)}")
            raise
        logger.info(f"{label} finished in {time.perf_counter() - started:.2f}s")
        return result

    return wrapper
