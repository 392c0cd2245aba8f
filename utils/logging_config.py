# utils/logging_config.py
"""
Logging setup shared by the CLI and the Streamlit app
"""
import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
QUIET_LOGGERS = ('openai', 'httpx', 'httpcore', 'streamlit')


def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None):
    """
    Route mapper logs to stdout and, optionally, a file

    Safe to call repeatedly (Streamlit re-executes app.py on every
    interaction); existing root handlers are replaced, not stacked.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR; unknown names fall back to INFO
        log_file: Optional log file path, parent directories are created
    """
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT,
                        handlers=handlers, force=True)

    # SDK request logs would repeat every oracle payload
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging at {logging.getLevelName(level)}" + (f", file {log_file}" if log_file else '')
    )
