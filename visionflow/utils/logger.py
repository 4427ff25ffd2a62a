"""
Logging Setup
Console (and optional daily file) logging for flow runs. Node bodies run on
engine worker threads, so records carry the thread name.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config.paths import DataPaths

LOG_FORMAT = '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level=logging.INFO, log_to_file=True, log_dir=None) -> Optional[Path]:
    """
    Configure the root logger for a flow runner process.

    Calling it again replaces the previous handlers.

    Args:
        level: Logging level for console and file
        log_to_file: Also write visionflow_YYYYMMDD.log
        log_dir: Directory for the log file (defaults to DataPaths.LOGS_DIR)

    Returns:
        Path of the log file, or None when logging to stdout only
    """
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    if not log_to_file:
        return None

    directory = DataPaths.ensure(Path(log_dir) if log_dir else DataPaths.LOGS_DIR)
    log_path = directory / f"visionflow_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return log_path
