"""
Centralized configuration for the dense matrix multiplication pipeline.
Single source of truth for format constants and runtime defaults.
"""

import logging
import multiprocessing as mp

# Text format
DECIMAL_PRECISION = 2  # Digits after the decimal point in matrix files
DELIMITER = " "        # Separator between values on a row

# Parallel multiplication
DEFAULT_BACKEND = "thread"         # "thread" (shared result buffer) or "process"
DEFAULT_NUM_WORKERS = mp.cpu_count()
PROCESS_START_METHOD = "spawn"  # Process backend never forks a multithreaded parent

# Generator safety limit
DEFAULT_MAX_FILE_MB = 500

# Logging
LOG_FORMAT = '%(asctime)s - %(levelname)s: %(message)s'


def configure_logging(level: str = "INFO"):
    """Configure root logging for command-line entry points."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
