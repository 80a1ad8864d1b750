"""
Shared logger for the simulator.

Every module logs through `logger`. Records go to the console and to
LOGS_DIR/simulation.log; the file is opened on the first record, so importing
the package leaves no empty log behind.
"""

import logging
import os
from stocksim.config import LOGS_DIR

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(module)s - %(message)s"
LOG_FILE_NAME = "simulation.log"


def setup_logging(level=logging.INFO):
    """Configure console and run-log output, return the shared logger."""
    os.makedirs(LOGS_DIR, exist_ok=True)
    log_file = os.path.join(LOGS_DIR, LOG_FILE_NAME)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file, delay=True),
        ]
    )

    return logging.getLogger(__name__)


logger = setup_logging()
