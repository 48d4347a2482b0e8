import logging
import sys

import coloredlogs

from parkdesk.config import settings

LOG_FORMAT = "%(asctime)s : %(levelname).4s - %(message)s - [%(name)s]"


def setup_logging():
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if sys.stdout.isatty():
        coloredlogs.install(level=log_level, isatty=True, fmt=LOG_FORMAT,
                            level_styles={
                                'debug': {'color': 'white', 'bold': True},
                                'info': {'color': 'green', 'bold': True},
                                'error': {'color': 'red', 'bold': True},
                                'warning': {'color': 'yellow', 'bold': True},
                                'critical': {'color': 'red', 'bold': True}})
        return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s - %(name)s - %(funcName)s"
    ))
    root_logger.addHandler(console_handler)
