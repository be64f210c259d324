import logging
import os
from datetime import datetime


def setup_logger(name):
    """
    Basic Custom Logging formatting and handling for the forecasting engine

    Parameters
    name (str) : Name of the logger

    Returns:
    logging.Logger : Configured Logger Instance
    """

    log_dir = os.getenv('CRIME_FORECAST_LOG_DIR', 'logs')
    level = getattr(logging, os.getenv('CRIME_FORECAST_LOG_LEVEL', 'DEBUG').upper(), logging.DEBUG)

    # Create Logger
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Modules are imported more than once in tests; attach handlers only once
    if logger.handlers:
        return logger

    os.makedirs(log_dir, exist_ok=True)

    # Configs for how logs will appear in logs/
    file_format = logging.Formatter(
        '%(levelname)s : %(name)s : %(funcName)s : %(lineno)d : %(message)s'
    )

    log_file = os.path.join(log_dir, f'crime_forecast_{datetime.now().strftime("%m%d%Y")}.log')
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(file_format)

    # Console logs configs
    console_format = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_format)

    # Add the config to the Logger obj
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
