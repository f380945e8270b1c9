'''
universal logger
'''
import logging
import sys

from .config import settings

def setup_logger():
    """
    Configures and returns a root logger for the application.
    """
    logger = logging.getLogger('LT-backend')
    logger.setLevel(settings.LOG_LEVEL)

    handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        '%(asctime)s - %(module)s - %(levelname)s\n - %(message)s'
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)

    return logger

# Create a single logger instance to be imported by other modules
log = setup_logger()
