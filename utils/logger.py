import logging
import os
from logging.handlers import RotatingFileHandler


def setup_api_logger(log_path: str | None = None) -> logging.Logger:
    """Setup and return the application-wide `goplan.api` logger.

    Creates a rotating file handler at `log_path` (defaults to ./logs/api.log)
    and a stream handler. Service modules log through child loggers
    (`goplan.api.plans`, `goplan.api.uploads`, ...) which propagate here.
    """
    if log_path is None:
        base = os.path.abspath(os.path.dirname(__file__))
        logs_dir = os.path.join(base, '..', 'logs')
        os.makedirs(logs_dir, exist_ok=True)
        log_path = os.path.join(logs_dir, 'api.log')
    else:
        os.makedirs(os.path.dirname(os.path.abspath(log_path)), exist_ok=True)

    logger = logging.getLogger('goplan.api')
    logger.setLevel(logging.INFO)

    # avoid adding multiple handlers if called multiple times
    if not logger.handlers:
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')

        handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding='utf-8')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger of `goplan.api`, e.g. get_logger("plans")."""
    return logging.getLogger(f'goplan.api.{name}')
