import logging
import os

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

# httpx logs every request at INFO; the API client does its own request logging.
_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level=None):
    if level is None:
        env_level = os.environ.get("WATCHMQTT_LOG_LEVEL") or os.environ.get("LOG_LEVEL", "INFO")
        level = getattr(logging, env_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
