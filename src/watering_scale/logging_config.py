"""Centralized logging configuration."""

import logging

from watering_scale.config import DEBUG

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# httpx logs full request URLs at INFO, which include the OpenWeatherMap key
THIRD_PARTY_LEVELS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
    "uvicorn.error": logging.INFO,
    "fastapi": logging.INFO,
    "geopy": logging.INFO,
    "httpx": logging.WARNING,
}


def _attach_handler(logger: logging.Logger, level: int, formatter: logging.Formatter) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level)


def configure_logging():
    """
    Send application and server logs to the console in one format.

    The level is DEBUG when the DEBUG setting is enabled, INFO otherwise.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    _attach_handler(logging.getLogger(), logging.DEBUG if DEBUG else logging.INFO, formatter)

    for name, level in THIRD_PARTY_LEVELS.items():
        logger = logging.getLogger(name)
        _attach_handler(logger, level, formatter)
        logger.propagate = False
