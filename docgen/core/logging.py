import copy
from logging.config import dictConfig
from typing import Any

from docgen.core.config import settings

# Uvicorn-compatible logging configuration
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(asctime)s [%(name)s] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelprefix)s %(asctime)s [%(name)s] "%(request_line)s" %(status_code)s',
        },
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stderr",
            "level": "INFO",
        },
        "access": {
            "class": "logging.StreamHandler",
            "formatter": "access",
            "stream": "ext://sys.stdout",
            "level": "INFO",
        },
        "docgen": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
            "level": "DEBUG",
        },
    },
    "loggers": {
        "root": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
        "docgen": {"handlers": ["docgen"], "level": "DEBUG", "propagate": False},
        "docgen.api": {"handlers": ["docgen"], "level": "DEBUG", "propagate": False},
        "docgen.generation_logic": {"handlers": ["docgen"], "level": "DEBUG", "propagate": False},
        "docgen.services": {"handlers": ["docgen"], "level": "DEBUG", "propagate": False},
    },
}


def build_logging_config(level: str = "DEBUG") -> dict[str, Any]:
    """Return a copy of LOGGING_CONFIG with the docgen loggers set to `level`."""
    config = copy.deepcopy(LOGGING_CONFIG)
    level = level.upper()
    config["handlers"]["docgen"]["level"] = level
    for name, logger_cfg in config["loggers"].items():
        if name.startswith("docgen"):
            logger_cfg["level"] = level
    return config


def setup_logging(level: str | None = None) -> None:
    """Configures application-wide logging using dictConfig.

    The docgen loggers default to `settings.log_level`; pipeline runs log one
    line per step at INFO and the assembled context/prompt sizes at DEBUG.
    """
    dictConfig(build_logging_config(level or settings.log_level))
