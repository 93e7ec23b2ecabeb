"""Logging configuration for the Household Task Engine application.
"""

import logging

LOG_LEVEL = logging.INFO

# Define logging format
LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False, # Keep existing loggers (e.g., uvicorn)
    "formatters": {
        "default": {
            "format": LOG_FORMAT,
            "datefmt": DATE_FORMAT,
        },
    },
    "handlers": {
        "console": {
            "level": LOG_LEVEL,
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
        "uvicorn.error": {
            "level": logging.INFO,
            "handlers": ["console"],
            "propagate": False,
        },
        "uvicorn.access": {
            "level": logging.WARNING, # Dashboard polling makes access logs noisy
            "handlers": ["console"],
            "propagate": False,
        },
        "httpx": {
             "level": logging.WARNING,
             "handlers": ["console"],
             "propagate": False,
        },
        "openai": {
            "level": logging.WARNING,
            "handlers": ["console"],
            "propagate": False,
        },
        "googleapiclient.discovery_cache": {
            "level": logging.ERROR, # Warns about file_cache on every build()
            "handlers": ["console"],
            "propagate": False,
        },
    }
}
