"""Logging setup shared by the API process and the database scripts."""

import logging.config


# Client and driver loggers that drown request logs at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "aiosqlite", "sqlalchemy.engine")


def setup_logging(level: str = "INFO") -> None:
    """Send every record at ``level`` or above to stderr."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s"},
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "default",
                },
            },
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "root": {"level": level, "handlers": ["stderr"]},
        }
    )
