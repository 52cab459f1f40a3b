import logging, logging.config


def setup_logging(level: str = "INFO", access_log: bool = True, sql_echo: bool = False):
    """Configure console logging for the API process.

    Everything under the ``dvhl`` namespace shares one handler so draft picks,
    schedule saves and playoff resolution show up next to uvicorn's errors.
    """
    level = level.upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "league": {"format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                       "datefmt": "%Y-%m-%d %H:%M:%S"},
            "access_simple": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "league"},
            "access":  {"class": "logging.StreamHandler", "formatter": "access_simple"},
        },
        "loggers": {
            "dvhl":           {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn.error":  {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": ("INFO" if access_log else "WARNING"),
                               "handlers": ["access"], "propagate": False},
            "sqlalchemy.engine": {"level": ("INFO" if sql_echo else "WARNING")},
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    })
