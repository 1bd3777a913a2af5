import logging
import logging.config

import logfire

_CONFIGURED = False

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once: console output plus a logfire handler.

    logfire only ships records when a token is present, so local runs and
    tests stay on the console.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    logfire.configure(send_to_logfire="if-token-present", console=False)
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
            "logfire": {
                "class": "logfire.LogfireLoggingHandler",
            },
        },
        "root": {
            "level": level.upper(),
            "handlers": ["console", "logfire"],
        },
        "loggers": {
            # motor/pymongo heartbeat noise
            "pymongo": {"level": "WARNING"},
        },
    })
    _CONFIGURED = True
