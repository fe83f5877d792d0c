import copy
import logging.config

from .consts import LOG_FILE_DEFAULT
from .utils import ensure_parent

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s [%(levelname)s] [%(threadName)s] %(name)s - %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": logging.INFO,
            "formatter": "default",
            "stream": "ext://sys.stderr",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": logging.DEBUG,
            "formatter": "default",
            "filename": LOG_FILE_DEFAULT,
            "maxBytes": 2 * 1024 * 1024,
            "backupCount": 5,
        },
    },
    "loggers": {
        "draftkit": {
            "handlers": ["console", "file"],
            "level": logging.DEBUG,
            "propagate": True,
        }
    },
}


def build_config(logfile=None, console_level=None) -> dict:
    """Returns a copy of LOGGING_CONFIG pointed at ``logfile``."""
    config = copy.deepcopy(LOGGING_CONFIG)
    handlers = config["handlers"]
    handlers["file"]["filename"] = str(ensure_parent(logfile or handlers["file"]["filename"]))
    if console_level is not None:
        handlers["console"]["level"] = console_level
    return config


def setup(logfile=None, console_level=None):
    logging.config.dictConfig(build_config(logfile, console_level))


def setup_from_config(config):
    """Configures logging from a :class:`draftkit.config.Config`."""
    setup(config.log_file, config.log_level)


logger = logging.getLogger("draftkit")
