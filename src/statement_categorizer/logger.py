import logging
import logging.config
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class ColourizedFormatter(logging.Formatter):
    """
    Formatter that colours the level name for terminal output.
    """
    GREY = "\x1b[90m"
    GREEN = "\x1b[32m"
    YELLOW = "\x1b[33m"
    RED = "\x1b[31m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        plain_levelname = record.levelname
        colour = self.LEVEL_COLORS.get(record.levelno)
        if colour:
            record.levelname = f"{colour}{record.levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain_levelname


def _file_handler(log_dir: str, filename: str, level: str | None = None) -> dict:
    handler = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": os.path.join(log_dir, filename),
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
        "encoding": "utf-8",
        "formatter": "plain",
    }
    if level:
        handler["level"] = level
    return handler


def get_logging_config() -> dict:
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir = os.getenv("LOG_DIR")
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "coloured",
        },
    }
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers["combined_file"] = _file_handler(log_dir, "combined.log")
        handlers["error_file"] = _file_handler(log_dir, "error.log", level="ERROR")
    handler_names = list(handlers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "coloured": {
                "()": "statement_categorizer.logger.ColourizedFormatter",
                "format": LOG_FORMAT,
                "datefmt": LOG_DATE_FORMAT,
            },
            "plain": {
                "format": LOG_FORMAT,
                "datefmt": LOG_DATE_FORMAT,
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": handler_names,
                "level": log_level_name,
            },
            "uvicorn": {
                "handlers": handler_names,
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": handler_names,
                "level": "WARNING",
                "propagate": False,
            },
        },
    }


def setup_logging() -> None:
    logging.config.dictConfig(get_logging_config())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
