# logging_config.py
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

LOG_FILE_NAME = "cohere-chat.log"
APP_LOGGERS = (
    "chat",
    "config",
    "context",
    "core",
    "history_utils",
    "llm_client",
    "main",
    "model_switch",
    "response_parser",
    "transcript_store",
    "uploads",
)


def build_logging_config(log_dir: Path, debug: bool = False) -> Dict[str, Any]:
    """
    Returns a dictConfig that writes single-line JSON events to a rotating
    file, so log output never interleaves with the chat on the terminal.
    """
    level = "DEBUG" if debug else "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(Path(log_dir) / LOG_FILE_NAME),
                "maxBytes": 1_000_000,
                "backupCount": 3,
                "encoding": "utf-8",
                "formatter": "json",
            }
        },
        "loggers": {
            name: {"handlers": ["file"], "level": level, "propagate": False}
            for name in APP_LOGGERS
        },
    }


def setup_logging(log_dir: Path, debug: bool = False) -> logging.Logger:
    """
    Configures the application loggers and returns the entry point logger.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, debug))
    return logging.getLogger("main")


def set_debug_level(debug: bool) -> None:
    """Switch the application loggers between DEBUG and INFO in place."""
    level = logging.DEBUG if debug else logging.INFO
    for name in APP_LOGGERS:
        logging.getLogger(name).setLevel(level)
