import logging
import os

from rich.logging import RichHandler

from artifact_downloader.constants import (
    LOG_DATE_FORMAT,
    LOG_LEVEL_ENV_VAR,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)


def set_log_level(level_name: str) -> None:
    """
    Set the log level for the artifact_downloader logger and all attached handlers.

    If `level_name` is not a valid logging level name (e.g., "DEBUG", "INFO"), the
    function logs a warning and leaves the current configuration unchanged.

    Parameters:
        level_name (str): Case-insensitive name of the desired logging level.
    """
    level = getattr(logging, level_name.upper(), None)
    if not isinstance(level, int):
        logger.warning(f"Invalid log level name: {level_name}. Using current level.")
        return

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)

    logger.debug(f"Log level set to {logging.getLevelName(level)}")


def _initialize_logger() -> None:
    """
    Initialize the logger with a console RichHandler and an initial log level.

    Existing handlers are removed, propagation to the root logger is disabled and
    the initial level is read from the environment variable named by
    LOG_LEVEL_ENV_VAR (INFO when unset or invalid).
    """
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    default_log_level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    resolved = getattr(logging, default_log_level, None)
    if not isinstance(resolved, int):
        logger.warning(
            f"Invalid {LOG_LEVEL_ENV_VAR}={default_log_level}; defaulting to INFO."
        )
        resolved = logging.INFO

    logger.setLevel(resolved)
    console_handler.setLevel(resolved)


# Initialize the logger when the module is imported
_initialize_logger()
