# ===================================== IMPORTS ====================================== #

# Standard Library
from datetime import datetime
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional, Union

# 3rd‑party (Rich)
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Local
from soil_mags import constants

# ================================= DEFAULT VALUES =================================== #

LOG_THEME = Theme({
    "logging.time": "bold white",
    "logging.level.info": "bold white",
    "logging.level.debug": "dim cyan",
    "logging.level.warning": "bold yellow",
    "logging.level.error": "bold red",
    "logging.level.critical": "reverse bold bright_white on red",
})

# Loggers that share the package handlers; 'py.warnings' carries EmptyResultWarning
# and other warnings.warn() calls once warnings are captured
MANAGED_LOGGERS: List[str] = [constants.LOGGER_NAME, "py.warnings"]

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(filename)s:%(funcName)s(): %(message)s"

# ==================================== FUNCTIONS ===================================== #

def _level(value: Union[str, int], key: str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    if not isinstance(level, int):
        raise ValueError(
            f"Unknown log level {value!r} for 'logging.{key}'; expected one of "
            f"DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return level


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    log_dir_path: Union[str, Path],
    log_filename: Optional[str] = None,
    max_file_size: int = 5 * 1024 * 1024,  # 5 MB
    backup_count: int = 3,
    console_level: Union[str, int] = logging.INFO,
    file_level: Union[str, int] = logging.DEBUG,
    capture_warnings: bool = True
) -> logging.Logger:
    """
    Configure the 'soil_mags' logger for an analysis run.

    A rotating file under `log_dir_path` receives full DEBUG detail
    (decomposition and pruning counts); the Rich console shows stage
    summaries. With `capture_warnings`, empty filter/join/prune results
    raised through `warnings.warn` are written to the same handlers.

    Args:
        log_dir_path:     Directory for the log file (created if missing).
        log_filename:     File name, defaults to 'soil_mags_<timestamp>.log'.
        max_file_size:    Bytes before the file is rotated.
        backup_count:     Rotated files to keep.
        console_level:    Console threshold (name or number).
        file_level:       File threshold (name or number).
        capture_warnings: Route `warnings.warn` output into the log.

    Returns:
        The package logger.
    """
    console_level = _level(console_level, "console_level")
    file_level = _level(file_level, "file_level")

    log_dir_path = Path(log_dir_path)
    log_dir_path.mkdir(parents=True, exist_ok=True)

    if log_filename is None:
        log_filename = datetime.now().strftime("soil_mags_%Y-%m-%d_%H%M%S.log")
    log_file_path = log_dir_path / log_filename

    # ───────────────────────── FILE HANDLER ───────────────────
    file_handler = RotatingFileHandler(
        filename=log_file_path,
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    # ────────────────────── CONSOLE HANDLER ────────────────────
    rich_handler = RichHandler(
        console=Console(theme=LOG_THEME),
        rich_tracebacks=True,
        level=console_level,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format="[%X]",
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))

    for name in MANAGED_LOGGERS:
        managed = logging.getLogger(name)
        _reset_handlers(managed)
        managed.setLevel(logging.DEBUG)
        managed.addHandler(file_handler)
        managed.addHandler(rich_handler)
        managed.propagate = False

    logging.captureWarnings(capture_warnings)

    logger = logging.getLogger(constants.LOGGER_NAME)
    logger.info(f"Logging to {log_file_path}")
    return logger


def logging_options(config: Dict) -> Dict[str, Union[str, int]]:
    """Keyword arguments for `setup_logging` from the 'logging' config section."""
    section = config.get("logging", {}) or {}
    return {
        key: section[key]
        for key in ("console_level", "file_level", "max_file_size", "backup_count")
        if key in section
    }
