"""
Logger factory for the gateway modules.
Every carrier adapter and client asks for its own named logger here.
"""
import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%d.%m.%Y %H:%M:%S'


def _level_from_env(default: int) -> int:
    raw = (os.getenv("LOG_LEVEL") or "").strip().upper()
    level = logging.getLevelName(raw) if raw else default
    return level if isinstance(level, int) else default


def create_module_logger(
    module_name: str,
    log_subdir: str = "gateway",
    console_level: int | None = None,
    file_level: int = logging.INFO,
    file_name: str | None = None,
) -> logging.Logger:
    """
    Builds a named logger with a stderr handler and, when LOG_DIR is set,
    a file handler under LOG_DIR/<log_subdir>/.

    Args:
        module_name: Logger name (e.g. 'cargo_gateway.aras')
        log_subdir: Sub directory below LOG_DIR
        console_level: Console level (default: LOG_LEVEL env or WARNING)
        file_level: File handler level
        file_name: Log file name (default: {log_subdir}.log)
    """
    logger = logging.getLogger(module_name)
    logger.setLevel(logging.DEBUG)  # handlers do the filtering

    # No duplicate handlers on re-import
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level if console_level is not None else _level_from_env(logging.WARNING))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_root = os.getenv("LOG_DIR")
    if log_root:
        log_dir = Path(log_root) / log_subdir
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / (file_name or f"{log_subdir}.log"), encoding='utf-8')
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    return create_module_logger(f"cargo_gateway.{name}")
