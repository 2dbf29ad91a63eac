"""
Logging configuration for the service pricing engine.

``setup_logging`` attaches a console handler (and optionally a file
handler) to the root logger. Library modules only create module loggers;
configuration is left to the entry points (API, UI, scripts).
"""
import logging
from pathlib import Path
from typing import Optional, Union


def setup_logging(level: str = "INFO", logfile: Optional[Union[str, Path]] = None) -> None:
    """Configure the root logger once.

    If handlers are already attached (tests, repeated app creation) the
    call is a no-op.
    """
    logger = logging.getLogger()
    if logger.handlers:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
