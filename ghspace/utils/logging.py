"""Logging for ghspace.

Every module logs through ``setup_logger(__name__)``. Loggers are kept in a
registry so that repeated setup never stacks handlers, and
``shutdown_logging`` closes them all (the test suite calls it between tests).
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Dict, Optional, Union

_CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

_registry: Dict[str, logging.Logger] = {}
_registry_lock = threading.Lock()


def setup_logger(name: str, level: str = "INFO",
                 log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Logger writing to stdout and, optionally, to ``log_file``.

    A name that was already set up returns the registered logger unchanged.

    Raises:
        ValueError: If ``level`` is not a standard logging level name
    """
    with _registry_lock:
        registered = _registry.get(name)
        if registered is not None:
            return registered

        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Invalid log level: {level}")

        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        logger.handlers.clear()
        logger.propagate = False

        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        logger.addHandler(console)

        if log_file is not None:
            path = Path(log_file)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                handler = logging.FileHandler(path, mode='a')
            except OSError as e:
                logger.warning(f"Logging to {path} disabled: {e}")
            else:
                handler.setFormatter(logging.Formatter(_FILE_FORMAT))
                logger.addHandler(handler)

        _registry[name] = logger
        return logger


def get_logger(name: str) -> logging.Logger:
    return _registry.get(name) or setup_logger(name)


def shutdown_logging() -> None:
    """Close and detach the handlers of every registered logger."""
    with _registry_lock:
        for logger in _registry.values():
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
        _registry.clear()
