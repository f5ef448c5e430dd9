"""Logging setup. Output goes to stderr because stdout carries the stdio protocol."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s]: %(message)s"

_installed: List[logging.Handler] = []


def setup_logging(level: Union[int, str] = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the ``letta_mcp`` logger.

    Installs a rich console handler on stderr and, when ``log_file`` is set,
    a plain file handler. Calling it again replaces the handlers installed by
    the previous call.
    """
    root = logging.getLogger("letta_mcp")

    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    _installed.append(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        _installed.append(file_handler)

    for handler in _installed:
        root.addHandler(handler)

    if isinstance(level, str):
        level = level.upper()
    root.setLevel(level)
    root.propagate = False
    return root
