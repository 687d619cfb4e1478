"""Logging setup shared by the CLI and worker processes."""

import logging
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(processName)s %(name)s: %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO, logfile: Optional[str] = None) -> None:
    """Configure the root logger once per process.

    Spawned worker processes do not inherit handlers, so workers call this
    on startup too; it is a no-op when handlers are already installed.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return

    handlers = [logging.StreamHandler(sys.stderr)]
    if logfile:
        handlers.append(logging.FileHandler(logfile, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
