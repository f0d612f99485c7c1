"""Logging setup for scripts embedding the library."""
from __future__ import annotations

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Union[int, str] = "INFO", fmt: Optional[str] = None) -> None:
    """Install a stream handler on the root logger.

    Third-party transport loggers are capped at WARNING so that a DEBUG run
    shows our command traces without every WSMan envelope or SSH packet.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=fmt or LOG_FORMAT)
    for noisy in ("asyncssh", "pypsrp", "requests_credssp", "spnego", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


__all__ = ["configure_logging", "LOG_FORMAT"]
