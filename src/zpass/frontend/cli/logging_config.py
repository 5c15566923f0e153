"""Logging setup for the zpass command line."""

import logging
import sys


def configure_logging(level: int = logging.WARNING) -> None:
    # stdout is reserved for command output (passwords, exports); logs go to stderr.
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
