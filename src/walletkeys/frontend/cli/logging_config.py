"""Logging setup for the walletkeys command line."""

import logging
import sys


def configure_logging(level: int = logging.WARNING) -> None:
    # stderr only; stdout carries keys and JSON records
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
