"""Shared logging helpers."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once, INFO level with a terse CLI format by default.

    Pass ``force=True`` to reconfigure during tests or from another entry point.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # botocore logs every request at DEBUG
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))
