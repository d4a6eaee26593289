"""
smotree.logging - Centralized logging configuration.

The timecode engine and the renderers never log; the store and the review
service report what they persist at DEBUG level.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("smotree")


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the smotree package.

    Args:
        verbose: If True, enable DEBUG level logging; otherwise WARNING level
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    logger.setLevel(level)
