"""
Priority classification for newly reported problems.
"""

import logging
from typing import NamedTuple

from .geo import GeoPoint
from .locator import SIMILAR_PROBLEM_RADIUS_M, Locator

logger = logging.getLogger(__name__)

PRIORITY_LOW = 1
PRIORITY_MEDIUM = 2
PRIORITY_HIGH = 3


class Classification(NamedTuple):
    priority: int
    frequency: int


def priority_for_frequency(frequency: int) -> int:
    """
    Map a similar-problem frequency to a priority tier.

    Note:
        frequency always includes the problem being classified, so the
        low-priority branch (frequency == 0) is never taken in practice
        and single reports land on medium. Kept as-is pending product
        clarification.
    """
    if frequency >= 3:
        return PRIORITY_HIGH
    if frequency == 0:
        return PRIORITY_LOW
    return PRIORITY_MEDIUM


def classify(
    locator: Locator,
    point: GeoPoint,
    category: str
) -> Classification:
    """
    Derive priority and frequency for a problem about to be created.

    Args:
        locator: Spatial lookup bound to the current session
        point: Problem location
        category: Problem category

    Returns:
        Classification: priority (1-3) and frequency (similar + 1)

    Note:
        Never raises on lookup failure; the count falls back to 0 and
        a warning is logged so problem creation can proceed.
    """
    try:
        similar = locator.count_similar(
            point,
            category,
            SIMILAR_PROBLEM_RADIUS_M
        )
    except Exception as e:
        logger.warning(
            f"Similar problem lookup failed for {category} at "
            f"({point.longitude}, {point.latitude}): {e}"
        )
        similar = 0

    frequency = similar + 1
    return Classification(
        priority=priority_for_frequency(frequency),
        frequency=frequency
    )
