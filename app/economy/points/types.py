from __future__ import annotations

from enum import Enum


class PointsSource(str, Enum):
    PURCHASE = "PURCHASE"
    MANUAL = "MANUAL"
    ACTIVITY = "ACTIVITY"
    ATTENDANCE = "ATTENDANCE"
    REQUIREMENT = "REQUIREMENT"


AWARD_SOURCES = frozenset(
    {
        PointsSource.ACTIVITY.value,
        PointsSource.ATTENDANCE.value,
        PointsSource.REQUIREMENT.value,
    }
)
