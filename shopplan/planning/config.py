"""
Planning configuration module.

This module defines the fixed parameters used by the stage scheduler
and the item progress screens.
"""

from typing import List


class PlanningConfig:
    """
    Configuration for stage planning calculations.

    Values mirror the behavior the shop floor already relies on.
    """

    # Durations below this are ignored by change_duration
    MIN_STAGE_DAYS: float = 0.1

    # Used when a catalog entry has no default_days
    DEFAULT_STAGE_DAYS: float = 1.0

    # Progress is a percentage
    MIN_PROGRESS: int = 0
    MAX_PROGRESS: int = 100

    # Copying planning from another item re-chains all dates afterwards
    RECALCULATE_AFTER_COPY: bool = True

    # Delivery status thresholds (days late / early)
    DELIVERY_STATUS_WINDOW_DAYS: int = 7

    # Default stage catalog, in manufacturing order
    DEFAULT_STAGES: List[str] = [
        'Material Listing',
        'Material Purchasing',
        'Material Receiving',
        'Preparation',
        'External Bending',
        'Assembly',
        'Dimensional Inspection',
        'Welding',
        'Visual Weld Inspection',
        'Ultrasonic Testing',
        'Straightening',
        'Initial Finishing',
        'Penetrant Testing',
        'Heat Treatment',
        'Machining',
        'Drilling',
        'Component Assembly',
        'Final Finishing',
        'Blasting',
        'Rubber Lining',
        'Painting',
        'Final Inspection',
        'Shipping',
    ]

    @classmethod
    def clamp_progress(cls, value: float) -> float:
        """
        Clamp a progress value to the allowed percentage range.

        Args:
            value: Raw progress value

        Returns:
            float: Value bounded to MIN_PROGRESS..MAX_PROGRESS
        """
        return min(cls.MAX_PROGRESS, max(cls.MIN_PROGRESS, value))
