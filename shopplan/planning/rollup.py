"""
Order-level progress roll-up.

Items report an overall progress percentage; these helpers combine them
into order progress and compare it against the delivery date.
"""

from datetime import date
from typing import Iterable, Optional

from shopplan.datetime_utils import parse_iso_date
from shopplan.planning.config import PlanningConfig
from shopplan.planning.engine import round_half_up, safe_number


def calculate_order_progress(item_progresses: Iterable[Optional[float]]) -> int:
    """
    Calculate order progress as the mean of its items' overall progress.

    Args:
        item_progresses: Overall progress of each item (None counts as 0)

    Returns:
        int: Progress percentage (0-100), 0 for an order without items
    """
    values = [safe_number(value) for value in item_progresses]
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def calculate_order_delay(delivery_date, reference_date: Optional[date] = None) -> int:
    """
    Days between the delivery date and the reference date.

    Returns:
        int: Positive when the order is late, negative when there is time left
    """
    today = reference_date or date.today()
    delivery = parse_iso_date(delivery_date, default=today)
    return (today - delivery).days


def is_order_overdue(delivery_date, progress: Optional[float], reference_date: Optional[date] = None) -> bool:
    """An order is overdue when its delivery date has passed and it is not complete."""
    return calculate_order_delay(delivery_date, reference_date) > 0 and safe_number(progress) < 100


def calculate_delivery_status(delay: int) -> int:
    """
    Classify an order delay.

    Returns:
        int:
        -2: very late (more than 7 days)
        -1: late (1-7 days)
         0: on time
         1: ahead (1-6 days)
         2: well ahead (7+ days)
    """
    window = PlanningConfig.DELIVERY_STATUS_WINDOW_DAYS
    if delay > window:
        return -2
    if delay > 0:
        return -1
    if delay == 0:
        return 0
    if delay > -window:
        return 1
    return 2
