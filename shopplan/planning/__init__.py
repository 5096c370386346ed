"""
Stage planning module for order items.

Keeps the start/end dates of an item's manufacturing stages chained in
catalog order, skipping weekends, and rolls stage progress up to the item
and the order. The engine, catalog, materialize and rollup modules are pure;
service, export and routes sit on top of the database and Flask.
"""

from shopplan.planning.config import PlanningConfig
from shopplan.planning.catalog import StageCatalog, StageDefinition
from shopplan.planning.engine import (
    Stage,
    StageScheduler,
    aggregate_progress,
    compute_end_date,
)
from shopplan.planning.materialize import materialize_stages
from shopplan.planning.rollup import (
    calculate_delivery_status,
    calculate_order_delay,
    calculate_order_progress,
    is_order_overdue,
)

__all__ = [
    'PlanningConfig',
    'StageCatalog',
    'StageDefinition',
    'Stage',
    'StageScheduler',
    'aggregate_progress',
    'compute_end_date',
    'materialize_stages',
    'calculate_delivery_status',
    'calculate_order_delay',
    'calculate_order_progress',
    'is_order_overdue',
]
