"""
Service layer for item stage planning.

Loads an item's saved progress/planning, runs one scheduler operation on the
materialized stage list and writes the result back. Each write replaces the
item's whole planning record (last write wins).
"""
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from shopplan.datetime_utils import utcnow
from shopplan.logging_config import PlanningContext, get_logger
from shopplan.models import ItemProgressLog, ManufacturingStage, Order, OrderItem, db
from shopplan.planning.catalog import StageCatalog
from shopplan.planning.engine import Stage, StageScheduler, aggregate_progress
from shopplan.planning.materialize import materialize_stages
from shopplan.planning.rollup import (
    calculate_delivery_status,
    calculate_order_delay,
    calculate_order_progress,
    is_order_overdue,
)

logger = get_logger(__name__)

Operation = Callable[[StageScheduler, List[Stage], Dict[str, float]], Tuple[List[Stage], Dict[str, float]]]


class ItemPlanningService:
    """Service for item stage planning operations."""

    @staticmethod
    def load_catalog() -> StageCatalog:
        """Load the manufacturing stage catalog in sequence order."""
        stages = ManufacturingStage.query.order_by(ManufacturingStage.order.asc()).all()
        return StageCatalog(stage.to_definition() for stage in stages)

    @staticmethod
    def get_item(item_id: int) -> Optional[OrderItem]:
        return db.session.get(OrderItem, item_id)

    @staticmethod
    def load_stages(item: OrderItem, catalog: StageCatalog, reference_date: Optional[date] = None) -> List[Stage]:
        return materialize_stages(catalog, item.progress, item.stage_planning, reference_date)

    @staticmethod
    def describe_item(item: OrderItem, catalog: Optional[StageCatalog] = None,
                      reference_date: Optional[date] = None) -> Dict:
        """
        Build the API view of an item's planning.

        Returns:
            dict: item fields, the full stage list (catalog order) and overall progress
        """
        if catalog is None:
            catalog = ItemPlanningService.load_catalog()

        stages = ItemPlanningService.load_stages(item, catalog, reference_date)
        progress = item.progress or {}
        return {
            'item': item.to_dict(),
            'stages': [stage.to_dict() for stage in stages],
            'progress': progress,
            'overall_progress': aggregate_progress(stages, progress),
        }

    @staticmethod
    def save_item(item: OrderItem, stages: List[Stage], progress: Dict[str, float], operation: str,
                  stage_name: Optional[str] = None, payload: Optional[Dict] = None, commit: bool = True) -> OrderItem:
        """
        Persist the working stage list on the item and record the change.

        Args:
            item: OrderItem to update
            stages: Working stage list after the operation
            progress: Working progress map after the operation
            operation: Operation name for the change log
            stage_name: Stage the operation targeted, if any
            payload: Request data that triggered the change
            commit: Whether to commit the database transaction (default: True)
        """
        progress_before = item.overall_progress
        data = StageScheduler.build_item_payload(stages, progress)

        item.progress = data['progress']
        item.stage_planning = data['stagePlanning']
        item.overall_progress = data['overallProgress']
        item.updated_at = utcnow()

        db.session.add(ItemProgressLog(
            item_id=item.id,
            operation=operation,
            stage_name=stage_name,
            progress_before=progress_before,
            progress_after=item.overall_progress,
            payload=payload,
        ))

        if commit:
            db.session.commit()

        if progress_before != item.overall_progress:
            logger.info(
                "Item progress changed",
                item_id=item.id,
                operation=operation,
                progress_before=progress_before,
                progress_after=item.overall_progress,
            )
        return item

    @staticmethod
    def _apply(item_id: int, operation: str, apply: Operation, stage_name: Optional[str] = None,
               payload: Optional[Dict] = None, reference_date: Optional[date] = None) -> Optional[Dict]:
        item = ItemPlanningService.get_item(item_id)
        if item is None:
            return None

        catalog = ItemPlanningService.load_catalog()
        scheduler = StageScheduler(catalog, reference_date)

        with PlanningContext(operation, item_id=item.id):
            stages = ItemPlanningService.load_stages(item, catalog, reference_date)
            progress = dict(item.progress or {})
            stages, progress = apply(scheduler, stages, progress)
            ItemPlanningService.save_item(item, stages, progress, operation, stage_name, payload)

        return ItemPlanningService.describe_item(item, catalog, reference_date)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    @staticmethod
    def toggle_stage(item_id: int, stage_name: str, reference_date: Optional[date] = None) -> Optional[Dict]:
        """Enable/disable a stage. A disabled stage loses its progress entry."""
        def apply(scheduler, stages, progress):
            was_enabled = any(stage.name == stage_name and stage.enabled for stage in stages)
            stages = scheduler.toggle_stage_enabled(stages, stage_name)
            if was_enabled:
                progress.pop(stage_name, None)
            return stages, progress

        return ItemPlanningService._apply(
            item_id, 'toggle_stage', apply, stage_name, {'stage_name': stage_name}, reference_date
        )

    @staticmethod
    def change_duration(item_id: int, stage_name: str, days: float,
                        reference_date: Optional[date] = None) -> Optional[Dict]:
        def apply(scheduler, stages, progress):
            return scheduler.change_duration(stages, stage_name, days), progress

        return ItemPlanningService._apply(
            item_id, 'change_duration', apply, stage_name, {'stage_name': stage_name, 'days': days}, reference_date
        )

    @staticmethod
    def change_start_date(item_id: int, stage_name: str, start_date: str,
                          reference_date: Optional[date] = None) -> Optional[Dict]:
        def apply(scheduler, stages, progress):
            return scheduler.change_start_date(stages, stage_name, start_date), progress

        return ItemPlanningService._apply(
            item_id, 'change_start_date', apply, stage_name,
            {'stage_name': stage_name, 'start_date': start_date}, reference_date
        )

    @staticmethod
    def change_responsible(item_id: int, stage_name: str, responsible: str,
                           reference_date: Optional[date] = None) -> Optional[Dict]:
        def apply(scheduler, stages, progress):
            return scheduler.change_responsible(stages, stage_name, responsible), progress

        return ItemPlanningService._apply(
            item_id, 'change_responsible', apply, stage_name,
            {'stage_name': stage_name, 'responsible': responsible}, reference_date
        )

    @staticmethod
    def set_progress(item_id: int, stage_name: str, value: float,
                     reference_date: Optional[date] = None) -> Optional[Dict]:
        """Set a stage's completion percentage. Only enabled stages keep progress when saved."""
        def apply(scheduler, stages, progress):
            return stages, scheduler.set_stage_progress(progress, stage_name, value)

        return ItemPlanningService._apply(
            item_id, 'set_progress', apply, stage_name, {'stage_name': stage_name, 'progress': value}, reference_date
        )

    @staticmethod
    def enable_all(item_id: int, reference_date: Optional[date] = None) -> Optional[Dict]:
        def apply(scheduler, stages, progress):
            return scheduler.enable_all_stages(stages, progress)

        return ItemPlanningService._apply(item_id, 'enable_all', apply, reference_date=reference_date)

    @staticmethod
    def recalculate(item_id: int, reference_date: Optional[date] = None) -> Optional[Dict]:
        def apply(scheduler, stages, progress):
            return scheduler.recalculate(stages), progress

        return ItemPlanningService._apply(item_id, 'recalculate', apply, reference_date=reference_date)

    @staticmethod
    def copy_from(item_id: int, source_item_id: int, recalculate: Optional[bool] = None,
                  reference_date: Optional[date] = None) -> Optional[Dict]:
        """
        Copy another item's planning and progress onto this item.

        A source item without any stage progress has nothing to copy; the
        target is returned unchanged and no change is logged.

        Returns:
            dict: Item view, or None if either item does not exist
        """
        source = ItemPlanningService.get_item(source_item_id)
        if source is None:
            return None

        if not source.progress:
            item = ItemPlanningService.get_item(item_id)
            if item is None:
                return None
            logger.info("Copy skipped, source item has no progress", item_id=item_id, source_item_id=source_item_id)
            return ItemPlanningService.describe_item(item, reference_date=reference_date)

        source_planning = dict(source.stage_planning or {})
        source_progress = dict(source.progress or {})

        def apply(scheduler, stages, progress):
            return scheduler.copy_progress_from(source_planning, source_progress, stages, recalculate)

        return ItemPlanningService._apply(
            item_id, 'copy_from', apply,
            payload={'source_item_id': source_item_id, 'recalculate': recalculate},
            reference_date=reference_date,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @staticmethod
    def get_item_history(item_id: int, limit: int = 50) -> List[Dict]:
        logs = (
            ItemProgressLog.query
            .filter_by(item_id=item_id)
            .order_by(ItemProgressLog.changed_at.desc(), ItemProgressLog.id.desc())
            .limit(limit)
            .all()
        )
        return [log.to_dict() for log in logs]

    @staticmethod
    def order_progress_summary(order_id: int, reference_date: Optional[date] = None) -> Optional[Dict]:
        """
        Roll item progress up to the order and compare it with the delivery date.

        Returns:
            dict: Order fields, progress, delay and delivery status, or None if the order does not exist
        """
        order = db.session.get(Order, order_id)
        if order is None:
            return None

        progress = calculate_order_progress(item.overall_progress for item in order.items)
        summary = {
            'order': order.to_dict(),
            'progress': progress,
            'items': [
                {'id': item.id, 'code': item.code, 'overall_progress': item.overall_progress}
                for item in order.items
            ],
            'delay_days': None,
            'overdue': False,
            'delivery_status': None,
        }

        if order.delivery_date is not None:
            delay = calculate_order_delay(order.delivery_date, reference_date)
            summary['delay_days'] = delay
            summary['overdue'] = is_order_overdue(order.delivery_date, progress, reference_date)
            summary['delivery_status'] = calculate_delivery_status(delay)

        return summary
