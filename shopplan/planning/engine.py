"""
Pure business logic engine for item stage planning.
Contains no database dependencies - works with plain data structures.

The scheduler keeps the start/end dates of an item's enabled stages chained
in catalog order: every enabled stage starts on the day its predecessor ends,
and ends a whole number of working days (Monday-Friday) after it starts.
"""
import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from shopplan.datetime_utils import add_business_days, parse_iso_date, to_iso
from shopplan.planning.catalog import StageCatalog
from shopplan.planning.config import PlanningConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    """One manufacturing stage of an order item, as seen by the scheduler."""
    name: str
    enabled: bool = False
    days: float = PlanningConfig.DEFAULT_STAGE_DAYS
    start_date: str = ''
    end_date: str = ''
    responsible: str = ''

    def to_planning(self) -> Dict[str, object]:
        """Persisted stagePlanning entry for this stage."""
        return {
            'days': self.days,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'responsible': self.responsible,
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            'name': self.name,
            'enabled': self.enabled,
            'days': self.days,
            'start_date': self.start_date,
            'end_date': self.end_date,
            'responsible': self.responsible,
        }


def safe_number(value, default: float = 0.0) -> float:
    """Convert value to a finite float, returning default for anything else."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def compute_end_date(start_date, days, reference_date: Optional[date] = None) -> str:
    """
    Calculate the end date of a stage.

    Rules:
    - days < 1 (including 0, negative and fractional values) → ends on the start date
    - days >= 1 → advance floor(days) working days, skipping Saturdays and Sundays.
      The fractional remainder is dropped (2.7 days ends like 2 days).
    - an end date past the last representable date → '9999-12-31'

    Args:
        start_date: Stage start (date or ISO string). Unparseable → reference_date.
        days: Working-day duration. Non-numeric → 0.
        reference_date: Stands in for "today" (defaults to date.today())

    Returns:
        str: End date as 'YYYY-MM-DD'
    """
    start = parse_iso_date(start_date, default=reference_date or date.today())
    duration = safe_number(days)

    if duration < 1:
        return to_iso(start)

    try:
        return to_iso(add_business_days(start, math.floor(duration)))
    except OverflowError:
        logger.debug("End date out of range for start %s and %r days", start, days)
        return to_iso(date.max)


def aggregate_progress(stages: Sequence[Stage], progress: Optional[Mapping[str, float]]) -> int:
    """
    Overall progress of an item: mean of the enabled stages' percentages.

    Stages without a progress entry count as 0. Returns 0 when no stage is enabled.
    """
    enabled = [stage for stage in stages if stage.enabled]
    if not enabled:
        return 0

    progress = progress or {}
    total = sum(safe_number(progress.get(stage.name, 0)) for stage in enabled)
    return round_half_up(total / len(enabled))


class StageScheduler:
    """
    Maintains the date chain across an item's enabled stages.

    Every operation takes a snapshot of the stage list and returns a new list
    in the same order as its input. Inputs are never mutated.
    """

    def __init__(self, catalog: StageCatalog, reference_date: Optional[date] = None):
        self.catalog = catalog
        self.reference_date = reference_date

    def today(self) -> date:
        return self.reference_date or date.today()

    def compute_end_date(self, start_date, days) -> str:
        return compute_end_date(start_date, days, self.today())

    def normalize_date(self, value) -> str:
        """ISO form of value, or today's date if it cannot be parsed."""
        return to_iso(parse_iso_date(value, default=self.today()))

    def sorted_enabled(self, stages: Sequence[Stage]) -> List[Stage]:
        """Enabled stages in catalog order."""
        return sorted(
            (stage for stage in stages if stage.enabled),
            key=lambda stage: self.catalog.rank(stage.name),
        )

    # ------------------------------------------------------------------
    # Chain recalculation
    # ------------------------------------------------------------------
    def recalculate(self, stages: Sequence[Stage], changed_stage_name: Optional[str] = None) -> List[Stage]:
        """
        Recompute start/end dates across the enabled stages.

        Without changed_stage_name the whole chain is rebuilt from the first
        enabled stage's start date. With it, only the changed stage and the
        stages after it are recomputed; earlier stages are left alone. A changed
        stage that is not enabled leaves the chain as it is.

        Args:
            stages: Full stage list (enabled and disabled)
            changed_stage_name: Stage whose days, enabled flag or start date just changed

        Returns:
            list: New stage list in the input order. Disabled stages pass through.
        """
        stages = list(stages)
        chain = self.sorted_enabled(stages)
        if not chain:
            return stages

        if changed_stage_name is None:
            head = chain[0]
            chain[0] = replace(head, start_date=self.normalize_date(head.start_date))
            return self._merge(stages, self._propagate(chain, 0))

        position = self._chain_index(chain, changed_stage_name)
        if position is None:
            logger.debug("Stage %r is not enabled, chain left unchanged", changed_stage_name)
            return stages

        return self._merge(stages, self._propagate(chain, position))

    def _propagate(self, chain: List[Stage], start: int) -> List[Stage]:
        chain = list(chain)
        head = chain[start]
        chain[start] = replace(head, end_date=self.compute_end_date(head.start_date, head.days))

        for i in range(start + 1, len(chain)):
            previous_end = chain[i - 1].end_date
            chain[i] = replace(
                chain[i],
                start_date=previous_end,
                end_date=self.compute_end_date(previous_end, chain[i].days),
            )
        return chain

    def _successor_index(self, chain: List[Stage], stage_name: str) -> Optional[int]:
        """Position in the chain of the first enabled stage ranked after stage_name."""
        rank = self.catalog.rank(stage_name)
        for i, stage in enumerate(chain):
            if self.catalog.rank(stage.name) > rank:
                return i
        return None

    @staticmethod
    def _merge(stages: Sequence[Stage], chain: Sequence[Stage]) -> List[Stage]:
        updated = {stage.name: stage for stage in chain}
        return [updated.get(stage.name, stage) if stage.enabled else stage for stage in stages]

    @staticmethod
    def _chain_index(chain: Sequence[Stage], stage_name: str) -> Optional[int]:
        for i, stage in enumerate(chain):
            if stage.name == stage_name:
                return i
        return None

    @staticmethod
    def _index_of(stages: Sequence[Stage], stage_name: str) -> Optional[int]:
        for i, stage in enumerate(stages):
            if stage.name == stage_name:
                return i
        return None

    # ------------------------------------------------------------------
    # Single-field edits
    # ------------------------------------------------------------------
    def toggle_stage_enabled(self, stages: Sequence[Stage], stage_name: str) -> List[Stage]:
        """
        Enable or disable a stage and fold it into (or out of) the date chain.

        A stage that becomes enabled behind another enabled stage starts on its
        predecessor's end date. When a stage is disabled, the next enabled stage
        moves up to its new predecessor's end date. Clearing the progress of a
        disabled stage is left to the caller.
        """
        stages = list(stages)
        index = self._index_of(stages, stage_name)
        if index is None:
            return stages

        toggled = replace(stages[index], enabled=not stages[index].enabled)
        stages[index] = toggled
        chain = self.sorted_enabled(stages)

        if toggled.enabled:
            position = self._chain_index(chain, stage_name)
            if position:
                stages[index] = replace(toggled, start_date=chain[position - 1].end_date)
            return self.recalculate(stages, stage_name)

        position = self._successor_index(chain, stage_name)
        if position is None:
            return stages

        successor = chain[position]
        if position > 0:
            successor_index = self._index_of(stages, successor.name)
            stages[successor_index] = replace(successor, start_date=chain[position - 1].end_date)
        return self.recalculate(stages, successor.name)

    def change_duration(self, stages: Sequence[Stage], stage_name: str, new_days) -> List[Stage]:
        """Set a stage's duration. Values below MIN_STAGE_DAYS are ignored."""
        stages = list(stages)
        days = safe_number(new_days)
        if days < PlanningConfig.MIN_STAGE_DAYS:
            logger.debug("Ignoring duration %r for stage %r", new_days, stage_name)
            return stages

        index = self._index_of(stages, stage_name)
        if index is None:
            return stages

        stage = stages[index]
        stages[index] = replace(stage, days=days, end_date=self.compute_end_date(stage.start_date, days))
        return self.recalculate(stages, stage_name)

    def change_start_date(self, stages: Sequence[Stage], stage_name: str, new_start_date) -> List[Stage]:
        """
        Set a stage's start date directly and re-chain everything after it.

        This is the one edit allowed to move a stage off its predecessor's end date.
        """
        stages = list(stages)
        index = self._index_of(stages, stage_name)
        if index is None:
            return stages

        stage = stages[index]
        start = self.normalize_date(new_start_date)
        stages[index] = replace(stage, start_date=start, end_date=self.compute_end_date(start, stage.days))
        return self.recalculate(stages, stage_name)

    def change_responsible(self, stages: Sequence[Stage], stage_name: str, responsible) -> List[Stage]:
        stages = list(stages)
        index = self._index_of(stages, stage_name)
        if index is not None:
            stages[index] = replace(stages[index], responsible=str(responsible or '').strip())
        return stages

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------
    @staticmethod
    def aggregate_progress(stages: Sequence[Stage], progress: Optional[Mapping[str, float]]) -> int:
        return aggregate_progress(stages, progress)

    @staticmethod
    def set_stage_progress(progress: Optional[Mapping[str, float]], stage_name: str, value) -> Dict[str, float]:
        """Return a new progress map with the stage's percentage clamped to 0-100."""
        updated = dict(progress or {})
        updated[stage_name] = PlanningConfig.clamp_progress(safe_number(value))
        return updated

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------
    def copy_progress_from(
        self,
        source_planning: Optional[Mapping[str, Mapping]],
        source_progress: Optional[Mapping[str, float]],
        target_stages: Sequence[Stage],
        recalculate: Optional[bool] = None,
    ) -> Tuple[List[Stage], Dict[str, float]]:
        """
        Copy another item's planning onto this item's stages.

        Every target stage with a source planning entry takes the source's days,
        dates and responsible, and becomes enabled. Other stages are untouched.
        The source progress map replaces the target's.

        Args:
            source_planning: Source item's stagePlanning map
            source_progress: Source item's progress map
            target_stages: This item's stage list
            recalculate: Re-chain all dates after copying
                         (defaults to PlanningConfig.RECALCULATE_AFTER_COPY)

        Returns:
            (stages, progress)
        """
        if recalculate is None:
            recalculate = PlanningConfig.RECALCULATE_AFTER_COPY

        source_planning = source_planning or {}
        copied = []
        for stage in target_stages:
            plan = source_planning.get(stage.name)
            if isinstance(plan, Mapping):
                stage = replace(
                    stage,
                    enabled=True,
                    days=safe_number(plan.get('days'), default=stage.days),
                    start_date=str(plan.get('startDate') or stage.start_date),
                    end_date=str(plan.get('endDate') or stage.end_date),
                    responsible=str(plan.get('responsible') or ''),
                )
            copied.append(stage)

        if recalculate:
            copied = self.recalculate(copied)

        return copied, dict(source_progress or {})

    def enable_all_stages(
        self,
        stages: Sequence[Stage],
        progress: Optional[Mapping[str, float]],
    ) -> Tuple[List[Stage], Dict[str, float]]:
        """
        Enable every stage that is active in the catalog and rebuild the chain.

        Newly enabled stages without a progress entry start at 0.
        """
        enabled = [
            replace(stage, enabled=True) if self.catalog.is_active(stage.name) else stage
            for stage in stages
        ]
        enabled = self.recalculate(enabled)

        updated_progress = dict(progress or {})
        for stage in enabled:
            if stage.enabled and stage.name not in updated_progress:
                updated_progress[stage.name] = 0
        return enabled, updated_progress

    def remove_stage(self, stages: Sequence[Stage], stage_name: str) -> List[Stage]:
        """Drop a stage from the working list and rebuild the chain."""
        return self.recalculate([stage for stage in stages if stage.name != stage_name])

    @staticmethod
    def build_item_payload(stages: Sequence[Stage], progress: Optional[Mapping[str, float]]) -> Dict[str, object]:
        """
        Build the persisted item fields from the working stage list.

        Only enabled stages are written; a missing progress entry is saved as 0.
        """
        progress = progress or {}
        enabled = [stage for stage in stages if stage.enabled]
        return {
            'progress': {stage.name: progress.get(stage.name) or 0 for stage in enabled},
            'stagePlanning': {stage.name: stage.to_planning() for stage in enabled},
            'overallProgress': aggregate_progress(stages, progress),
        }
