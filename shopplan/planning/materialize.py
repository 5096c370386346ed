"""
Build an item's working stage list from the catalog and its saved data.
"""
from datetime import date
from typing import Iterable, List, Mapping, Optional

from shopplan.datetime_utils import to_iso
from shopplan.planning.catalog import StageDefinition
from shopplan.planning.config import PlanningConfig
from shopplan.planning.engine import Stage, compute_end_date, safe_number


def materialize_stages(
    definitions: Iterable[StageDefinition],
    progress: Optional[Mapping[str, float]] = None,
    planning: Optional[Mapping[str, Mapping]] = None,
    reference_date: Optional[date] = None,
) -> List[Stage]:
    """
    Merge the stage catalog with an item's saved progress and planning.

    Merge policy:
    - One stage per catalog definition, in catalog order
    - A stage is enabled only if the item has a progress entry for it
    - Saved planning fields win; missing ones default to the catalog's
      default_days, the reference date, the computed end date and no responsible

    Args:
        definitions: Catalog entries (a StageCatalog works too)
        progress: Item's progress map (stage name → percent)
        planning: Item's stagePlanning map (stage name → days/startDate/endDate/responsible)
        reference_date: Stands in for "today" (defaults to date.today())

    Returns:
        list: Stage values ready for the scheduler
    """
    today = reference_date or date.today()
    progress = progress or {}
    planning = planning or {}

    stages = []
    for definition in sorted(definitions, key=lambda d: d.order):
        plan = planning.get(definition.name)
        if not isinstance(plan, Mapping):
            plan = {}

        default_days = definition.default_days or PlanningConfig.DEFAULT_STAGE_DAYS
        days = safe_number(plan['days'], default=default_days) if 'days' in plan else default_days
        start_date = str(plan.get('startDate') or to_iso(today))
        end_date = str(plan.get('endDate') or compute_end_date(start_date, days, today))

        stages.append(Stage(
            name=definition.name,
            enabled=definition.name in progress,
            days=days,
            start_date=start_date,
            end_date=end_date,
            responsible=str(plan.get('responsible') or ''),
        ))

    return stages
