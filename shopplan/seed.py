"""
Seed the manufacturing stage catalog.
"""
from shopplan.logging_config import get_logger
from shopplan.models import ManufacturingStage, db
from shopplan.planning.config import PlanningConfig

logger = get_logger(__name__)


def seed_default_stages(stage_names=None, commit=True):
    """
    Add the default manufacturing stages that are missing from the catalog.

    Existing stages are left as they are (order, days and active flag may have
    been edited since). New stages are appended after the highest existing order.

    Args:
        stage_names: Stage names in sequence order (defaults to PlanningConfig.DEFAULT_STAGES)
        commit: Whether to commit the database transaction (default: True)

    Returns:
        dict: Summary with created and existing stage counts
    """
    stage_names = stage_names or PlanningConfig.DEFAULT_STAGES

    existing = {stage.name: stage for stage in ManufacturingStage.query.all()}
    next_order = max((stage.order or 0 for stage in existing.values()), default=0) + 1

    created = []
    for name in stage_names:
        if name in existing:
            continue
        db.session.add(ManufacturingStage(
            name=name,
            order=next_order,
            active=True,
            default_days=PlanningConfig.DEFAULT_STAGE_DAYS,
        ))
        created.append(name)
        next_order += 1

    if commit:
        db.session.commit()

    logger.info("Stage catalog seeded", created=len(created), existing=len(existing))
    return {
        'created': len(created),
        'existing': len(existing),
        'created_stages': created,
    }
