"""
Stage plan export (CSV / Excel).
"""
import io
from typing import Mapping, Optional, Sequence, Tuple

import pandas as pd

from shopplan.planning.catalog import StageCatalog
from shopplan.planning.engine import Stage, safe_number

EXPORT_COLUMNS = ["Stage", "Order", "Days", "Start", "End", "Responsible", "Progress %"]

EXPORT_FORMATS = {
    'csv': ('text/csv', 'csv'),
    'xlsx': ('application/vnd.openxmlformats-officedocument.spreadsheetml.sheet', 'xlsx'),
}


def stage_plan_dataframe(stages: Sequence[Stage], progress: Optional[Mapping[str, float]],
                         catalog: StageCatalog) -> pd.DataFrame:
    """
    Tabulate an item's enabled stages in catalog order.

    Args:
        stages: Working stage list
        progress: Stage name → percent complete
        catalog: Stage catalog used for ordering

    Returns:
        DataFrame with EXPORT_COLUMNS
    """
    progress = progress or {}
    enabled = sorted((s for s in stages if s.enabled), key=lambda s: catalog.rank(s.name))
    return pd.DataFrame(
        [
            {
                "Stage": stage.name,
                "Order": catalog.rank(stage.name),
                "Days": stage.days,
                "Start": stage.start_date,
                "End": stage.end_date,
                "Responsible": stage.responsible,
                "Progress %": safe_number(progress.get(stage.name, 0)),
            }
            for stage in enabled
        ],
        columns=EXPORT_COLUMNS,
    )


def export_stage_plan(stages: Sequence[Stage], progress: Optional[Mapping[str, float]],
                      catalog: StageCatalog, fmt: str = 'csv') -> Tuple[bytes, str, str]:
    """
    Render an item's stage plan as a downloadable file.

    Returns:
        (content, mimetype, file extension)

    Raises:
        ValueError: If fmt is not 'csv' or 'xlsx'
    """
    fmt = (fmt or 'csv').lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}. Use one of: {', '.join(EXPORT_FORMATS)}")

    df = stage_plan_dataframe(stages, progress, catalog)
    mimetype, extension = EXPORT_FORMATS[fmt]

    if fmt == 'csv':
        return df.to_csv(index=False).encode('utf-8'), mimetype, extension

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name='Stage Plan')
    return buffer.getvalue(), mimetype, extension
