"""
Stage catalog lookup.

The catalog is the shop-wide list of manufacturing stages and their
sequence position. It is passed explicitly to the scheduler so that
ordering never depends on global state.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from shopplan.planning.config import PlanningConfig


@dataclass(frozen=True)
class StageDefinition:
    """One entry of the manufacturing stage catalog."""
    name: str
    order: int
    default_days: float = PlanningConfig.DEFAULT_STAGE_DAYS
    active: bool = True
    description: str = ''
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> 'StageDefinition':
        """Build a definition from a dict using either snake_case or camelCase keys."""
        default_days = data.get('default_days', data.get('defaultDays'))
        return cls(
            name=str(data.get('name', '')),
            order=int(data.get('order') or 0),
            default_days=float(default_days) if default_days else PlanningConfig.DEFAULT_STAGE_DAYS,
            active=bool(data.get('active', True)),
            description=str(data.get('description') or ''),
            category=data.get('category'),
        )


class StageCatalog:
    """Read-only lookup of stage definitions by name."""

    def __init__(self, definitions: Iterable[StageDefinition] = ()):
        # Stable sort keeps insertion order for equal ranks
        self._definitions: List[StageDefinition] = sorted(definitions, key=lambda d: d.order)
        self._by_name: Dict[str, StageDefinition] = {d.name: d for d in self._definitions}

    @classmethod
    def from_mapping(cls, orders: Mapping[str, int]) -> 'StageCatalog':
        """Build a catalog from a plain {stage name: order} table."""
        return cls(StageDefinition(name=name, order=order) for name, order in orders.items())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self):
        return iter(self._definitions)

    @property
    def definitions(self) -> List[StageDefinition]:
        return list(self._definitions)

    def get(self, name: str) -> Optional[StageDefinition]:
        return self._by_name.get(name)

    def rank(self, name: str) -> int:
        """
        Get the sequence position for a stage name.

        Returns:
            int: The catalog order, or 0 for names the catalog does not know
        """
        definition = self._by_name.get(name)
        return definition.order if definition else 0

    def is_active(self, name: str) -> bool:
        definition = self._by_name.get(name)
        return bool(definition and definition.active)
