"""
Checklist summaries — derived and frozen values.

ChecklistSummary is recomputed from the items on every checklist
mutation. ChecklistSnapshot is the immutable copy captured into audit
records (modification requests) at transition time.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

UNGRADED = 'UNGRADED'
TWO_PLACES = Decimal('0.01')


def _avg(total: Decimal, count: int) -> Decimal:
    if not count:
        return Decimal('0.00')
    return (total / count).quantize(TWO_PLACES)


@dataclass(frozen=True)
class LotSummary:
    """Items of one lot inside a checklist."""

    lot_id: int
    lot_number: int
    total_bales: int
    total_weight: Decimal
    average_weight: Decimal
    average_quality: Decimal | None = None
    grades: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            'lot_id': self.lot_id,
            'lot_number': self.lot_number,
            'total_bales': self.total_bales,
            'total_weight': str(self.total_weight),
            'average_weight': str(self.average_weight),
            'average_quality': None if self.average_quality is None else str(self.average_quality),
            'grades': dict(self.grades),
        }


@dataclass(frozen=True)
class ChecklistSummary:
    """Per-lot breakdown plus checklist totals."""

    lots: tuple[LotSummary, ...] = ()
    total_items: int = 0
    total_weight: Decimal = Decimal('0.00')

    @classmethod
    def from_items(cls, items: Iterable) -> ChecklistSummary:
        """
        Build a summary from checklist items.

        Items need ``lot_id``, ``lot_number``, ``net_weight``, ``grade`` and
        ``quality_score`` (may be None).
        """
        groups: dict[int, list] = {}
        for item in items:
            groups.setdefault(item.lot_id, []).append(item)

        lots = []
        for lot_id, lot_items in groups.items():
            weight = sum((i.net_weight for i in lot_items), Decimal('0'))
            scores = [i.quality_score for i in lot_items if i.quality_score is not None]
            lots.append(LotSummary(
                lot_id=lot_id,
                lot_number=lot_items[0].lot_number,
                total_bales=len(lot_items),
                total_weight=weight,
                average_weight=_avg(weight, len(lot_items)),
                average_quality=_avg(sum(scores, Decimal('0')), len(scores)) if scores else None,
                grades=dict(Counter(i.grade or UNGRADED for i in lot_items)),
            ))
        lots.sort(key=lambda s: (s.lot_number, s.lot_id))

        return cls(
            lots=tuple(lots),
            total_items=sum(s.total_bales for s in lots),
            total_weight=sum((s.total_weight for s in lots), Decimal('0')),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            'lots': [s.as_dict() for s in self.lots],
            'total_items': self.total_items,
            'total_weight': str(self.total_weight),
        }


@dataclass(frozen=True)
class ChecklistSnapshot:
    """Frozen checklist totals for audit comparison."""

    total_bales: int
    total_weight: Decimal
    lots_count: int
    average_weight: Decimal

    @classmethod
    def from_summary(cls, summary: ChecklistSummary) -> ChecklistSnapshot:
        return cls(
            total_bales=summary.total_items,
            total_weight=summary.total_weight,
            lots_count=len(summary.lots),
            average_weight=_avg(summary.total_weight, summary.total_items),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChecklistSnapshot:
        return cls(
            total_bales=int(data['total_bales']),
            total_weight=Decimal(data['total_weight']),
            lots_count=int(data['lots_count']),
            average_weight=Decimal(data['average_weight']),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            'total_bales': self.total_bales,
            'total_weight': str(self.total_weight),
            'lots_count': self.lots_count,
            'average_weight': str(self.average_weight),
        }
