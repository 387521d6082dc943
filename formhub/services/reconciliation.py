from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

RowT = TypeVar("RowT")
ItemT = TypeVar("ItemT")


@dataclass
class ReconciliationPlan(Generic[RowT, ItemT]):
    to_delete: list[RowT] = field(default_factory=list)
    to_update: list[tuple[RowT, ItemT, int]] = field(default_factory=list)
    to_create: list[tuple[ItemT, int]] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not (self.to_delete or self.to_update or self.to_create)


def _key(value: Any) -> str:
    return str(value or "").strip().lower()


def plan_reconciliation(
    existing: Iterable[RowT],
    incoming: Sequence[ItemT],
    *,
    row_id: Callable[[RowT], Any] = lambda row: getattr(row, "id"),
    item_id: Callable[[ItemT], Any] = lambda item: getattr(item, "id", None),
) -> ReconciliationPlan[RowT, ItemT]:
    """Diff persisted rows against an incoming ordered list by id.

    Incoming items whose id matches a persisted row are updates; items with no
    id or an id that is not persisted are creates; persisted rows not claimed
    by any incoming item are deletes. Positions are indices in ``incoming`` and
    become the new dense order. When the same id appears twice, only the first
    occurrence claims the row and later ones are created as new rows.
    """
    old_by_id: dict[str, RowT] = {}
    for row in existing:
        old_by_id[_key(row_id(row))] = row

    claimed: dict[str, int] = {}
    plan: ReconciliationPlan[RowT, ItemT] = ReconciliationPlan()
    for position, item in enumerate(incoming):
        key = _key(item_id(item))
        if key and key in old_by_id and key not in claimed:
            claimed[key] = position
            plan.to_update.append((old_by_id[key], item, position))
        else:
            plan.to_create.append((item, position))

    plan.to_delete = [row for key, row in old_by_id.items() if key not in claimed]
    return plan
