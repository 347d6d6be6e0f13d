from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..starling.models import FeedItem

PENCE_PER_POUND = 100


def item_round_up(amount_minor_units: int) -> int:
    """
    Pence needed to lift a spend to the next whole pound.

    450 -> 50, 500 -> 0, 1 -> 99. Amounts <= 0 never round up.
    """
    if amount_minor_units <= 0:
        return 0
    rounded = ((amount_minor_units + PENCE_PER_POUND - 1) // PENCE_PER_POUND) * PENCE_PER_POUND
    return rounded - amount_minor_units


def compute_round_up(items: Iterable[FeedItem]) -> int:
    return sum(item_round_up(it.amount_minor_units) for it in items)


@dataclass(frozen=True)
class RoundUpResult:
    total_minor_units: int
    items_count: int

    @classmethod
    def from_items(cls, items: Iterable[FeedItem]) -> "RoundUpResult":
        items = list(items)
        return cls(total_minor_units=compute_round_up(items), items_count=len(items))
