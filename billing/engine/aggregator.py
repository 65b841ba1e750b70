"""
Bill aggregator.

Folds priced line items into bill totals. Totals are the sum of the already
rounded per-line values (sum-of-rounded, not round-of-sum), and are always
recomputed from the items rather than trusted from a cache.
"""

from dataclasses import dataclass
from typing import Iterable

from billing.engine.calculator import price_line_item
from billing.exceptions import EmptyBill
from billing.models import BillItem, ServiceReference


@dataclass(frozen=True)
class BillTotals:
    """Summed amounts for a set of line items, in cents."""

    subtotal_cents: int = 0
    discount_amount_cents: int = 0
    tax_amount_cents: int = 0
    total_amount_cents: int = 0

    def as_fields(self) -> dict[str, int]:
        """Totals keyed by Bill field name."""
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "tax_amount_cents": self.tax_amount_cents,
            "total_amount_cents": self.total_amount_cents,
        }


def aggregate(items: Iterable[BillItem], allow_empty: bool = False) -> BillTotals:
    """
    Sum line items into bill totals.

    Args:
        items: Priced line items
        allow_empty: Permit zero items (only while a bill is still being assembled)

    Raises:
        EmptyBill: No items and allow_empty is False
    """
    items = list(items)
    if not items and not allow_empty:
        raise EmptyBill()

    subtotal = sum(i.line_subtotal_cents for i in items)
    discount = sum(i.discount_amount_cents for i in items)
    tax = sum(i.tax_amount_cents for i in items)

    return BillTotals(
        subtotal_cents=subtotal,
        discount_amount_cents=discount,
        tax_amount_cents=tax,
        total_amount_cents=subtotal - discount + tax,
    )


class BillDraft:
    """
    Line items for a bill that has not been persisted yet.

    Items can be added and removed freely until ``finalize``. Once a bill is
    stored its items are frozen.
    """

    def __init__(self):
        self._items: list[BillItem] = []

    @property
    def items(self) -> tuple[BillItem, ...]:
        return tuple(self._items)

    def add_item(
        self,
        service: ServiceReference,
        quantity: int,
        discount_rate_bps: int | None = None,
        description: str | None = None,
    ) -> BillItem:
        """Price and append a line item. Returns the priced item."""
        item = price_line_item(service, quantity, discount_rate_bps, description)
        self._items.append(item)
        return item

    def remove_item(self, index: int) -> BillItem:
        """
        Remove the line item at ``index``.

        Raises:
            IndexError: No item at that position
        """
        return self._items.pop(index)

    def totals(self) -> BillTotals:
        """Running totals for the items so far. Zero items is allowed."""
        return aggregate(self._items, allow_empty=True)

    def finalize(self) -> tuple[tuple[BillItem, ...], BillTotals]:
        """
        Freeze the draft into items and totals ready to persist.

        Raises:
            EmptyBill: The draft has no items
        """
        totals = aggregate(self._items)
        return self.items, totals
