"""In-memory cart used while composing or editing a bill.

A cart is local to one checkout session and is never persisted. Lines are
keyed by ``(kind, reference_id)`` so adding the same catalog entry twice bumps
the quantity instead of duplicating the line.

Each line keeps the price it was added at (``list_price``) separately from
any operator override, and a Free/Sample tag forces the effective price to
zero without discarding either value. Clearing the tag therefore restores the
add-time price rather than whatever was last typed.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from shopbill.app.core.exceptions import ValidationError
from shopbill.app.models.bill import Bill, ItemKind, ItemTag
from shopbill.app.models.catalog import Product, Service
from shopbill.app.services.money import ZERO, parse_amount


class PriceSource(str, enum.Enum):
    CATALOG = "CATALOG"
    OVERRIDE = "OVERRIDE"
    FORCED = "FORCED"


def coerce_tag(tag: ItemTag | str | None) -> ItemTag:
    if tag is None:
        return ItemTag.NONE
    if isinstance(tag, ItemTag):
        return tag
    try:
        return ItemTag(str(tag).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown item tag: {tag}")


@dataclass
class LineItem:
    kind: ItemKind
    reference_id: UUID
    name: str
    list_price: Decimal
    name_ml: str | None = None
    quantity: int = 1
    override_price: Decimal | None = None
    tag: ItemTag = ItemTag.NONE

    @property
    def key(self) -> tuple[ItemKind, UUID]:
        return (self.kind, self.reference_id)

    @property
    def price_source(self) -> PriceSource:
        if self.tag.forces_zero_price:
            return PriceSource.FORCED
        if self.override_price is not None:
            return PriceSource.OVERRIDE
        return PriceSource.CATALOG

    @property
    def unit_price(self) -> Decimal:
        source = self.price_source
        if source == PriceSource.FORCED:
            return ZERO
        if source == PriceSource.OVERRIDE:
            return self.override_price
        return self.list_price

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def display_name(self) -> str:
        if self.tag == ItemTag.NONE:
            return self.name
        return f"{self.name} ({self.tag.label})"

    def adjust_quantity(self, delta: int) -> int:
        self.quantity = max(1, self.quantity + delta)
        return self.quantity

    def apply_price(self, raw: object) -> bool:
        """Override the unit price. Returns False when the input was ignored.

        Non-numeric or negative input is ignored, as is any edit while a
        Free/Sample tag pins the price to zero.
        """
        if self.tag.forces_zero_price:
            return False
        value = parse_amount(raw)
        if value is None or value < 0:
            return False
        self.override_price = value
        return True

    def apply_tag(self, tag: ItemTag | str | None) -> None:
        """Switch the line's tag.

        None drops any override and restores the add-time price. Moving from
        Free/Sample to Other keeps the zero price until a new one is typed.
        """
        tag = coerce_tag(tag)
        if tag == ItemTag.NONE:
            self.override_price = None
        elif tag == ItemTag.OTHER and self.tag.forces_zero_price:
            self.override_price = ZERO
        self.tag = tag

    def snapshot(self) -> dict:
        return {
            "kind": self.kind,
            "reference_id": self.reference_id,
            "name": self.name,
            "name_ml": self.name_ml,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "list_price": self.list_price,
            "tag": self.tag,
            "line_total": self.line_total,
        }


class Cart:
    def __init__(self) -> None:
        self._lines: dict[tuple[ItemKind, UUID], LineItem] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(list(self._lines.values()))

    @property
    def lines(self) -> list[LineItem]:
        return list(self._lines.values())

    def get(self, kind: ItemKind, reference_id: UUID) -> LineItem | None:
        return self._lines.get((kind, reference_id))

    def line(self, index: int) -> LineItem:
        return self.lines[index]

    # ── Mutations ───────────────────────────────────────────────────────

    def add_item(self, item: Product | Service, kind: ItemKind) -> LineItem:
        """Add one unit of a catalog entry at its current catalog price."""
        return self.add_line(
            kind,
            item.id,
            item.name,
            Decimal(str(item.price)),
            name_ml=item.name_ml,
        )

    def add_line(
        self,
        kind: ItemKind,
        reference_id: UUID,
        name: str,
        list_price: Decimal,
        *,
        quantity: int = 1,
        name_ml: str | None = None,
    ) -> LineItem:
        """Add a pre-priced line, merging into an existing one with the same key."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        price = parse_amount(list_price)
        if price is None or price < 0:
            raise ValidationError(f"Invalid price for '{name}'")

        existing = self._lines.get((kind, reference_id))
        if existing:
            existing.quantity += quantity
            return existing

        line = LineItem(
            kind=kind,
            reference_id=reference_id,
            name=name,
            list_price=price,
            name_ml=name_ml,
            quantity=quantity,
        )
        self._lines[line.key] = line
        return line

    def remove_item(self, kind: ItemKind, reference_id: UUID) -> None:
        self._lines.pop((kind, reference_id), None)

    def set_quantity(self, kind: ItemKind, reference_id: UUID, delta: int) -> LineItem | None:
        line = self._lines.get((kind, reference_id))
        if line:
            line.adjust_quantity(delta)
        return line

    def set_unit_price(self, index: int, value: object) -> bool:
        return self.line(index).apply_price(value)

    def set_tag(self, index: int, tag: ItemTag | str | None) -> LineItem:
        line = self.line(index)
        line.apply_tag(tag)
        return line

    # ── Reads ───────────────────────────────────────────────────────────

    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), ZERO)

    def snapshot(self) -> list[dict]:
        return [line.snapshot() for line in self._lines.values()]

    @classmethod
    def from_bill(cls, bill: Bill) -> Cart:
        """Rehydrate the working cart from a bill's frozen item snapshot."""
        cart = cls()
        for item in bill.items:
            list_price = Decimal(str(item.list_price))
            price = Decimal(str(item.price))
            line = cart.add_line(
                item.kind,
                item.reference_id,
                item.name,
                list_price,
                quantity=item.quantity,
                name_ml=item.name_ml,
            )
            line.apply_tag(item.tag)
            if not item.tag.forces_zero_price and price != list_price:
                line.override_price = price
        return cart
