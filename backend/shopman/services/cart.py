# Overview: Point-of-sale cart value object and totals math (no database access).

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

BPS_DENOMINATOR = 10_000


def compute_tax_cents(subtotal_cents: int, tax_rate_bps: int) -> int:
    """subtotal * rate, rounded half-up to the cent."""
    raw = Decimal(subtotal_cents) * Decimal(tax_rate_bps) / Decimal(BPS_DENOMINATOR)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(line_totals_cents: list[int], tax_rate_bps: int) -> dict:
    """
    Subtotal, tax and total for a list of line totals.

    >>> compute_totals([25000], 500)
    {'subtotal_cents': 25000, 'tax_cents': 1250, 'total_cents': 26250}
    """
    subtotal = sum(line_totals_cents)
    tax = compute_tax_cents(subtotal, tax_rate_bps)
    return {
        "subtotal_cents": subtotal,
        "tax_cents": tax,
        "total_cents": subtotal + tax,
    }


@dataclass
class CartLine:
    product_id: int
    name: str
    unit_price_cents: int
    quantity: int = 1
    variant_id: int | None = None

    @property
    def key(self) -> tuple[int, int | None]:
        return (self.product_id, self.variant_id)

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }


@dataclass
class Cart:
    """
    Ordered collection of cart lines.

    Adding a product that is already in the cart bumps its quantity instead of
    adding a second line. Setting a line's quantity to zero or less removes it.
    """
    lines: list[CartLine] = field(default_factory=list)

    def _find(self, product_id: int, variant_id: int | None) -> CartLine | None:
        for line in self.lines:
            if line.key == (product_id, variant_id):
                return line
        return None

    def add_item(
        self,
        *,
        product_id: int,
        name: str,
        unit_price_cents: int,
        quantity: int = 1,
        variant_id: int | None = None,
    ) -> CartLine:
        if quantity <= 0:
            raise ValueError("quantity must be > 0")
        if unit_price_cents < 0:
            raise ValueError("unit_price_cents must be >= 0")

        existing = self._find(product_id, variant_id)
        if existing:
            existing.quantity += quantity
            return existing

        line = CartLine(
            product_id=product_id,
            name=name,
            unit_price_cents=unit_price_cents,
            quantity=quantity,
            variant_id=variant_id,
        )
        self.lines.append(line)
        return line

    def set_quantity(self, product_id: int, quantity: int, variant_id: int | None = None) -> None:
        line = self._find(product_id, variant_id)
        if line is None:
            raise KeyError(product_id)
        if quantity <= 0:
            self.lines.remove(line)
        else:
            line.quantity = quantity

    def remove_item(self, product_id: int, variant_id: int | None = None) -> None:
        self.set_quantity(product_id, 0, variant_id)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def subtotal_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def totals(self, tax_rate_bps: int) -> dict:
        return compute_totals([line.line_total_cents for line in self.lines], tax_rate_bps)

    def to_dict(self, tax_rate_bps: int) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            **self.totals(tax_rate_bps),
        }
