"""
Session cart state.

A cart is a plain value object; routes load it from a ``CartStore``, apply one
operation and save it back. Business-rule rejections never raise: every
operation returns a ``CartResult`` carrying ``accepted``, an optional signal
and a message for the user.
"""
from __future__ import annotations

from dataclasses import dataclass, field

INSUFFICIENT_STOCK = "insufficient_stock"
NOT_IN_CART = "not_in_cart"


@dataclass
class CartLine:
    medicine_id: int
    pharmacy_id: int
    pharmacy_name: str | None
    name: str
    price: float
    quantity: int
    max_stock: int  # stock snapshot taken when the line was created

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


@dataclass
class CartResult:
    accepted: bool
    message: str
    signal: str | None = None


@dataclass
class Cart:
    lines: list[CartLine] = field(default_factory=list)

    def find(self, medicine_id: int) -> CartLine | None:
        for line in self.lines:
            if line.medicine_id == medicine_id:
                return line
        return None

    @property
    def total(self) -> float:
        return sum(line.subtotal for line in self.lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def add(
        self,
        medicine_id: int,
        pharmacy_id: int,
        pharmacy_name: str | None,
        name: str,
        price: float,
        stock: int,
    ) -> CartResult:
        existing = self.find(medicine_id)
        if existing is not None:
            if existing.quantity + 1 > existing.max_stock:
                return CartResult(
                    accepted=False,
                    signal=INSUFFICIENT_STOCK,
                    message=f"Only {existing.max_stock} units of {existing.name} available",
                )
            existing.quantity += 1
            return CartResult(accepted=True, message=f"{existing.name} quantity updated")

        if stock <= 0:
            return CartResult(accepted=False, signal=INSUFFICIENT_STOCK, message=f"{name} is out of stock")

        self.lines.append(
            CartLine(
                medicine_id=medicine_id,
                pharmacy_id=pharmacy_id,
                pharmacy_name=pharmacy_name,
                name=name,
                price=price,
                quantity=1,
                max_stock=stock,
            )
        )
        return CartResult(accepted=True, message=f"{name} added to cart")

    def update_quantity(self, medicine_id: int, delta: int) -> CartResult:
        line = self.find(medicine_id)
        if line is None:
            return CartResult(accepted=False, signal=NOT_IN_CART, message="Item is not in your cart")

        requested = line.quantity + delta
        if requested > line.max_stock:
            return CartResult(
                accepted=False,
                signal=INSUFFICIENT_STOCK,
                message=f"Only {line.max_stock} units of {line.name} available",
            )
        # Decrements floor at one; removal is an explicit operation.
        line.quantity = max(1, requested)
        return CartResult(accepted=True, message=f"{line.name} quantity set to {line.quantity}")

    def remove(self, medicine_id: int) -> CartResult:
        self.lines = [line for line in self.lines if line.medicine_id != medicine_id]
        return CartResult(accepted=True, message="Item removed from cart")

    def partition_by_pharmacy(self) -> list[tuple[int, str | None]]:
        """Distinct pharmacies in first-seen line order."""
        seen: dict[int, str | None] = {}
        for line in self.lines:
            if line.pharmacy_id not in seen:
                seen[line.pharmacy_id] = line.pharmacy_name
        return list(seen.items())
