"""
Checkout: turns a session cart into one persisted order.

Steps run in a fixed order and are not wrapped in a transaction: the order is
committed first, then each stock decrement is its own unconditional update.
A failed decrement leaves the order in place and is reported back through
``CheckoutOutcome.stock_sync_failed``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from curelink import crud, models, notifications
from curelink.cart.engine import Cart
from curelink.config.settings import get_settings

_logger = logging.getLogger(__name__)


@dataclass
class CheckoutOutcome:
    order: models.Order
    stock_sync_failed: bool = False
    failed_medicine_ids: list[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.stock_sync_failed:
            return "Order placed, but some stock levels could not be updated."
        return "Order placed successfully."


def order_total(cart: Cart) -> float:
    return sum(line.price * line.quantity for line in cart.lines)


def _order_items(cart: Cart) -> list[dict]:
    return [
        {
            "medicine_id": line.medicine_id,
            "pharmacy_id": line.pharmacy_id,
            "name": line.name,
            "quantity": line.quantity,
            "price": line.price,
            "subtotal": line.subtotal,
        }
        for line in cart.lines
    ]


def _notify_low_stock(db: Session, medicine_ids: list[int]) -> None:
    threshold = get_settings().pharmacy_low_stock_threshold
    for medicine_id in medicine_ids:
        medicine = crud.get_medicine(db, medicine_id)
        if medicine is None or medicine.stock >= threshold:
            continue
        notifications.notify(
            db,
            user_id=medicine.pharmacy_id,
            type=notifications.STOCK,
            title="Low Stock Alert",
            message=f"{medicine.name} is running low ({medicine.stock} left).",
        )


def _reject_withdrawn_lines(db: Session, cart: Cart) -> None:
    """Cart lines are snapshots; a pharmacy may have deleted the medicine since."""
    existing = crud.existing_medicine_ids(db, [line.medicine_id for line in cart.lines])
    missing = [line for line in cart.lines if line.medicine_id not in existing]
    if missing:
        names = ", ".join(line.name for line in missing)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"No longer available: {names}. Remove these items from your cart and try again.",
        )


def checkout(db: Session, patient: models.User, cart: Cart, delivery_address: str | None) -> CheckoutOutcome:
    if cart.is_empty():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty")
    _reject_withdrawn_lines(db, cart)

    pharmacies = cart.partition_by_pharmacy()
    total = order_total(cart)

    try:
        order = crud.create_order(
            db,
            patient_id=patient.id,
            delivery_address=delivery_address,
            total_amount=total,
            pharmacies=pharmacies,
            items=_order_items(cart),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        _logger.exception("checkout_order_failed patient_id=%s", patient.id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not place the order right now. Please try again.",
        ) from exc

    _logger.info(
        "checkout_order_created order_id=%s patient_id=%s pharmacies=%s total=%.2f",
        order.id,
        patient.id,
        len(pharmacies),
        total,
    )

    outcome = CheckoutOutcome(order=order)
    decremented: list[int] = []
    for line in cart.lines:
        try:
            crud.decrement_stock(db, line.medicine_id, line.quantity)
            decremented.append(line.medicine_id)
        except SQLAlchemyError:
            db.rollback()
            outcome.stock_sync_failed = True
            outcome.failed_medicine_ids.append(line.medicine_id)
            _logger.exception(
                "checkout_stock_decrement_failed order_id=%s medicine_id=%s quantity=%s",
                order.id,
                line.medicine_id,
                line.quantity,
            )

    notifications.notify(
        db,
        user_id=patient.id,
        type=notifications.ORDER,
        title="Order Placed",
        message=f"Your order #{order.id} for Rs. {total:.2f} has been placed.",
    )
    _notify_low_stock(db, decremented)

    db.refresh(order)
    return outcome


_TRANSITIONS = {
    "pending": {"approved", "declined"},
    "approved": {"delivered"},
}


def set_pharmacy_status(db: Session, order_id: int, pharmacy: models.User, new_status: str) -> models.Order:
    """
    Move one pharmacy's sub-status forward. Declining puts that pharmacy's
    line items back into stock.
    """
    sub = crud.get_order_pharmacy(db, order_id, pharmacy.id)
    if sub is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    if new_status not in _TRANSITIONS.get(sub.status, set()):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change order status from {sub.status} to {new_status}",
        )

    order = sub.order
    sub.status = new_status
    db.commit()
    _logger.info(
        "order_pharmacy_status order_id=%s pharmacy_id=%s status=%s", order_id, pharmacy.id, new_status
    )

    if new_status == "declined":
        for item in order.items:
            if item.pharmacy_id == pharmacy.id and item.medicine_id is not None:
                crud.increment_stock(db, item.medicine_id, item.quantity)

    title, message = notifications.order_status_message(order.id, sub.pharmacy_name, new_status)
    notifications.notify(db, user_id=order.patient_id, type=notifications.ORDER, title=title, message=message)
    db.refresh(order)
    return order
