import logging

from sqlalchemy.orm import Session

from curelink import crud, models

_logger = logging.getLogger(__name__)

ORDER = "order"
APPOINTMENT = "appointment"
MEDICATION = "medication"
STOCK = "stock"


def notify(db: Session, user_id: int, type: str, title: str, message: str) -> models.Notification:
    notification = crud.create_notification(db, user_id=user_id, type=type, title=title, message=message)
    _logger.info("notification_created user_id=%s type=%s id=%s", user_id, type, notification.id)
    return notification


def order_status_message(order_id: int, pharmacy_name: str | None, new_status: str) -> tuple[str, str]:
    name = pharmacy_name or "The pharmacy"
    titles = {
        "approved": "Order Approved",
        "declined": "Order Declined",
        "delivered": "Order Delivered",
    }
    messages = {
        "approved": f"{name} approved its part of order #{order_id}.",
        "declined": f"{name} declined its part of order #{order_id}.",
        "delivered": f"{name} delivered its part of order #{order_id}.",
    }
    return titles.get(new_status, "Order Updated"), messages.get(
        new_status, f"Order #{order_id} is now {new_status}."
    )
