from functools import lru_cache

from fastapi import Depends, Header

from curelink import models
from curelink.auth.deps import require_patient
from curelink.cart.store import CartStore, InMemoryCartStore


@lru_cache(maxsize=1)
def _default_cart_store() -> InMemoryCartStore:
    return InMemoryCartStore()


def get_cart_store() -> CartStore:
    return _default_cart_store()


def get_cart_session_id(
    current_user: models.User = Depends(require_patient),
    session_id: str | None = Header(None, alias="X-Session-ID"),
) -> str:
    cleaned = (session_id or "").strip()
    # Without an explicit session header the cart is scoped to the account.
    return f"{current_user.id}:{cleaned or 'default'}"
