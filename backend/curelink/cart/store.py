from __future__ import annotations

import copy
import threading
from typing import Protocol

from curelink.cart.engine import Cart


class CartStore(Protocol):
    def load(self, session_id: str) -> Cart: ...

    def save(self, session_id: str, cart: Cart) -> None: ...

    def clear(self, session_id: str) -> None: ...


class InMemoryCartStore:
    """Process-lifetime cart storage keyed by session id."""

    def __init__(self) -> None:
        self._carts: dict[str, Cart] = {}
        self._lock = threading.Lock()

    def load(self, session_id: str) -> Cart:
        with self._lock:
            cart = self._carts.get(session_id)
            return copy.deepcopy(cart) if cart is not None else Cart()

    def save(self, session_id: str, cart: Cart) -> None:
        with self._lock:
            self._carts[session_id] = copy.deepcopy(cart)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._carts.pop(session_id, None)
