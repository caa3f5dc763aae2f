import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from curelink.cart.engine import INSUFFICIENT_STOCK, NOT_IN_CART, Cart
from curelink.cart.store import InMemoryCartStore
from curelink.orders.checkout import order_total


def _add(cart: Cart, medicine_id: int, *, pharmacy_id: int = 10, price: float = 70.0, stock: int = 50):
    return cart.add(
        medicine_id=medicine_id,
        pharmacy_id=pharmacy_id,
        pharmacy_name=f"Pharmacy {pharmacy_id}",
        name=f"Medicine {medicine_id}",
        price=price,
        stock=stock,
    )


def test_add_new_line_then_increment_existing():
    cart = Cart()
    first = _add(cart, 1)
    second = _add(cart, 1)

    assert first.accepted and second.accepted
    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 2
    assert cart.lines[0].max_stock == 50


def test_add_beyond_stock_snapshot_is_rejected_without_change():
    cart = Cart()
    _add(cart, 1, stock=2)
    _add(cart, 1, stock=2)

    result = _add(cart, 1, stock=2)

    assert result.accepted is False
    assert result.signal == INSUFFICIENT_STOCK
    assert result.message
    assert cart.lines[0].quantity == 2


def test_add_out_of_stock_medicine_is_rejected():
    cart = Cart()
    result = _add(cart, 1, stock=0)

    assert result.accepted is False
    assert result.signal == INSUFFICIENT_STOCK
    assert cart.is_empty()


def test_increment_at_max_stock_keeps_quantity_and_signals():
    cart = Cart()
    _add(cart, 1, stock=3)
    assert cart.update_quantity(1, 2).accepted
    assert cart.lines[0].quantity == 3

    result = cart.update_quantity(1, 1)

    assert result.accepted is False
    assert result.signal == INSUFFICIENT_STOCK
    assert cart.lines[0].quantity == 3


def test_decrement_floors_at_one_and_keeps_line():
    cart = Cart()
    _add(cart, 1)
    _add(cart, 1)

    result = cart.update_quantity(1, -5)

    assert result.accepted is True
    assert cart.lines[0].quantity == 1
    assert len(cart.lines) == 1


def test_update_unknown_line_reports_not_in_cart():
    cart = Cart()
    result = cart.update_quantity(99, 1)

    assert result.accepted is False
    assert result.signal == NOT_IN_CART


def test_remove_is_unconditional_and_absent_is_noop():
    cart = Cart()
    _add(cart, 1)
    _add(cart, 2)

    assert cart.remove(1).accepted
    assert [line.medicine_id for line in cart.lines] == [2]
    assert cart.remove(1).accepted
    assert [line.medicine_id for line in cart.lines] == [2]


def test_total_and_partition_for_mixed_pharmacies():
    cart = Cart()
    _add(cart, 1, pharmacy_id=10, price=70.0)
    _add(cart, 1, pharmacy_id=10, price=70.0)
    _add(cart, 2, pharmacy_id=20, price=250.0, stock=25)

    assert order_total(cart) == 390.0
    assert cart.total == 390.0
    assert cart.item_count == 3
    assert cart.partition_by_pharmacy() == [(10, "Pharmacy 10"), (20, "Pharmacy 20")]


def test_partition_keeps_first_seen_order_and_dedupes():
    cart = Cart()
    _add(cart, 1, pharmacy_id=20)
    _add(cart, 2, pharmacy_id=10)
    _add(cart, 3, pharmacy_id=20)

    assert [pid for pid, _ in cart.partition_by_pharmacy()] == [20, 10]


def test_in_memory_store_isolates_sessions_and_copies():
    store = InMemoryCartStore()
    cart = store.load("a")
    _add(cart, 1)

    assert store.load("a").is_empty()
    store.save("a", cart)
    assert store.load("a").lines[0].medicine_id == 1
    assert store.load("b").is_empty()

    store.clear("a")
    assert store.load("a").is_empty()
