from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.auth.deps import require_patient
from curelink.cart.engine import Cart, CartResult
from curelink.cart.store import CartStore
from curelink.db import get_db
from curelink.deps import get_cart_session_id, get_cart_store
from curelink.orders.checkout import checkout
from curelink.profiles import display_name

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_out(cart: Cart) -> schemas.CartOut:
    return schemas.CartOut(
        items=[
            schemas.CartLineOut(
                medicine_id=line.medicine_id,
                pharmacy_id=line.pharmacy_id,
                pharmacy_name=line.pharmacy_name,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                max_stock=line.max_stock,
                subtotal=line.subtotal,
            )
            for line in cart.lines
        ],
        total=cart.total,
        item_count=cart.item_count,
    )


def _action_out(cart: Cart, result: CartResult) -> schemas.CartActionOut:
    return schemas.CartActionOut(
        accepted=result.accepted,
        signal=result.signal,
        message=result.message,
        cart=_cart_out(cart),
    )


@router.get("", response_model=schemas.CartOut)
def get_cart(
    session_id: str = Depends(get_cart_session_id),
    store: CartStore = Depends(get_cart_store),
):
    return _cart_out(store.load(session_id))


@router.post("/items", response_model=schemas.CartActionOut)
def add_item(
    payload: schemas.CartAddIn,
    session_id: str = Depends(get_cart_session_id),
    store: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    medicine = crud.get_medicine(db, payload.medicine_id)
    if not medicine:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found")

    cart = store.load(session_id)
    result = cart.add(
        medicine_id=medicine.id,
        pharmacy_id=medicine.pharmacy_id,
        pharmacy_name=display_name(medicine.pharmacy),
        name=medicine.name,
        price=float(medicine.price),
        stock=int(medicine.stock or 0),
    )
    if result.accepted:
        store.save(session_id, cart)
    return _action_out(cart, result)


@router.patch("/items/{medicine_id}", response_model=schemas.CartActionOut)
def update_item_quantity(
    medicine_id: int,
    payload: schemas.CartQuantityIn,
    session_id: str = Depends(get_cart_session_id),
    store: CartStore = Depends(get_cart_store),
):
    cart = store.load(session_id)
    result = cart.update_quantity(medicine_id, payload.delta)
    if result.accepted:
        store.save(session_id, cart)
    return _action_out(cart, result)


@router.delete("/items/{medicine_id}", response_model=schemas.CartActionOut)
def remove_item(
    medicine_id: int,
    session_id: str = Depends(get_cart_session_id),
    store: CartStore = Depends(get_cart_store),
):
    cart = store.load(session_id)
    result = cart.remove(medicine_id)
    store.save(session_id, cart)
    return _action_out(cart, result)


@router.post("/checkout", response_model=schemas.CheckoutOut, status_code=status.HTTP_201_CREATED)
def checkout_cart(
    payload: schemas.CheckoutIn,
    current_user: models.User = Depends(require_patient),
    session_id: str = Depends(get_cart_session_id),
    store: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    cart = store.load(session_id)
    outcome = checkout(db, current_user, cart, payload.delivery_address)
    store.clear(session_id)
    return schemas.CheckoutOut(
        order=schemas.Order.model_validate(outcome.order),
        stock_sync_failed=outcome.stock_sync_failed,
        message=outcome.message,
    )
