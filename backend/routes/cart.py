# backend/routes/cart.py
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from models.users import User
from models.product import Product
from models.cart import Cart, CartItem
from schemas.cart import CartAddItem, CartOut, CartItemOut

router = APIRouter(prefix="/cart", tags=["Cart"])

def _get_cart(db: Session, user_id: int) -> Cart:
    # Retrieve the user's cart, creating it on first use
    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if not cart:
        cart = Cart(user_id=user_id)
        db.add(cart)
        db.commit()
        db.refresh(cart)
    return cart

def _cart_to_out(cart: Cart) -> CartOut:
    items_out = []
    total = Decimal("0.00")

    for it in cart.items:
        # Cart lines are priced live; the price is frozen only when an order is placed
        unit_price = it.product.price if it.product else Decimal("0.00")
        line_total = unit_price * it.quantity
        total += line_total

        items_out.append(CartItemOut(
            id=it.id,
            product_id=it.product_id,
            name=it.product.name if it.product else "",
            quantity=it.quantity,
            unit_price=unit_price,
            line_total=line_total,
        ))

    return CartOut(id=cart.id, items=items_out, total=total)

def _client_ip(request: Request):
    return request.client.host if request.client else None

@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _cart_to_out(_get_cart(db, current_user.id))

@router.post("/items", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = _get_cart(db, current_user.id)

    product = db.get(Product, payload.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    item = db.query(CartItem).filter(
        CartItem.cart_id == cart.id, CartItem.product_id == payload.product_id
    ).first()

    if item:
        item.quantity += payload.quantity
    else:
        item = CartItem(cart_id=cart.id, product_id=product.id, quantity=payload.quantity)
        db.add(item)

    db.commit()
    db.refresh(cart)

    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        ip=_client_ip(request),
        meta={"product_id": product.id, "quantity": payload.quantity, "cart_items": len(out.items)},
    )
    return out

@router.delete("/items/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = _get_cart(db, current_user.id)

    item = db.query(CartItem).filter(CartItem.id == item_id, CartItem.cart_id == cart.id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")

    db.delete(item)
    db.commit()
    db.refresh(cart)

    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        ip=_client_ip(request),
        meta={"item_id": item_id, "cart_items": len(out.items)},
    )
    return out
