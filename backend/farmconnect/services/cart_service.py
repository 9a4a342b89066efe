# Overview: Service-layer operations for the shopping cart.

"""
Cart service.

WHY: The cart freezes the unit price when a product is first added so the
buyer pays what they saw. validate_cart() reports drift (inactive product,
short stock, changed price) without mutating the cart.
"""

from __future__ import annotations

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import ShoppingCart, CartItem, Product
from ..money import from_cents
from ..validation import positive_int
from .concurrency import run_in_transaction


def get_or_create_cart(user_id: int) -> ShoppingCart:
    cart = db.session.query(ShoppingCart).filter(ShoppingCart.user_id == user_id).first()
    if cart is None:
        cart = ShoppingCart(user_id=user_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def _summary(cart: ShoppingCart) -> dict:
    items = [item.to_dict() for item in cart.items]
    subtotal_cents = sum(item.subtotal_cents for item in cart.items)
    return {
        "id": cart.id,
        "items": items,
        "item_count": sum(item.quantity for item in cart.items),
        "subtotal": from_cents(subtotal_cents),
        "subtotal_cents": subtotal_cents,
    }


def get_cart(user_id: int) -> dict:
    cart = get_or_create_cart(user_id)
    db.session.commit()
    return _summary(cart)


def item_count(user_id: int) -> int:
    cart = db.session.query(ShoppingCart).filter(ShoppingCart.user_id == user_id).first()
    if cart is None:
        return 0
    return sum(item.quantity for item in cart.items)


def _insufficient(product: Product) -> ServiceError:
    return ServiceError(
        ErrorKind.VALIDATION,
        "INSUFFICIENT_STOCK",
        f"Insufficient stock for {product.name}",
        {"product_id": product.id, "available": product.quantity_available},
    )


def add_item(user_id: int, product_id, quantity=1) -> dict:
    """Add a product; an existing line is incremented and keeps its original unit price."""
    if product_id is None:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "product_id is required", {"field": "product_id"})
    quantity = positive_int(quantity)

    def _op():
        product = (
            db.session.query(Product)
            .filter(Product.id == product_id, Product.is_active.is_(True), Product.deleted_at.is_(None))
            .first()
        )
        if product is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "PRODUCT_NOT_FOUND", "Product not found or inactive")

        cart = get_or_create_cart(user_id)
        item = (
            db.session.query(CartItem)
            .filter(CartItem.cart_id == cart.id, CartItem.product_id == product.id)
            .first()
        )
        new_quantity = quantity + (item.quantity if item else 0)
        if new_quantity > product.quantity_available:
            raise _insufficient(product)

        if item is None:
            item = CartItem(
                cart_id=cart.id,
                product_id=product.id,
                quantity=new_quantity,
                unit_price_cents=product.price_cents,
            )
            db.session.add(item)
        else:
            item.quantity = new_quantity
        return cart

    cart = run_in_transaction(_op)
    return _summary(cart)


def _get_owned_item(item_id: int, user_id: int) -> CartItem:
    item = (
        db.session.query(CartItem)
        .join(ShoppingCart, ShoppingCart.id == CartItem.cart_id)
        .filter(CartItem.id == item_id, ShoppingCart.user_id == user_id)
        .first()
    )
    if item is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "CART_ITEM_NOT_FOUND", "Cart item not found")
    return item


def update_item(user_id: int, item_id: int, quantity) -> dict:
    quantity = positive_int(quantity)

    def _op():
        item = _get_owned_item(item_id, user_id)
        if quantity > item.product.quantity_available:
            raise _insufficient(item.product)
        item.quantity = quantity
        return item.cart

    cart = run_in_transaction(_op)
    return _summary(cart)


def remove_item(user_id: int, item_id: int) -> dict:
    def _op():
        item = _get_owned_item(item_id, user_id)
        cart = item.cart
        db.session.delete(item)
        return cart

    cart = run_in_transaction(_op)
    return _summary(cart)


def clear_cart(user_id: int) -> None:
    def _op():
        cart = db.session.query(ShoppingCart).filter(ShoppingCart.user_id == user_id).first()
        if cart is not None:
            db.session.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)

    run_in_transaction(_op)


def validate_cart(user_id: int) -> dict:
    """Report issues that would block checkout or change the price."""
    cart = db.session.query(ShoppingCart).filter(ShoppingCart.user_id == user_id).first()
    issues: list[dict] = []
    for item in (cart.items if cart else []):
        product = item.product
        if product is None or not product.is_listed:
            issues.append({
                "type": "PRODUCT_INACTIVE",
                "cart_item_id": item.id,
                "product_id": item.product_id,
                "message": "Product is no longer available",
            })
            continue
        if item.quantity > product.quantity_available:
            issues.append({
                "type": "INSUFFICIENT_STOCK",
                "cart_item_id": item.id,
                "product_id": product.id,
                "requested": item.quantity,
                "available": product.quantity_available,
                "message": f"Only {product.quantity_available} {product.unit} of {product.name} available",
            })
        if item.unit_price_cents != product.price_cents:
            issues.append({
                "type": "PRICE_CHANGED",
                "cart_item_id": item.id,
                "product_id": product.id,
                "old_price": from_cents(item.unit_price_cents),
                "new_price": from_cents(product.price_cents),
                "message": f"Price of {product.name} has changed",
            })
    return {"is_valid": not issues, "issues": issues}
