# Overview: Service-layer operations for user profiles, addresses and favorites.

from __future__ import annotations

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import User, UserAddress, UserFavorite, Product
from ..validation import ModelValidationPolicy, validate_payload, validate_phone_number
from .auth_service import get_active_user

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"first_name", "last_name", "phone_number", "profile_picture_url"}),
)

ADDRESS_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "address_type", "street_address", "city", "region", "postal_code",
        "gps_address", "recipient_name", "recipient_phone", "is_default",
    }),
    required_on_create=frozenset({"street_address", "city", "region", "recipient_name", "recipient_phone"}),
)

ADDRESS_TYPES = ("residential", "business", "farm", "other")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


def get_profile(user_id: int) -> dict:
    user = get_active_user(user_id)
    data = user.to_dict()
    if user.farmer is not None:
        data["farmer"] = user.farmer.to_dict()
    return data


def update_profile(user_id: int, payload: dict) -> dict:
    user = get_active_user(user_id)
    patch = validate_payload(model=User, payload=payload, policy=PROFILE_POLICY, partial=True)
    if patch.get("phone_number") and not validate_phone_number(patch["phone_number"]):
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_PHONE", "Invalid phone number", {"field": "phone_number"})
    for key, value in patch.items():
        setattr(user, key, value)
    db.session.commit()
    return get_profile(user_id)


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


def _clear_default(user_id: int, keep_id: int | None = None) -> None:
    query = db.session.query(UserAddress).filter(
        UserAddress.user_id == user_id, UserAddress.is_default.is_(True)
    )
    if keep_id is not None:
        query = query.filter(UserAddress.id != keep_id)
    query.update({"is_default": False}, synchronize_session=False)


def _get_address(address_id: int, user_id: int) -> UserAddress:
    address = (
        db.session.query(UserAddress)
        .filter(
            UserAddress.id == address_id,
            UserAddress.user_id == user_id,
            UserAddress.is_active.is_(True),
        )
        .first()
    )
    if address is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "ADDRESS_NOT_FOUND", "Address not found")
    return address


def _check_address_type(patch: dict) -> None:
    if "address_type" in patch and patch["address_type"] not in ADDRESS_TYPES:
        raise ServiceError(
            ErrorKind.VALIDATION,
            "INVALID_ADDRESS_TYPE",
            f"address_type must be one of: {', '.join(ADDRESS_TYPES)}",
            {"field": "address_type"},
        )


def list_addresses(user_id: int) -> list[dict]:
    rows = (
        db.session.query(UserAddress)
        .filter(UserAddress.user_id == user_id, UserAddress.is_active.is_(True))
        .order_by(UserAddress.is_default.desc(), UserAddress.created_at.desc(), UserAddress.id.desc())
        .all()
    )
    return [a.to_dict() for a in rows]


def get_address(address_id: int, user_id: int) -> dict:
    return _get_address(address_id, user_id).to_dict()


def get_default_address(user_id: int) -> dict | None:
    address = (
        db.session.query(UserAddress)
        .filter(
            UserAddress.user_id == user_id,
            UserAddress.is_active.is_(True),
            UserAddress.is_default.is_(True),
        )
        .first()
    )
    return address.to_dict() if address else None


def create_address(user_id: int, payload: dict) -> dict:
    patch = validate_payload(model=UserAddress, payload=payload, policy=ADDRESS_POLICY, partial=False)
    _check_address_type(patch)
    patch.setdefault("address_type", "residential")

    if patch.get("is_default"):
        _clear_default(user_id)

    address = UserAddress(user_id=user_id, **patch)
    db.session.add(address)
    db.session.commit()
    return address.to_dict()


def update_address(address_id: int, user_id: int, payload: dict) -> dict:
    address = _get_address(address_id, user_id)
    patch = validate_payload(model=UserAddress, payload=payload, policy=ADDRESS_POLICY, partial=True)
    _check_address_type(patch)

    if patch.get("is_default"):
        _clear_default(user_id, keep_id=address.id)
    for key, value in patch.items():
        setattr(address, key, value)
    db.session.commit()
    return address.to_dict()


def delete_address(address_id: int, user_id: int) -> None:
    address = _get_address(address_id, user_id)
    address.is_active = False
    address.is_default = False
    db.session.commit()


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------


def add_favorite(user_id: int, product_id: int) -> dict:
    product = db.session.get(Product, product_id)
    if product is None or not product.is_listed:
        raise ServiceError(ErrorKind.NOT_FOUND, "PRODUCT_NOT_FOUND", "Product not found")

    favorite = (
        db.session.query(UserFavorite)
        .filter(UserFavorite.user_id == user_id, UserFavorite.product_id == product_id)
        .first()
    )
    if favorite is None:
        favorite = UserFavorite(user_id=user_id, product_id=product_id)
        db.session.add(favorite)
        db.session.commit()
    return {"product_id": product_id, "is_favorite": True}


def remove_favorite(user_id: int, product_id: int) -> None:
    deleted = (
        db.session.query(UserFavorite)
        .filter(UserFavorite.user_id == user_id, UserFavorite.product_id == product_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise ServiceError(ErrorKind.NOT_FOUND, "FAVORITE_NOT_FOUND", "Favorite not found")
    db.session.commit()


def list_favorites(user_id: int) -> list[dict]:
    rows = (
        db.session.query(UserFavorite)
        .join(Product, Product.id == UserFavorite.product_id)
        .filter(UserFavorite.user_id == user_id, Product.deleted_at.is_(None))
        .order_by(UserFavorite.created_at.desc(), UserFavorite.id.desc())
        .all()
    )
    return [fav.product.to_dict() for fav in rows]


def is_favorite(user_id: int, product_id: int) -> bool:
    return (
        db.session.query(UserFavorite.id)
        .filter(UserFavorite.user_id == user_id, UserFavorite.product_id == product_id)
        .first()
        is not None
    )
