# Overview: Service-layer operations for the catalog; categories, listings, search and product reviews.

"""
Catalog service.

WHY: Farmers own their listings; buyers browse only active, non-deleted
products. Deletion is soft (deleted_at) so order history keeps its
references. Product rating/rating_count are recomputed from reviews in the
same unit of work as the review write.
"""

from __future__ import annotations

from sqlalchemy import func, or_

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import Farmer, Product, ProductCategory, ProductReview, Order, OrderItem
from ..money import to_cents
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload, generate_slug, positive_int, require_fields
from .concurrency import run_in_transaction
from .pagination import paginate

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "category_id", "name", "description", "long_description", "price_cents", "unit",
        "quantity_available", "min_order_quantity", "main_image_url", "is_active", "is_featured",
    }),
    required_on_create=frozenset({"category_id", "name", "price_cents", "quantity_available"}),
)

SORT_COLUMNS = {
    "created_at": Product.created_at,
    "price": Product.price_cents,
    "rating": Product.rating,
    "total_sold": Product.total_sold,
    "name": Product.name,
}


def _listed(query):
    return query.filter(Product.is_active.is_(True), Product.deleted_at.is_(None))


def get_farmer_for_user(user_id: int) -> Farmer:
    farmer = db.session.query(Farmer).filter(Farmer.user_id == user_id).first()
    if farmer is None:
        raise ServiceError(ErrorKind.FORBIDDEN, "NOT_A_FARMER", "Farmer profile not found")
    return farmer


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


DEFAULT_CATEGORIES = (
    ("Vegetables", "vegetables"),
    ("Fruits", "fruits"),
    ("Grains", "grains"),
    ("Dairy", "dairy"),
    ("Meat & Poultry", "meat-poultry"),
)


def ensure_default_categories() -> int:
    """Insert any missing default categories. Idempotent; returns how many were created."""
    existing = {slug for (slug,) in db.session.query(ProductCategory.slug).all()}
    created = 0
    for order, (name, slug) in enumerate(DEFAULT_CATEGORIES):
        if slug in existing:
            continue
        db.session.add(ProductCategory(
            name=name,
            slug=slug,
            description=f"{name} and related products",
            display_order=order,
        ))
        created += 1
    db.session.commit()
    return created


def list_categories() -> list[dict]:
    rows = (
        db.session.query(ProductCategory)
        .filter(ProductCategory.is_active.is_(True))
        .order_by(ProductCategory.display_order, ProductCategory.name)
        .all()
    )
    return [c.to_dict() for c in rows]


def get_category(category_id: int) -> dict:
    category = db.session.get(ProductCategory, category_id)
    if category is None or not category.is_active:
        raise ServiceError(ErrorKind.NOT_FOUND, "CATEGORY_NOT_FOUND", "Category not found")
    return category.to_dict()


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def _payload_to_patch(payload: dict, *, partial: bool) -> dict:
    data = dict(payload)
    if "price" in data:
        price_cents = to_cents(data.pop("price"), field="price")
        if price_cents <= 0:
            raise ServiceError(
                ErrorKind.VALIDATION, "INVALID_VALUES", "Price must be positive", {"field": "price"}
            )
        data["price_cents"] = price_cents

    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=partial)

    if "quantity_available" in patch and patch["quantity_available"] < 0:
        raise ServiceError(
            ErrorKind.VALIDATION,
            "INVALID_VALUES",
            "quantity_available must be non-negative",
            {"field": "quantity_available"},
        )
    if "category_id" in patch and db.session.get(ProductCategory, patch["category_id"]) is None:
        raise ServiceError(
            ErrorKind.VALIDATION, "INVALID_CATEGORY", "Category not found", {"field": "category_id"}
        )

    image_urls = payload.get("image_urls")
    if image_urls is not None:
        if not isinstance(image_urls, list) or not all(isinstance(u, str) for u in image_urls):
            raise ServiceError(
                ErrorKind.VALIDATION, "INVALID_VALUES", "image_urls must be a list of strings", {"field": "image_urls"}
            )
        patch["image_urls"] = image_urls
    return patch


def _slug_taken(farmer_id: int, slug: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.farmer_id == farmer_id, Product.slug == slug)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def create_product(user_id: int, payload: dict) -> dict:
    farmer = get_farmer_for_user(user_id)
    require_fields(payload, ("category_id", "name", "price", "quantity_available"))
    patch = _payload_to_patch(payload, partial=False)
    patch.setdefault("unit", "kg")
    patch.pop("is_featured", None)

    slug = generate_slug(patch["name"])
    if not slug:
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_VALUES", "Product name is invalid", {"field": "name"})
    if _slug_taken(farmer.id, slug):
        raise ServiceError(
            ErrorKind.CONFLICT, "DUPLICATE_PRODUCT", "You already have a product with this name", {"slug": slug}
        )

    def _op():
        product = Product(farmer_id=farmer.id, slug=slug, **patch)
        db.session.add(product)
        db.session.flush()
        farmer.total_products_listed = (farmer.total_products_listed or 0) + 1
        return product

    product = run_in_transaction(_op)
    return product.to_dict()


def _get_owned_product(product_id: int, farmer_id: int) -> Product:
    product = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.farmer_id == farmer_id, Product.deleted_at.is_(None))
        .first()
    )
    if product is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "PRODUCT_NOT_FOUND", "Product not found")
    return product


def update_product(product_id: int, user_id: int, payload: dict) -> dict:
    farmer = get_farmer_for_user(user_id)
    patch = _payload_to_patch(payload, partial=True)
    patch.pop("is_featured", None)

    def _op():
        product = _get_owned_product(product_id, farmer.id)
        if "name" in patch:
            slug = generate_slug(patch["name"])
            if not slug:
                raise ServiceError(
                    ErrorKind.VALIDATION, "INVALID_VALUES", "Product name is invalid", {"field": "name"}
                )
            if _slug_taken(farmer.id, slug, exclude_id=product.id):
                raise ServiceError(
                    ErrorKind.CONFLICT, "DUPLICATE_PRODUCT", "You already have a product with this name", {"slug": slug}
                )
            product.slug = slug
        for key, value in patch.items():
            setattr(product, key, value)
        return product

    product = run_in_transaction(_op)
    return product.to_dict()


def delete_product(product_id: int, user_id: int) -> None:
    farmer = get_farmer_for_user(user_id)

    def _op():
        product = _get_owned_product(product_id, farmer.id)
        product.deleted_at = utcnow()
        product.is_active = False
        listed = db.session.get(Farmer, farmer.id)
        listed.total_products_listed = max(0, (listed.total_products_listed or 0) - 1)

    run_in_transaction(_op)


def get_product(product_id: int) -> dict:
    product = _listed(db.session.query(Product)).filter(Product.id == product_id).first()
    if product is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "PRODUCT_NOT_FOUND", "Product not found")
    return product.to_dict()


def list_farmer_products(user_id: int, *, include_inactive: bool = True, page=None, limit=None):
    farmer = get_farmer_for_user(user_id)
    query = db.session.query(Product).filter(Product.farmer_id == farmer.id, Product.deleted_at.is_(None))
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    items, meta = paginate(query.order_by(Product.created_at.desc(), Product.id.desc()), page, limit)
    return [p.to_dict() for p in items], meta


def search_products(
    *,
    search: str | None = None,
    category_id: int | None = None,
    farmer_id: int | None = None,
    region: str | None = None,
    min_price=None,
    max_price=None,
    featured: bool | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page=None,
    limit=None,
):
    query = _listed(db.session.query(Product)).join(Farmer, Farmer.id == Product.farmer_id)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if farmer_id:
        query = query.filter(Product.farmer_id == farmer_id)
    if region:
        query = query.filter(Farmer.region == region)
    if min_price not in (None, ""):
        query = query.filter(Product.price_cents >= to_cents(min_price, field="min_price"))
    if max_price not in (None, ""):
        query = query.filter(Product.price_cents <= to_cents(max_price, field="max_price"))
    if featured is not None:
        query = query.filter(Product.is_featured.is_(featured))

    column = SORT_COLUMNS.get(sort_by, Product.created_at)
    ordering = column.asc() if (sort_order or "").lower() == "asc" else column.desc()
    items, meta = paginate(query.order_by(ordering, Product.id.desc()), page, limit)
    return [p.to_dict() for p in items], meta


def featured_products(limit: int = 8) -> list[dict]:
    rows = (
        _listed(db.session.query(Product))
        .filter(Product.is_featured.is_(True))
        .order_by(Product.rating.desc(), Product.total_sold.desc(), Product.id.desc())
        .limit(max(1, min(limit, 50)))
        .all()
    )
    return [p.to_dict() for p in rows]


# ---------------------------------------------------------------------------
# Product reviews
# ---------------------------------------------------------------------------


def _parse_rating(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_RATING", "Rating must be between 1 and 5", {"field": "rating"})
    return value


def _has_purchased(buyer_id: int, product_id: int) -> bool:
    return (
        db.session.query(OrderItem.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.buyer_id == buyer_id, OrderItem.product_id == product_id, Order.status == "delivered")
        .first()
        is not None
    )


def _ordered_by(buyer_id: int, product_id: int, order_id: int) -> bool:
    return (
        db.session.query(OrderItem.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.id == order_id, Order.buyer_id == buyer_id, OrderItem.product_id == product_id)
        .first()
        is not None
    )


def recompute_product_rating(product: Product) -> None:
    avg, count = (
        db.session.query(func.avg(ProductReview.rating), func.count(ProductReview.id))
        .filter(ProductReview.product_id == product.id)
        .one()
    )
    product.rating = round(float(avg), 2) if avg is not None else 0
    product.rating_count = count or 0


def add_product_review(product_id: int, buyer_id: int, payload: dict) -> dict:
    """Upsert the buyer's review for a product and refresh the product's aggregate rating."""
    rating = _parse_rating(payload.get("rating"))
    title = payload.get("title")
    comment = payload.get("comment")
    order_id = payload.get("order_id")
    if order_id is not None:
        order_id = positive_int(order_id, field="order_id", code="INVALID_ORDER_ID")

    def _op():
        product = _listed(db.session.query(Product)).filter(Product.id == product_id).first()
        if product is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "PRODUCT_NOT_FOUND", "Product not found")
        if order_id is not None and not _ordered_by(buyer_id, product_id, order_id):
            raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")

        review = (
            db.session.query(ProductReview)
            .filter(ProductReview.product_id == product_id, ProductReview.buyer_id == buyer_id)
            .first()
        )
        if review is None:
            review = ProductReview(product_id=product_id, buyer_id=buyer_id, rating=rating)
            db.session.add(review)
        review.rating = rating
        review.title = title
        review.comment = comment
        review.order_id = order_id
        review.is_verified_purchase = _has_purchased(buyer_id, product_id)
        db.session.flush()

        recompute_product_rating(product)
        return review

    review = run_in_transaction(_op)
    return review.to_dict()


def list_product_reviews(product_id: int, *, page=None, limit=None):
    query = (
        db.session.query(ProductReview)
        .filter(ProductReview.product_id == product_id)
        .order_by(ProductReview.created_at.desc(), ProductReview.id.desc())
    )
    items, meta = paginate(query, page, limit)
    return [r.to_dict() for r in items], meta
