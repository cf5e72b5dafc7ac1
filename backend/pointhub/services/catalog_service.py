# Overview: Service-layer operations for the product catalog and cart line snapshots.

from __future__ import annotations

from ..errors import ProductNotFound, ValidationError
from ..extensions import db
from ..models import Product
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from .pricing_service import CartItem


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "stock", "category", "image_url"},
    required_on_create={"name", "price"},
)


def list_products(category: str | None = None) -> list[Product]:
    q = db.session.query(Product)
    if category:
        q = q.filter_by(category=category)
    return q.order_by(Product.id).all()


def get_product(product_id: int) -> Product | None:
    return db.session.query(Product).filter_by(id=product_id).first()


def create_product(data: dict) -> Product:
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    product = Product(**patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, data: dict) -> Product:
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    product = get_product(product_id)
    if not product:
        raise ProductNotFound(f"Product {product_id} not found")
    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def delete_product(product_id: int) -> bool:
    """Delete a product; past orders keep their own name/price snapshot."""
    product = get_product(product_id)
    if not product:
        return False
    db.session.delete(product)
    db.session.commit()
    return True


def build_cart_item(product_id: int, quantity: int = 1) -> CartItem:
    """Snapshot a product into a cart line at its current price."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    product = get_product(product_id)
    if not product:
        raise ProductNotFound(f"Product {product_id} not found")
    return CartItem(
        product_id=product.id,
        product_name=product.name,
        price=product.price,
        quantity=quantity,
    )
