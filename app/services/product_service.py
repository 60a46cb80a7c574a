import logging
from typing import Any, Mapping, Optional, cast

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import OPTIONAL_TEXT_FIELDS
from app.core.errors import DuplicateNameError, NotFoundError, StoreError, ValidationError
from app.models.product import Product
from app.services.history_service import purge_stock_history, record_stock_change

logger = logging.getLogger(__name__)


def _clean_text(value):
    if value is None:
        return ""
    return str(value)


def _validate_name(fields: Mapping[str, Any]) -> str:
    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError.for_field("name", "Name is required")
    return name


def _validate_stock(fields: Mapping[str, Any], default=None):
    if "stock" not in fields or fields["stock"] is None:
        return default
    stock = fields["stock"]
    if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
        raise ValidationError.for_field("stock", "Stock must be a non-negative integer")
    return stock


def find_by_name(db: Session, name: str, *, exclude_id: Optional[int] = None) -> Optional[Product]:
    # Surrounding whitespace does not make a name distinct.
    stmt = select(Product).where(
        func.lower(func.trim(Product.name)) == func.lower(name.strip())
    )
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    return db.execute(stmt.limit(1)).scalars().first()


def list_products(db: Session, name: Optional[str] = None) -> list[Product]:
    stmt = select(Product)
    query = (name or "").strip().lower()
    if query:
        stmt = stmt.where(func.lower(Product.name).contains(query, autoescape=True))
    try:
        products = db.execute(stmt).scalars().all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching products")
        raise StoreError("Failed to fetch products") from exc
    return cast(list[Product], list(products))


def list_products_for_export(db: Session) -> list[Product]:
    try:
        products = db.execute(select(Product).order_by(Product.id.asc())).scalars().all()
    except SQLAlchemyError as exc:
        logger.exception("Error exporting products")
        raise StoreError("Failed to export products") from exc
    return cast(list[Product], list(products))


def get_product(db: Session, product_id: int) -> Optional[Product]:
    try:
        return db.get(Product, product_id)
    except SQLAlchemyError as exc:
        logger.exception("Error fetching product %s", product_id)
        raise StoreError("Failed to fetch product") from exc


def create_product(db: Session, fields: Mapping[str, Any], *, commit: bool = True) -> Product:
    """Insert a product after the name and stock checks.

    With ``commit=False`` the row is only flushed, which lets a caller batch
    several inserts into one transaction while later lookups still see it.
    """
    name = _validate_name(fields)
    stock = _validate_stock(fields, default=0)

    try:
        existing = find_by_name(db, name)
        if existing is not None:
            raise DuplicateNameError(name=name, existing_id=existing.id)

        values = {key: _clean_text(fields.get(key)) for key in OPTIONAL_TEXT_FIELDS}
        product = Product(name=name, stock=stock, **values)
        db.add(product)
        db.flush()
        if commit:
            db.commit()
            db.refresh(product)
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Name collision while inserting product %r", name)
        raise DuplicateNameError(name=name) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error creating product %r", name)
        raise StoreError("Failed to create product") from exc
    return product


def update_product(
    db: Session,
    product_id: int,
    fields: Mapping[str, Any],
    *,
    actor: str,
) -> Product:
    name = _validate_name(fields)
    try:
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError()
        stock = _validate_stock(fields, default=product.stock)

        conflict = find_by_name(db, name, exclude_id=product.id)
        if conflict is not None:
            raise DuplicateNameError(name=name, existing_id=conflict.id)

        old_stock = product.stock
        product.name = name
        product.stock = stock
        for key in OPTIONAL_TEXT_FIELDS:
            if key in fields and fields[key] is not None:
                setattr(product, key, _clean_text(fields[key]))

        entry = record_stock_change(db, product, old_stock, actor=actor)
        db.commit()
        db.refresh(product)
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Name collision while updating product %s to %r", product_id, name)
        raise DuplicateNameError(name=name) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error updating product %s", product_id)
        raise StoreError("Failed to update product") from exc

    if entry is not None:
        logger.info(
            "Stock for product %s changed %s -> %s by %s",
            product.id,
            entry.old_quantity,
            entry.new_quantity,
            entry.user_info,
            extra={
                "product_id": product.id,
                "old_quantity": entry.old_quantity,
                "new_quantity": entry.new_quantity,
                "actor": entry.user_info,
            },
        )
    return product


def delete_product(db: Session, product_id: int) -> None:
    try:
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError()
        removed = purge_stock_history(db, product_id)
        db.delete(product)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error deleting product %s", product_id)
        raise StoreError("Failed to delete product") from exc
    logger.info("Deleted product %s with %d history record(s)", product_id, removed)


__all__ = [
    "create_product",
    "delete_product",
    "find_by_name",
    "get_product",
    "list_products",
    "list_products_for_export",
    "update_product",
]
