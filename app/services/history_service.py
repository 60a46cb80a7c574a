import logging
from datetime import datetime, timezone
from typing import Optional, cast

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import StoreError
from app.models.inventory_history import InventoryHistory
from app.models.product import Product

logger = logging.getLogger(__name__)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    return moment.isoformat()


def record_stock_change(
    db: Session,
    product: Product,
    old_stock: Optional[int],
    *,
    actor: str,
    changed_at: Optional[datetime] = None,
) -> Optional[InventoryHistory]:
    """Stage an audit row for ``product`` when its stock moved away from ``old_stock``.

    The row is only added to the session; the caller commits it together
    with the product change so both land or neither does.
    """
    new_stock = product.stock
    if old_stock == new_stock:
        return None

    entry = InventoryHistory(
        product_id=product.id,
        old_quantity=old_stock if old_stock is not None else 0,
        new_quantity=new_stock,
        change_date=utc_timestamp(changed_at),
        user_info=actor,
    )
    db.add(entry)
    return entry


def load_stock_history(db: Session, product_id: int) -> list[InventoryHistory]:
    try:
        history = (
            db.execute(
                select(InventoryHistory)
                .where(InventoryHistory.product_id == product_id)
                .order_by(InventoryHistory.change_date.desc(), InventoryHistory.id.desc())
            )
            .scalars()
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error fetching inventory history for product %s", product_id)
        raise StoreError("Failed to fetch inventory history") from exc
    return cast(list[InventoryHistory], list(history))


def purge_stock_history(db: Session, product_id: int) -> int:
    result = db.execute(
        delete(InventoryHistory).where(InventoryHistory.product_id == product_id)
    )
    return result.rowcount or 0


__all__ = [
    "load_stock_history",
    "purge_stock_history",
    "record_stock_change",
    "utc_timestamp",
]
