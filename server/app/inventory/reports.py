from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.inventory.errors import ValidationError
from app.models import Batch, InventoryPosition, LedgerEntry, Product
from app.utils import as_quantity, to_quantity, utcnow
from app.utils.quantities import ZERO


def _require_non_negative_days(days: int, field: str) -> None:
    if days < 0:
        raise ValidationError(f"{field} cannot be negative.")


def low_stock_report(db: Session, *, tenant_id: int, threshold: Decimal | int | str) -> list[dict]:
    limit_qty = to_quantity(threshold, field="threshold")
    rows = (
        db.query(InventoryPosition, Product, Batch)
        .join(Batch, Batch.id == InventoryPosition.batch_id)
        .outerjoin(Product, Product.id == InventoryPosition.product_id)
        .filter(InventoryPosition.tenant_id == tenant_id, InventoryPosition.quantity <= limit_qty)
        .order_by(InventoryPosition.quantity.asc(), InventoryPosition.product_id.asc(), InventoryPosition.batch_id.asc())
        .all()
    )
    return [
        {
            "position_id": position.id,
            "product_id": position.product_id,
            "product_name": product.name if product else f"Product #{position.product_id}",
            "sku": product.sku if product else None,
            "batch_id": batch.id,
            "batch_number": batch.batch_number,
            "expiry_date": batch.expiry_date,
            "quantity": Decimal(position.quantity),
        }
        for position, product, batch in rows
    ]


def expiring_batches(
    db: Session,
    *,
    tenant_id: int,
    within_days: int,
    as_of: Optional[date] = None,
) -> list[dict]:
    """Batches expiring inside the window, whether or not any stock remains."""
    _require_non_negative_days(within_days, "within_days")
    today = as_of or utcnow().date()
    horizon = today + timedelta(days=within_days)

    on_hand = (
        db.query(
            InventoryPosition.batch_id.label("batch_id"),
            func.sum(InventoryPosition.quantity).label("quantity"),
        )
        .filter(InventoryPosition.tenant_id == tenant_id)
        .group_by(InventoryPosition.batch_id)
        .subquery()
    )
    rows = (
        db.query(Batch, Product, on_hand.c.quantity)
        .outerjoin(Product, Product.id == Batch.product_id)
        .outerjoin(on_hand, on_hand.c.batch_id == Batch.id)
        .filter(
            Batch.tenant_id == tenant_id,
            Batch.expiry_date.isnot(None),
            Batch.expiry_date >= today,
            Batch.expiry_date <= horizon,
        )
        .order_by(Batch.expiry_date.asc(), Batch.id.asc())
        .all()
    )
    return [
        {
            "batch_id": batch.id,
            "batch_number": batch.batch_number,
            "product_id": batch.product_id,
            "product_name": product.name if product else f"Product #{batch.product_id}",
            "expiry_date": batch.expiry_date,
            "days_until_expiry": (batch.expiry_date - today).days,
            "quantity": as_quantity(quantity),
        }
        for batch, product, quantity in rows
    ]


def inventory_valuation(db: Session, *, tenant_id: int) -> dict:
    """Sum quantity x unit cost in Python Decimal, never in the database's float math."""
    rows = (
        db.query(InventoryPosition.quantity, Batch.unit_cost)
        .join(Batch, Batch.id == InventoryPosition.batch_id)
        .filter(InventoryPosition.tenant_id == tenant_id)
        .all()
    )
    total = sum((Decimal(quantity) * Decimal(unit_cost) for quantity, unit_cost in rows), ZERO)
    return {"total_value": total, "positions_count": len(rows)}


def top_moving_products(
    db: Session,
    *,
    tenant_id: int,
    window_days: int,
    limit: int = 10,
    as_of: Optional[datetime] = None,
) -> list[dict]:
    """Rank products by total absolute movement, ties by lowest product id.

    Totals are accumulated in Decimal so equal movements rank as ties.
    """
    _require_non_negative_days(window_days, "window_days")
    if limit <= 0:
        raise ValidationError("limit must be greater than zero.")
    since = (as_of or utcnow()) - timedelta(days=window_days)

    rows = (
        db.query(LedgerEntry.product_id, LedgerEntry.quantity_delta)
        .filter(LedgerEntry.tenant_id == tenant_id, LedgerEntry.recorded_at >= since)
        .all()
    )
    totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for product_id, delta in rows:
        totals[product_id] += abs(Decimal(delta))
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))[:limit]

    products = {
        product.id: product
        for product in db.query(Product).filter(Product.id.in_([product_id for product_id, _ in ranked])).all()
    }
    results = []
    for product_id, total in ranked:
        product = products.get(product_id)
        results.append(
            {
                "product_id": product_id,
                "product_name": product.name if product else f"Product #{product_id}",
                "sku": product.sku if product else None,
                "total_movement": as_quantity(total),
            }
        )
    return results


def inventory_summary(db: Session, *, tenant_id: int, as_of: Optional[date] = None) -> dict:
    total_products = (
        db.query(func.count(Product.id)).filter(Product.tenant_id == tenant_id).scalar() or 0
    )
    low_stock = low_stock_report(db, tenant_id=tenant_id, threshold=settings.LOW_STOCK_THRESHOLD)
    valuation = inventory_valuation(db, tenant_id=tenant_id)
    expiring = expiring_batches(
        db,
        tenant_id=tenant_id,
        within_days=settings.EXPIRY_WINDOW_DAYS,
        as_of=as_of,
    )
    return {
        "total_products": total_products,
        "low_stock_count": len(low_stock),
        "total_value": valuation["total_value"],
        "expiring_batches": len(expiring),
    }
