from datetime import date
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.inventory.errors import NotFoundError, ValidationError
from app.models import Batch, Product
from app.utils import to_cost


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"batch_number", "expiry_date", "unit_cost"}


def _clean_batch_number(batch_number: Optional[str]) -> str:
    cleaned = (batch_number or "").strip()
    if not cleaned:
        raise ValidationError("Batch number is required.")
    return cleaned


def _validated_cost(unit_cost: Decimal | int | str) -> Decimal:
    cost = to_cost(unit_cost)
    if cost < 0:
        raise ValidationError("Unit cost cannot be negative.")
    return cost


def create_batch(
    db: Session,
    *,
    tenant_id: int,
    product_id: int,
    batch_number: str,
    unit_cost: Decimal | int | str,
    expiry_date: Optional[date] = None,
) -> Batch:
    """Register a new physical intake. Repeated batch numbers are allowed."""
    cost = _validated_cost(unit_cost)
    cleaned_number = _clean_batch_number(batch_number)
    product = (
        db.query(Product.id)
        .filter(Product.id == product_id, Product.tenant_id == tenant_id)
        .first()
    )
    if not product:
        raise NotFoundError("Product not found.")

    batch = Batch(
        tenant_id=tenant_id,
        product_id=product_id,
        batch_number=cleaned_number,
        expiry_date=expiry_date,
        unit_cost=cost,
    )
    db.add(batch)
    db.flush()
    logger.info(
        "Batch created: tenant_id=%s product_id=%s batch_id=%s batch_number=%s",
        tenant_id,
        product_id,
        batch.id,
        cleaned_number,
    )
    return batch


def get_batch(db: Session, *, tenant_id: int, batch_id: int) -> Batch:
    batch = db.query(Batch).filter(Batch.id == batch_id, Batch.tenant_id == tenant_id).first()
    if not batch:
        raise NotFoundError("Batch not found.")
    return batch


def update_batch(db: Session, *, tenant_id: int, batch_id: int, changes: dict) -> Batch:
    """Apply a partial update. Positions referencing the batch are left alone."""
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown batch fields: {', '.join(sorted(unknown))}")

    batch = get_batch(db, tenant_id=tenant_id, batch_id=batch_id)
    if "batch_number" in changes:
        batch.batch_number = _clean_batch_number(changes["batch_number"])
    if "unit_cost" in changes:
        batch.unit_cost = _validated_cost(changes["unit_cost"])
    if "expiry_date" in changes:
        batch.expiry_date = changes["expiry_date"]
    db.flush()
    return batch


def list_batches(
    db: Session,
    *,
    tenant_id: int,
    product_id: Optional[int] = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Batch]:
    query = db.query(Batch).filter(Batch.tenant_id == tenant_id)
    if product_id is not None:
        query = query.filter(Batch.product_id == product_id)
    return (
        query.order_by(Batch.created_at.desc(), Batch.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
