from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.inventory.context import LedgerContext
from app.inventory.errors import ValidationError
from app.models import LedgerEntry, LedgerTransactionType
from app.utils import utcnow

_POSITIVE_TYPES = {LedgerTransactionType.IN, LedgerTransactionType.TRANSFER_IN}
_NEGATIVE_TYPES = {LedgerTransactionType.OUT, LedgerTransactionType.TRANSFER_OUT}


def append_entry(
    db: Session,
    *,
    ctx: LedgerContext,
    product_id: int,
    batch_id: int,
    transaction_type: LedgerTransactionType,
    quantity_delta: Decimal,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Stage an audit row in the caller's transaction.

    Only the ledger calls this, from inside its unit of work; the row commits or
    rolls back together with the quantity change it describes.
    """
    if quantity_delta == 0:
        raise ValidationError("Ledger entries must carry a non-zero delta.")
    if transaction_type in _POSITIVE_TYPES and quantity_delta < 0:
        raise ValidationError(f"{transaction_type.value} entries must be positive.")
    if transaction_type in _NEGATIVE_TYPES and quantity_delta > 0:
        raise ValidationError(f"{transaction_type.value} entries must be negative.")

    entry = LedgerEntry(
        tenant_id=ctx.tenant_id,
        product_id=product_id,
        batch_id=batch_id,
        transaction_type=transaction_type.value,
        quantity_delta=quantity_delta,
        actor_id=ctx.actor_id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        recorded_at=utcnow(),
    )
    db.add(entry)
    return entry


def list_by_product(
    db: Session,
    *,
    tenant_id: int,
    product_id: int,
    limit: int = 20,
    offset: int = 0,
) -> list[LedgerEntry]:
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.tenant_id == tenant_id, LedgerEntry.product_id == product_id)
        .order_by(LedgerEntry.recorded_at.desc(), LedgerEntry.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def list_by_batch(
    db: Session,
    *,
    tenant_id: int,
    batch_id: int,
    limit: int = 20,
    offset: int = 0,
) -> list[LedgerEntry]:
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.tenant_id == tenant_id, LedgerEntry.batch_id == batch_id)
        .order_by(LedgerEntry.recorded_at.desc(), LedgerEntry.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
