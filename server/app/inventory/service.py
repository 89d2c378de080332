from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.inventory.audit import append_entry
from app.inventory.batches import get_batch
from app.inventory.context import LedgerContext
from app.inventory.errors import (
    ConflictError,
    InsufficientStockError,
    InventoryError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from app.models import InventoryPosition, LedgerTransactionType
from app.utils import as_quantity, to_quantity
from app.utils.quantities import ZERO


logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
UNIQUE_VIOLATION_SQLSTATE = "23505"


@dataclass
class TransferResult:
    source: InventoryPosition
    destination: InventoryPosition


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _is_retryable(exc: OperationalError) -> bool:
    if _sqlstate(exc) in RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(getattr(exc, "orig", exc))


def _is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return "UNIQUE constraint failed" in str(getattr(exc, "orig", exc))


@contextmanager
def ledger_transaction(db: Session) -> Iterator[None]:
    """Run one ledger mutation inside a savepoint and commit it.

    Position rows and their ledger entries are written together or not at all.
    A rejected mutation (validation, missing rows, insufficient stock) rolls back
    only to the savepoint, so work the caller staged earlier in the session is
    kept. On success the session is committed, including that earlier work.
    A database failure aborts the whole session transaction. Nothing is retried.
    """
    try:
        with db.begin_nested():
            yield
        db.commit()
    except InventoryError:
        raise
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Inventory position changed concurrently: %s", exc)
        raise ConflictError("Inventory position was modified concurrently; retry the operation.") from exc
    except IntegrityError as exc:
        db.rollback()
        if _is_unique_violation(exc):
            logger.warning("Inventory position created concurrently: %s", exc.orig)
            raise ConflictError("Inventory position was created concurrently; retry the operation.") from exc
        raise StorageError("Inventory write violated a storage constraint.") from exc
    except OperationalError as exc:
        db.rollback()
        if _is_retryable(exc):
            logger.warning("Inventory write lost a lock race: %s", exc.orig)
            raise ConflictError("Inventory position is locked by another writer; retry the operation.") from exc
        raise StorageError("Inventory storage is unavailable.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("Inventory storage failure.") from exc


def _positive_amount(amount: Decimal | int | str, field: str = "amount") -> Decimal:
    qty = to_quantity(amount, field=field)
    if qty <= 0:
        raise ValidationError(f"{field.capitalize()} must be greater than zero.")
    return qty


def _non_negative_amount(amount: Decimal | int | str, field: str = "quantity") -> Decimal:
    qty = to_quantity(amount, field=field)
    if qty < 0:
        raise ValidationError(f"{field.capitalize()} cannot be negative.")
    return qty


def _require_batch(db: Session, tenant_id: int, product_id: int, batch_id: int) -> None:
    batch = get_batch(db, tenant_id=tenant_id, batch_id=batch_id)
    if batch.product_id != product_id:
        raise ValidationError(f"Batch {batch_id} does not belong to product {product_id}.")


def _position_query(db: Session, tenant_id: int, product_id: int, batch_id: int):
    return db.query(InventoryPosition).filter(
        InventoryPosition.tenant_id == tenant_id,
        InventoryPosition.product_id == product_id,
        InventoryPosition.batch_id == batch_id,
    )


def _lock_position(db: Session, tenant_id: int, product_id: int, batch_id: int) -> Optional[InventoryPosition]:
    return (
        _position_query(db, tenant_id, product_id, batch_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def _increase(db: Session, ctx: LedgerContext, product_id: int, batch_id: int, qty: Decimal) -> InventoryPosition:
    position = _lock_position(db, ctx.tenant_id, product_id, batch_id)
    if position is None:
        position = InventoryPosition(
            tenant_id=ctx.tenant_id,
            product_id=product_id,
            batch_id=batch_id,
            quantity=qty,
        )
        db.add(position)
    else:
        position.quantity = to_quantity(Decimal(position.quantity) + qty, field="resulting quantity")
    return position


def _decrease(db: Session, ctx: LedgerContext, product_id: int, batch_id: int, qty: Decimal) -> InventoryPosition:
    position = _lock_position(db, ctx.tenant_id, product_id, batch_id)
    available = Decimal(position.quantity) if position else ZERO
    if position is None or available < qty:
        raise InsufficientStockError(batch_id=batch_id, available=available, requested=qty)
    position.quantity = available - qty
    return position


def add_quantity(
    db: Session,
    ctx: LedgerContext,
    *,
    product_id: int,
    batch_id: int,
    amount: Decimal | int | str,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryPosition:
    qty = _positive_amount(amount)
    with ledger_transaction(db):
        _require_batch(db, ctx.tenant_id, product_id, batch_id)
        position = _increase(db, ctx, product_id, batch_id, qty)
        append_entry(
            db,
            ctx=ctx,
            product_id=product_id,
            batch_id=batch_id,
            transaction_type=LedgerTransactionType.IN,
            quantity_delta=qty,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )
    logger.info(
        "Stock added: tenant_id=%s product_id=%s batch_id=%s amount=%s actor_id=%s",
        ctx.tenant_id,
        product_id,
        batch_id,
        qty,
        ctx.actor_id,
    )
    return position


def reduce_quantity(
    db: Session,
    ctx: LedgerContext,
    *,
    product_id: int,
    batch_id: int,
    amount: Decimal | int | str,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryPosition:
    qty = _positive_amount(amount)
    with ledger_transaction(db):
        _require_batch(db, ctx.tenant_id, product_id, batch_id)
        position = _decrease(db, ctx, product_id, batch_id, qty)
        append_entry(
            db,
            ctx=ctx,
            product_id=product_id,
            batch_id=batch_id,
            transaction_type=LedgerTransactionType.OUT,
            quantity_delta=-qty,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )
    logger.info(
        "Stock reduced: tenant_id=%s product_id=%s batch_id=%s amount=%s actor_id=%s",
        ctx.tenant_id,
        product_id,
        batch_id,
        qty,
        ctx.actor_id,
    )
    return position


def set_quantity(
    db: Session,
    ctx: LedgerContext,
    *,
    product_id: int,
    batch_id: int,
    new_amount: Decimal | int | str,
) -> InventoryPosition:
    """Overwrite the on-hand quantity for a manual stock take.

    No ledger entry is written; use adjust_quantity for an audited correction.
    """
    qty = _non_negative_amount(new_amount)
    with ledger_transaction(db):
        _require_batch(db, ctx.tenant_id, product_id, batch_id)
        position = _lock_position(db, ctx.tenant_id, product_id, batch_id)
        if position is None:
            position = InventoryPosition(
                tenant_id=ctx.tenant_id,
                product_id=product_id,
                batch_id=batch_id,
                quantity=qty,
            )
            db.add(position)
        else:
            position.quantity = qty
    logger.info(
        "Stock set without ledger entry: tenant_id=%s product_id=%s batch_id=%s quantity=%s actor_id=%s",
        ctx.tenant_id,
        product_id,
        batch_id,
        qty,
        ctx.actor_id,
    )
    return position


def adjust_quantity(
    db: Session,
    ctx: LedgerContext,
    *,
    product_id: int,
    batch_id: int,
    new_amount: Decimal | int | str,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryPosition:
    """Audited stock-take correction: set the quantity and log the difference."""
    qty = _non_negative_amount(new_amount)
    with ledger_transaction(db):
        _require_batch(db, ctx.tenant_id, product_id, batch_id)
        position = _lock_position(db, ctx.tenant_id, product_id, batch_id)
        previous = Decimal(position.quantity) if position else ZERO
        if position is None:
            position = InventoryPosition(
                tenant_id=ctx.tenant_id,
                product_id=product_id,
                batch_id=batch_id,
                quantity=qty,
            )
            db.add(position)
        else:
            position.quantity = qty
        delta = qty - previous
        if delta != 0:
            append_entry(
                db,
                ctx=ctx,
                product_id=product_id,
                batch_id=batch_id,
                transaction_type=LedgerTransactionType.ADJUSTMENT,
                quantity_delta=delta,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=notes,
            )
    logger.info(
        "Stock adjusted: tenant_id=%s product_id=%s batch_id=%s delta=%s actor_id=%s",
        ctx.tenant_id,
        product_id,
        batch_id,
        delta,
        ctx.actor_id,
    )
    return position


def transfer_quantity(
    db: Session,
    ctx: LedgerContext,
    *,
    product_id: int,
    from_batch_id: int,
    to_batch_id: int,
    amount: Decimal | int | str,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> TransferResult:
    """Move stock between two batches of the same product in one commit."""
    qty = _positive_amount(amount)
    if from_batch_id == to_batch_id:
        raise ValidationError("Source and destination batches must differ.")

    with ledger_transaction(db):
        _require_batch(db, ctx.tenant_id, product_id, from_batch_id)
        _require_batch(db, ctx.tenant_id, product_id, to_batch_id)
        # Lock both rows in a fixed order so opposing transfers cannot deadlock.
        for batch_id in sorted((from_batch_id, to_batch_id)):
            _lock_position(db, ctx.tenant_id, product_id, batch_id)

        source = _decrease(db, ctx, product_id, from_batch_id, qty)
        destination = _increase(db, ctx, product_id, to_batch_id, qty)
        suffix = f": {notes}" if notes else ""
        append_entry(
            db,
            ctx=ctx,
            product_id=product_id,
            batch_id=from_batch_id,
            transaction_type=LedgerTransactionType.TRANSFER_OUT,
            quantity_delta=-qty,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=f"Transfer to batch {to_batch_id}{suffix}",
        )
        append_entry(
            db,
            ctx=ctx,
            product_id=product_id,
            batch_id=to_batch_id,
            transaction_type=LedgerTransactionType.TRANSFER_IN,
            quantity_delta=qty,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=f"Transfer from batch {from_batch_id}{suffix}",
        )
    logger.info(
        "Transferred %s of product %s from batch %s to batch %s: tenant_id=%s actor_id=%s",
        qty,
        product_id,
        from_batch_id,
        to_batch_id,
        ctx.tenant_id,
        ctx.actor_id,
    )
    return TransferResult(source=source, destination=destination)


def get_availability(
    db: Session,
    *,
    tenant_id: int,
    product_id: int,
    batch_id: int,
    required_amount: Decimal | int | str,
) -> bool:
    """Advisory check only; reduce_quantity remains the authoritative gate."""
    required = _non_negative_amount(required_amount, field="required amount")
    current = (
        db.query(InventoryPosition.quantity)
        .filter(
            InventoryPosition.tenant_id == tenant_id,
            InventoryPosition.product_id == product_id,
            InventoryPosition.batch_id == batch_id,
        )
        .scalar()
    )
    on_hand = Decimal(current) if current is not None else ZERO
    logger.debug(
        "Inventory availability lookup: tenant_id=%s product_id=%s batch_id=%s on_hand=%s required=%s",
        tenant_id,
        product_id,
        batch_id,
        on_hand,
        required,
    )
    return on_hand >= required


def get_position(db: Session, *, tenant_id: int, product_id: int, batch_id: int) -> InventoryPosition:
    position = _position_query(db, tenant_id, product_id, batch_id).first()
    if not position:
        raise NotFoundError("Inventory position not found.")
    return position


def list_positions(
    db: Session,
    *,
    tenant_id: int,
    product_id: Optional[int] = None,
    limit: int = 20,
    offset: int = 0,
) -> list[InventoryPosition]:
    query = db.query(InventoryPosition).filter(InventoryPosition.tenant_id == tenant_id)
    if product_id is not None:
        query = query.filter(InventoryPosition.product_id == product_id)
    return (
        query.order_by(InventoryPosition.product_id.asc(), InventoryPosition.batch_id.asc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def get_product_quantity(db: Session, *, tenant_id: int, product_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(InventoryPosition.quantity), 0))
        .filter(InventoryPosition.tenant_id == tenant_id, InventoryPosition.product_id == product_id)
        .scalar()
    )
    return as_quantity(total)
