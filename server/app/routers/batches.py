from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.auth import get_ledger_context
from app.db import get_db
from app.inventory import schemas
from app.inventory.audit import list_by_batch
from app.inventory.batches import create_batch, get_batch, list_batches, update_batch
from app.inventory.context import LedgerContext
from app.routers.pagination import Page, page_params


router = APIRouter(prefix="/api/batches", tags=["batches"])


@router.post("", response_model=schemas.BatchResponse, status_code=status.HTTP_201_CREATED)
def create_batch_endpoint(
    payload: schemas.BatchCreate,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    batch = create_batch(
        db,
        tenant_id=ctx.tenant_id,
        product_id=payload.product_id,
        batch_number=payload.batch_number,
        expiry_date=payload.expiry_date,
        unit_cost=payload.unit_cost,
    )
    db.commit()
    db.refresh(batch)
    return batch


@router.get("", response_model=List[schemas.BatchResponse])
def list_batches_endpoint(
    product_id: Optional[int] = Query(None),
    page: Page = Depends(page_params),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return list_batches(
        db,
        tenant_id=ctx.tenant_id,
        product_id=product_id,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/{batch_id}", response_model=schemas.BatchResponse)
def get_batch_endpoint(
    batch_id: int,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return get_batch(db, tenant_id=ctx.tenant_id, batch_id=batch_id)


@router.patch("/{batch_id}", response_model=schemas.BatchResponse)
def update_batch_endpoint(
    batch_id: int,
    payload: schemas.BatchUpdate,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    batch = update_batch(
        db,
        tenant_id=ctx.tenant_id,
        batch_id=batch_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    db.commit()
    db.refresh(batch)
    return batch


@router.get("/{batch_id}/ledger", response_model=List[schemas.LedgerEntryResponse])
def list_batch_ledger(
    batch_id: int,
    page: Page = Depends(page_params),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    get_batch(db, tenant_id=ctx.tenant_id, batch_id=batch_id)
    return list_by_batch(db, tenant_id=ctx.tenant_id, batch_id=batch_id, limit=page.limit, offset=page.offset)
