from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth import get_ledger_context
from app.db import get_db
from app.inventory import schemas
from app.inventory.audit import list_by_product
from app.inventory.context import LedgerContext
from app.inventory.service import (
    add_quantity,
    adjust_quantity,
    get_availability,
    get_position,
    get_product_quantity,
    list_positions,
    reduce_quantity,
    set_quantity,
    transfer_quantity,
)
from app.routers.pagination import Page, page_params


router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("", response_model=List[schemas.PositionResponse])
def list_inventory_positions(
    product_id: Optional[int] = Query(None),
    page: Page = Depends(page_params),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return list_positions(
        db,
        tenant_id=ctx.tenant_id,
        product_id=product_id,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/position", response_model=schemas.PositionResponse)
def get_inventory_position(
    product_id: int,
    batch_id: int,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return get_position(db, tenant_id=ctx.tenant_id, product_id=product_id, batch_id=batch_id)


@router.get("/availability", response_model=schemas.AvailabilityResponse)
def check_availability(
    product_id: int,
    batch_id: int,
    required_amount: Decimal = Query(..., ge=0),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    available = get_availability(
        db,
        tenant_id=ctx.tenant_id,
        product_id=product_id,
        batch_id=batch_id,
        required_amount=required_amount,
    )
    return schemas.AvailabilityResponse(
        product_id=product_id,
        batch_id=batch_id,
        required_amount=required_amount,
        available=available,
    )


@router.get("/products/{product_id}/quantity", response_model=schemas.ProductQuantityResponse)
def get_product_total(
    product_id: int,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return schemas.ProductQuantityResponse(
        product_id=product_id,
        quantity=get_product_quantity(db, tenant_id=ctx.tenant_id, product_id=product_id),
    )


@router.get("/products/{product_id}/ledger", response_model=List[schemas.LedgerEntryResponse])
def list_product_ledger(
    product_id: int,
    page: Page = Depends(page_params),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return list_by_product(db, tenant_id=ctx.tenant_id, product_id=product_id, limit=page.limit, offset=page.offset)


@router.post("/add", response_model=schemas.PositionResponse)
def add_inventory(
    payload: schemas.QuantityChange,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return add_quantity(db, ctx, **payload.model_dump())


@router.post("/reduce", response_model=schemas.PositionResponse)
def reduce_inventory(
    payload: schemas.QuantityChange,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return reduce_quantity(db, ctx, **payload.model_dump())


@router.put("/set", response_model=schemas.PositionResponse)
def set_inventory(
    payload: schemas.QuantitySet,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return set_quantity(
        db,
        ctx,
        product_id=payload.product_id,
        batch_id=payload.batch_id,
        new_amount=payload.quantity,
    )


@router.post("/adjustments", response_model=schemas.PositionResponse)
def adjust_inventory(
    payload: schemas.QuantityAdjustment,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return adjust_quantity(
        db,
        ctx,
        product_id=payload.product_id,
        batch_id=payload.batch_id,
        new_amount=payload.quantity,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
    )


@router.post("/transfer", response_model=schemas.TransferResponse)
def transfer_inventory(
    payload: schemas.TransferCreate,
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    result = transfer_quantity(db, ctx, **payload.model_dump())
    return schemas.TransferResponse(
        source=schemas.PositionResponse.model_validate(result.source),
        destination=schemas.PositionResponse.model_validate(result.destination),
    )
