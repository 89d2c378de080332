from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth import get_ledger_context
from app.config import settings
from app.db import get_db
from app.inventory import schemas
from app.inventory.context import LedgerContext
from app.inventory.reports import (
    expiring_batches,
    inventory_summary,
    inventory_valuation,
    low_stock_report,
    top_moving_products,
)


router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/low-stock", response_model=schemas.LowStockReportResponse)
def low_stock(
    threshold: Decimal = Query(Decimal(settings.LOW_STOCK_THRESHOLD), ge=0),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return {
        "threshold": threshold,
        "items": low_stock_report(db, tenant_id=ctx.tenant_id, threshold=threshold),
    }


@router.get("/expiring-batches", response_model=schemas.ExpiringBatchesResponse)
def expiring(
    within_days: int = Query(settings.EXPIRY_WINDOW_DAYS, ge=0, le=3650),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return {
        "within_days": within_days,
        "items": expiring_batches(db, tenant_id=ctx.tenant_id, within_days=within_days),
    }


@router.get("/valuation", response_model=schemas.InventoryValuationResponse)
def valuation(
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return inventory_valuation(db, tenant_id=ctx.tenant_id)


@router.get("/top-moving", response_model=schemas.TopMovingProductsResponse)
def top_moving(
    window_days: int = Query(30, ge=0, le=3650),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return {
        "window_days": window_days,
        "items": top_moving_products(db, tenant_id=ctx.tenant_id, window_days=window_days, limit=limit),
    }


@router.get("/summary", response_model=schemas.InventorySummaryResponse)
def summary(
    ctx: LedgerContext = Depends(get_ledger_context),
    db: Session = Depends(get_db),
):
    return inventory_summary(db, tenant_id=ctx.tenant_id)
