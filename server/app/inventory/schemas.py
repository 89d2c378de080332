from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal


QuantityValue = condecimal(max_digits=18, decimal_places=4)
CostValue = condecimal(max_digits=14, decimal_places=4)


class BatchCreate(BaseModel):
    product_id: int
    batch_number: str = Field(..., min_length=1, max_length=100)
    expiry_date: Optional[date] = None
    unit_cost: CostValue = Field(..., ge=0)


class BatchUpdate(BaseModel):
    batch_number: Optional[str] = Field(None, min_length=1, max_length=100)
    expiry_date: Optional[date] = None
    unit_cost: Optional[CostValue] = Field(None, ge=0)


class BatchResponse(BaseModel):
    id: int
    product_id: int
    batch_number: str
    expiry_date: Optional[date] = None
    unit_cost: CostValue
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuantityChange(BaseModel):
    product_id: int
    batch_id: int
    amount: QuantityValue = Field(..., gt=0)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[int] = None
    notes: Optional[str] = None


class QuantitySet(BaseModel):
    product_id: int
    batch_id: int
    quantity: QuantityValue = Field(..., ge=0)


class QuantityAdjustment(QuantitySet):
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[int] = None
    notes: Optional[str] = None


class TransferCreate(BaseModel):
    product_id: int
    from_batch_id: int
    to_batch_id: int
    amount: QuantityValue = Field(..., gt=0)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[int] = None
    notes: Optional[str] = None


class PositionResponse(BaseModel):
    id: int
    product_id: int
    batch_id: int
    quantity: QuantityValue
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransferResponse(BaseModel):
    source: PositionResponse
    destination: PositionResponse


class AvailabilityResponse(BaseModel):
    product_id: int
    batch_id: int
    required_amount: QuantityValue
    available: bool


class ProductQuantityResponse(BaseModel):
    product_id: int
    quantity: QuantityValue


class LedgerEntryResponse(BaseModel):
    id: int
    product_id: int
    batch_id: int
    transaction_type: str
    quantity_delta: QuantityValue
    actor_id: Optional[int] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    recorded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LowStockRow(BaseModel):
    position_id: int
    product_id: int
    product_name: str
    sku: Optional[str] = None
    batch_id: int
    batch_number: str
    expiry_date: Optional[date] = None
    quantity: QuantityValue


class LowStockReportResponse(BaseModel):
    threshold: QuantityValue
    items: List[LowStockRow]


class ExpiringBatchRow(BaseModel):
    batch_id: int
    batch_number: str
    product_id: int
    product_name: str
    expiry_date: date
    days_until_expiry: int
    quantity: QuantityValue


class ExpiringBatchesResponse(BaseModel):
    within_days: int
    items: List[ExpiringBatchRow]


class InventoryValuationResponse(BaseModel):
    total_value: Decimal
    positions_count: int


class TopMovingProductRow(BaseModel):
    product_id: int
    product_name: str
    sku: Optional[str] = None
    total_movement: QuantityValue


class TopMovingProductsResponse(BaseModel):
    window_days: int
    items: List[TopMovingProductRow]


class InventorySummaryResponse(BaseModel):
    total_products: int
    low_stock_count: int
    total_value: Decimal
    expiring_batches: int
