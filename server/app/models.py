from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base, ExactDecimal
from .utils.clock import utcnow


class LedgerTransactionType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    ADJUSTMENT = "ADJUSTMENT"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    abbreviation = Column(String(20), nullable=False)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)
    sku = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    price = Column(ExactDecimal(14, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    unit = relationship("Unit")
    batches = relationship("Batch", back_populates="product")

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
    )


class Batch(Base):
    __tablename__ = "batches"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    batch_number = Column(String(100), nullable=False)
    expiry_date = Column(Date, nullable=True)
    unit_cost = Column(ExactDecimal(14, 4), nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    product = relationship("Product", back_populates="batches")
    positions = relationship("InventoryPosition", back_populates="batch")

    __table_args__ = (
        CheckConstraint("unit_cost >= 0", name="ck_batches_unit_cost_non_negative"),
    )


class InventoryPosition(Base):
    __tablename__ = "inventory_positions"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=False, index=True)
    quantity = Column(ExactDecimal(18, 4), nullable=False, default=0)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    product = relationship("Product")
    batch = relationship("Batch", back_populates="positions")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("tenant_id", "product_id", "batch_id", name="uq_inventory_positions_key"),
        CheckConstraint("quantity >= 0", name="ck_inventory_positions_quantity_non_negative"),
    )


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=False)
    transaction_type = Column(String(20), nullable=False)
    quantity_delta = Column(ExactDecimal(18, 4), nullable=False)
    actor_id = Column(Integer, nullable=True)
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    recorded_at = Column(DateTime, default=utcnow, nullable=False)

    product = relationship("Product")
    batch = relationship("Batch")

    __table_args__ = (
        Index("ix_ledger_entries_product_recorded", "tenant_id", "product_id", "recorded_at"),
        Index("ix_ledger_entries_batch_recorded", "tenant_id", "batch_id", "recorded_at"),
    )
