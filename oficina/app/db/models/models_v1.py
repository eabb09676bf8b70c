from __future__ import annotations

from datetime import datetime, date, timezone

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from oficina.app.db.base import Base
from oficina.app.db.models.core_types import (
    ORDER_STATUS_DEFAULT,
    REALIZED_STATUS_DEFAULT,
    StockMovementType,
    StockOrigin,
    FinanceType,
    FinanceStatus,
    PaymentChannel,
    enum_values,
)

# BIGINT en Postgres, INTEGER en SQLite (sinon pas d'autoincrement)
PK = BigInteger().with_variant(Integer(), "sqlite")

MONEY = Numeric(14, 2, asdecimal=False)
QTY = Numeric(14, 3, asdecimal=False)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # on persiste les valeurs ("saida", "in", "Pago"), pas les noms Python
    return Enum(enum_cls, name=name, values_callable=enum_values)


# ---------- CATALOG ----------
class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    code: Mapped[str | None] = mapped_column(String(64))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(120))
    sku: Mapped[str | None] = mapped_column(String(64), unique=True)
    sale_price: Mapped[float] = mapped_column(MONEY, nullable=False)
    cost: Mapped[float | None] = mapped_column(MONEY)

    # écrit UNIQUEMENT par le ledger (services.inventory)
    stock: Mapped[float] = mapped_column(QTY, default=0, nullable=False)

    unit: Mapped[str | None] = mapped_column(String(32))
    description: Mapped[str | None] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class CatalogService(Base):
    __tablename__ = "catalog_services"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(120))
    price: Mapped[float | None] = mapped_column(MONEY)
    deadline: Mapped[str | None] = mapped_column(String(64))
    description: Mapped[str | None] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


# ---------- QUOTES ----------
class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(PK, primary_key=True)

    # snapshots client (copie à l'instant du devis, pas une FK)
    client_id: Mapped[str | None] = mapped_column(String(64))
    client_name: Mapped[str | None] = mapped_column(String(255))
    client_contact: Mapped[str | None] = mapped_column(String(255))

    equipment: Mapped[str | None] = mapped_column(String(255))
    problem: Mapped[str | None] = mapped_column(Text)

    # référence souple vers catalog_services
    service_id: Mapped[int | None] = mapped_column(PK)
    service_description: Mapped[str | None] = mapped_column(Text)

    service_value: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    items_value: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    total_value: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)

    validity: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(32), default=ORDER_STATUS_DEFAULT, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"))
    product_name: Mapped[str] = mapped_column(String(255), default="Produto", nullable=False)
    quantity: Mapped[float] = mapped_column(QTY, default=0, nullable=False)
    price: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    total: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")


# ---------- REALIZED SERVICES ----------
class RealizedService(Base):
    __tablename__ = "realized_services"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    order_id: Mapped[int | None] = mapped_column(
        ForeignKey("orders.id", ondelete="SET NULL"),
        index=True,
    )

    client_id: Mapped[str | None] = mapped_column(String(64))
    client_name: Mapped[str | None] = mapped_column(String(255))
    client_contact: Mapped[str | None] = mapped_column(String(255))
    service_id: Mapped[int | None] = mapped_column(PK)
    service_name: Mapped[str | None] = mapped_column(String(255))
    equipment: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)

    service_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(32), default=REALIZED_STATUS_DEFAULT, nullable=False)

    service_value: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    products_value: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    total_value: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    service_cost: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    products_cost: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    total_cost: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    items: Mapped[list["RealizedServiceItem"]] = relationship(
        back_populates="service",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RealizedServiceItem.id",
    )


class RealizedServiceItem(Base):
    __tablename__ = "realized_service_items"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    service_id: Mapped[int] = mapped_column(
        ForeignKey("realized_services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"))
    product_name: Mapped[str] = mapped_column(String(255), default="Produto", nullable=False)
    quantity: Mapped[float] = mapped_column(QTY, default=0, nullable=False)
    price: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    total: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    unit_cost: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    total_cost: Mapped[float] = mapped_column(MONEY, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    service: Mapped[RealizedService] = relationship(back_populates="items")


# ---------- INVENTORY ----------
class StockMovement(Base):
    __tablename__ = "stock_movements"
    id: Mapped[int] = mapped_column(PK, primary_key=True)

    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"),
        index=True,
    )
    product_name: Mapped[str | None] = mapped_column(String(255))

    movement_type: Mapped[StockMovementType] = mapped_column(
        _enum(StockMovementType, "stock_movement_type"),
        nullable=False,
    )
    quantity: Mapped[float] = mapped_column(QTY, nullable=False)
    previous_stock: Mapped[float] = mapped_column(QTY, nullable=False)
    current_stock: Mapped[float] = mapped_column(QTY, nullable=False)

    description: Mapped[str | None] = mapped_column(Text)
    origin: Mapped[StockOrigin] = mapped_column(
        _enum(StockOrigin, "stock_origin"),
        default=StockOrigin.manual,
        nullable=False,
    )
    reference_id: Mapped[str | None] = mapped_column(String(64))
    created_by: Mapped[str | None] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movement_qty_pos"),
        Index("ix_stock_movements_product_time", "product_id", "created_at"),
    )


# ---------- FINANCE ----------
class FinanceMovement(Base):
    __tablename__ = "finance_movements"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(120))
    movement_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    value: Mapped[float] = mapped_column(MONEY, nullable=False)
    status: Mapped[FinanceStatus] = mapped_column(
        _enum(FinanceStatus, "finance_status"),
        default=FinanceStatus.paid,
        nullable=False,
    )
    type: Mapped[FinanceType] = mapped_column(_enum(FinanceType, "finance_type"), nullable=False)
    channel: Mapped[PaymentChannel | None] = mapped_column(_enum(PaymentChannel, "payment_channel"))
    notes: Mapped[str | None] = mapped_column(Text)
    service_realized_id: Mapped[int | None] = mapped_column(
        ForeignKey("realized_services.id", ondelete="SET NULL"),
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (Index("ix_finance_movements_date", "movement_date"),)
