"""initial schema: catalog, orders, realized services, stock ledger, finance

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
MONEY = sa.Numeric(14, 2)
QTY = sa.Numeric(14, 3)

# valeurs persistées telles quelles (pas les noms Python)
STOCK_MOVEMENT_TYPE = sa.Enum("entrada", "saida", name="stock_movement_type")
STOCK_ORIGIN = sa.Enum("manual", "servico", "orcamento", "ajuste_sistema", name="stock_origin")
FINANCE_TYPE = sa.Enum("in", "out", name="finance_type")
FINANCE_STATUS = sa.Enum("Pago", "Pendente", "Agendado", name="finance_status")
PAYMENT_CHANNEL = sa.Enum("PIX", "Cartao", "Dinheiro", "Boleto", "Transferencia", name="payment_channel")


def _timestamps(with_update: bool = True) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if with_update:
        cols.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
        )
    return cols


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", PK, primary_key=True),
        sa.Column("code", sa.String(64)),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(120)),
        sa.Column("sku", sa.String(64), unique=True),
        sa.Column("sale_price", MONEY, nullable=False),
        sa.Column("cost", MONEY),
        sa.Column("stock", QTY, nullable=False, server_default="0"),
        sa.Column("unit", sa.String(32)),
        sa.Column("description", sa.Text()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "catalog_services",
        sa.Column("id", PK, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(120)),
        sa.Column("price", MONEY),
        sa.Column("deadline", sa.String(64)),
        sa.Column("description", sa.Text()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(with_update=False),
    )

    op.create_table(
        "orders",
        sa.Column("id", PK, primary_key=True),
        sa.Column("client_id", sa.String(64)),
        sa.Column("client_name", sa.String(255)),
        sa.Column("client_contact", sa.String(255)),
        sa.Column("equipment", sa.String(255)),
        sa.Column("problem", sa.Text()),
        sa.Column("service_id", PK),
        sa.Column("service_description", sa.Text()),
        sa.Column("service_value", MONEY, nullable=False, server_default="0"),
        sa.Column("items_value", MONEY, nullable=False, server_default="0"),
        sa.Column("total_value", MONEY, nullable=False, server_default="0"),
        sa.Column("validity", sa.Date()),
        sa.Column("status", sa.String(32), nullable=False, server_default="em_analise"),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "order_items",
        sa.Column("id", PK, primary_key=True),
        sa.Column("order_id", PK, sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", PK, sa.ForeignKey("products.id", ondelete="SET NULL")),
        sa.Column("product_name", sa.String(255), nullable=False, server_default="Produto"),
        sa.Column("quantity", QTY, nullable=False, server_default="0"),
        sa.Column("price", MONEY, nullable=False, server_default="0"),
        sa.Column("total", MONEY, nullable=False, server_default="0"),
        *_timestamps(with_update=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "realized_services",
        sa.Column("id", PK, primary_key=True),
        sa.Column("order_id", PK, sa.ForeignKey("orders.id", ondelete="SET NULL")),
        sa.Column("client_id", sa.String(64)),
        sa.Column("client_name", sa.String(255)),
        sa.Column("client_contact", sa.String(255)),
        sa.Column("service_id", PK),
        sa.Column("service_name", sa.String(255)),
        sa.Column("equipment", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("service_date", sa.Date()),
        sa.Column("status", sa.String(32), nullable=False, server_default="em_execucao"),
        sa.Column("service_value", MONEY, nullable=False, server_default="0"),
        sa.Column("products_value", MONEY, nullable=False, server_default="0"),
        sa.Column("total_value", MONEY, nullable=False, server_default="0"),
        sa.Column("service_cost", MONEY, nullable=False, server_default="0"),
        sa.Column("products_cost", MONEY, nullable=False, server_default="0"),
        sa.Column("total_cost", MONEY, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_realized_services_order_id", "realized_services", ["order_id"])

    op.create_table(
        "realized_service_items",
        sa.Column("id", PK, primary_key=True),
        sa.Column("service_id", PK, sa.ForeignKey("realized_services.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", PK, sa.ForeignKey("products.id", ondelete="SET NULL")),
        sa.Column("product_name", sa.String(255), nullable=False, server_default="Produto"),
        sa.Column("quantity", QTY, nullable=False, server_default="0"),
        sa.Column("price", MONEY, nullable=False, server_default="0"),
        sa.Column("total", MONEY, nullable=False, server_default="0"),
        sa.Column("unit_cost", MONEY, nullable=False, server_default="0"),
        sa.Column("total_cost", MONEY, nullable=False, server_default="0"),
        *_timestamps(with_update=False),
    )
    op.create_index("ix_realized_service_items_service_id", "realized_service_items", ["service_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", PK, primary_key=True),
        sa.Column("product_id", PK, sa.ForeignKey("products.id", ondelete="SET NULL")),
        sa.Column("product_name", sa.String(255)),
        sa.Column("movement_type", STOCK_MOVEMENT_TYPE, nullable=False),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("previous_stock", QTY, nullable=False),
        sa.Column("current_stock", QTY, nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("origin", STOCK_ORIGIN, nullable=False, server_default="manual"),
        sa.Column("reference_id", sa.String(64)),
        sa.Column("created_by", sa.String(120)),
        *_timestamps(with_update=False),
        sa.CheckConstraint("quantity > 0", name="ck_stock_movement_qty_pos"),
    )
    op.create_index("ix_stock_movements_product_id", "stock_movements", ["product_id"])
    op.create_index("ix_stock_movements_product_time", "stock_movements", ["product_id", "created_at"])

    op.create_table(
        "finance_movements",
        sa.Column("id", PK, primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("category", sa.String(120)),
        sa.Column("movement_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("value", MONEY, nullable=False),
        sa.Column("status", FINANCE_STATUS, nullable=False, server_default="Pago"),
        sa.Column("type", FINANCE_TYPE, nullable=False),
        sa.Column("channel", PAYMENT_CHANNEL),
        sa.Column("notes", sa.Text()),
        sa.Column(
            "service_realized_id",
            PK,
            sa.ForeignKey("realized_services.id", ondelete="SET NULL"),
        ),
        *_timestamps(),
    )
    op.create_index("ix_finance_movements_date", "finance_movements", ["movement_date"])
    op.create_index("ix_finance_movements_service_realized_id", "finance_movements", ["service_realized_id"])


def downgrade() -> None:
    op.drop_table("finance_movements")
    op.drop_table("stock_movements")
    op.drop_table("realized_service_items")
    op.drop_table("realized_services")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("catalog_services")
    op.drop_table("products")

    bind = op.get_bind()
    for enum in (PAYMENT_CHANNEL, FINANCE_STATUS, FINANCE_TYPE, STOCK_ORIGIN, STOCK_MOVEMENT_TYPE):
        enum.drop(bind, checkfirst=True)
