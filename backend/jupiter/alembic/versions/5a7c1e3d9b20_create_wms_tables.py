"""Create WMS tables: items, transactions, sequences, adjustments, rejects.

Revision ID: 5a7c1e3d9b20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "5a7c1e3d9b20"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return bool(insp.has_table(table_name))


def upgrade() -> None:
    if not _table_exists("items"):
        op.create_table(
            "items",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("sku", sa.String(length=100), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=False),
            sa.Column("price", sa.Numeric(15, 2), nullable=False),
            sa.Column("location", sa.String(length=100), nullable=False),
            sa.Column("min_level", sa.Integer(), nullable=False),
            sa.Column("current_stock", sa.Numeric(18, 4), nullable=False),
            sa.Column("unit", sa.String(length=50), nullable=False),
            sa.Column(
                "status",
                sa.Enum("Active", "Inactive", name="item_status_enum", native_enum=False),
                nullable=False,
            ),
            sa.Column("conversion_rate", sa.Numeric(18, 4), nullable=False),
            sa.Column("secondary_unit", sa.String(length=50), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("sku", name="uq_items_sku"),
        )
        op.create_index("ix_items_sku", "items", ["sku"])
        op.create_index("ix_items_name", "items", ["name"])

    if not _table_exists("transactions"):
        op.create_table(
            "transactions",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("transaction_id", sa.String(length=100), nullable=False),
            sa.Column(
                "type",
                sa.Enum("Inbound", "Outbound", name="transaction_type_enum", native_enum=False),
                nullable=False,
            ),
            sa.Column("date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("items", sa.JSON(), nullable=False),
            sa.Column("supplier_name", sa.String(length=255), nullable=True),
            sa.Column("po_number", sa.String(length=100), nullable=True),
            sa.Column("ri_number", sa.String(length=100), nullable=True),
            sa.Column("sj_number", sa.String(length=100), nullable=True),
            sa.Column("total_items", sa.Numeric(18, 4), nullable=False),
            sa.Column("photos", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_transactions_transaction_id", "transactions", ["transaction_id"], unique=True)
        op.create_index("ix_transactions_date", "transactions", ["date"])
        op.create_index("ix_transactions_type_date", "transactions", ["type", "date"])

    if not _table_exists("transaction_sequences"):
        op.create_table(
            "transaction_sequences",
            sa.Column("year", sa.Integer(), primary_key=True, autoincrement=False),
            sa.Column("last_value", sa.Integer(), nullable=False),
        )

    if not _table_exists("stock_adjustments"):
        op.create_table(
            "stock_adjustments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("item_id", sa.String(length=36), nullable=False),
            sa.Column("sku", sa.String(length=100), nullable=False),
            sa.Column(
                "reason",
                sa.Enum(
                    "IMPORT_NEW_SKU",
                    "IMPORT_SHORTFALL",
                    name="stock_adjustment_reason_enum",
                    native_enum=False,
                ),
                nullable=False,
            ),
            sa.Column(
                "transaction_type",
                sa.Enum("Inbound", "Outbound", name="stock_adjustment_type_enum", native_enum=False),
                nullable=False,
            ),
            sa.Column("previous_stock", sa.Numeric(18, 4), nullable=False),
            sa.Column("new_stock", sa.Numeric(18, 4), nullable=False),
            sa.Column("quantity", sa.Numeric(18, 4), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_stock_adjustments_id", "stock_adjustments", ["id"])
        op.create_index("ix_stock_adjustments_item", "stock_adjustments", ["item_id", "created_at"])

    if not _table_exists("reject_master"):
        op.create_table(
            "reject_master",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("sku", sa.String(length=100), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("base_unit", sa.String(length=50), nullable=False),
            sa.Column("unit2", sa.String(length=50), nullable=True),
            sa.Column("ratio2", sa.Numeric(18, 4), nullable=True),
            sa.Column("unit3", sa.String(length=50), nullable=True),
            sa.Column("ratio3", sa.Numeric(18, 4), nullable=True),
            sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_reject_master_sku", "reject_master", ["sku"])

    if not _table_exists("reject_logs"):
        op.create_table(
            "reject_logs",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("items", sa.JSON(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_reject_logs_date", "reject_logs", ["date"])


def downgrade() -> None:
    for index_name, table_name in (
        ("ix_reject_logs_date", "reject_logs"),
        ("ix_reject_master_sku", "reject_master"),
        ("ix_stock_adjustments_item", "stock_adjustments"),
        ("ix_stock_adjustments_id", "stock_adjustments"),
        ("ix_transactions_type_date", "transactions"),
        ("ix_transactions_date", "transactions"),
        ("ix_transactions_transaction_id", "transactions"),
        ("ix_items_name", "items"),
        ("ix_items_sku", "items"),
    ):
        op.drop_index(index_name, table_name=table_name)
    for table_name in (
        "reject_logs",
        "reject_master",
        "stock_adjustments",
        "transaction_sequences",
        "transactions",
        "items",
    ):
        op.drop_table(table_name)
