"""create cart and order tables

Revision ID: 5c1e0a7d2b94
Revises:
Create Date: 2026-10-12 09:41:03.118245

Tables may already exist when the app created them with
Base.metadata.create_all() on first start. Each table is created only if
missing.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '5c1e0a7d2b94'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("products"):
        op.create_table(
            "products",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("carts"):
        op.create_table(
            "carts",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("cart_lines"):
        op.create_table(
            "cart_lines",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("cart_id", sa.String(), sa.ForeignKey("carts.id"), nullable=False),
            sa.Column("line_key", sa.String(), nullable=False),
            sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=True),
            sa.Column("unit_price", sa.Numeric(10, 2), nullable=True),
            sa.Column("line_data", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("orders"):
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_number", sa.String(), nullable=False, unique=True),
            sa.Column("cart_id", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("total", sa.Numeric(10, 2), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("order_lines"):
        op.create_table(
            "order_lines",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
            sa.Column("product_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=True),
            sa.Column("unit_price", sa.Numeric(10, 2), nullable=True),
            sa.Column("line_total", sa.Numeric(10, 2), nullable=True),
        )

    if not _table_exists("order_line_meta"):
        op.create_table(
            "order_line_meta",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_line_id", sa.Integer(), sa.ForeignKey("order_lines.id"), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("label", sa.String(), nullable=False),
            sa.Column("value", sa.Text(), nullable=False),
        )


def downgrade() -> None:
    for table_name in ("order_line_meta", "order_lines", "orders", "cart_lines", "carts", "products"):
        if _table_exists(table_name):
            op.drop_table(table_name)
