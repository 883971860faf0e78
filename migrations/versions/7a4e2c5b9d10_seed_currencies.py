"""seed currencies

Revision ID: 7a4e2c5b9d10
Revises: 3c1f0a9d2b71
Create Date: 2026-10-12 09:21:03.518440

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

currencies_table = sa.table(
    "currencies",
    sa.column("code", sa.String(length=3)),
    sa.column("name", sa.String(length=120)),
)

CURRENCIES = [
    {"code": "USD", "name": "United States Dollar"},
    {"code": "EUR", "name": "Euro"},
    {"code": "GBP", "name": "British Pound Sterling"},
    {"code": "JPY", "name": "Japanese Yen"},
    {"code": "CHF", "name": "Swiss Franc"},
    {"code": "AUD", "name": "Australian Dollar"},
    {"code": "CAD", "name": "Canadian Dollar"},
    {"code": "CNY", "name": "Chinese Yuan"},
    {"code": "INR", "name": "Indian Rupee"},
    {"code": "BRL", "name": "Brazilian Real"},
]


# revision identifiers, used by Alembic.
revision: str = '7a4e2c5b9d10'
down_revision: Union[str, Sequence[str], None] = '3c1f0a9d2b71'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.bulk_insert(currencies_table, CURRENCIES)


def downgrade() -> None:
    """Downgrade schema."""
    codes = [item["code"] for item in CURRENCIES]
    delete_statement = currencies_table.delete().where(
        currencies_table.c.code.in_(codes)
    )
    op.execute(delete_statement)
