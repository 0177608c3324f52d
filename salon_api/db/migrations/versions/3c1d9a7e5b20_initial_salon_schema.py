"""Initial salon schema.

- users
- customers, points_ledger
- products, customer_products, customer_product_ledger
- staff, staff_attendance, payroll_settings, payroll_records
- appointments
- transactions, expenses
- vouchers, voucher_uses
- inventory_transactions, inventory_alerts, product_batches
- settings, audit_logs

Every owned table carries owner_id -> users.id (ON DELETE CASCADE) and an index on it.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c1d9a7e5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(14, 2)
JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _owner() -> sa.Column:
    return sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("hashed_password", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "customers",
        _id(),
        _owner(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("features", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "products",
        _id(),
        _owner(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("price", MONEY, nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("stock_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("safety_stock", sa.Integer(), nullable=False, server_default="5"),
        *_timestamps(),
    )

    op.create_table(
        "staff",
        _id(),
        _owner(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("incentive_rate", sa.Float(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "appointments",
        _id(),
        _owner(),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("appointment_date", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="scheduled"),
        sa.Column("total_price", MONEY, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recurring_id", sa.Uuid(), nullable=True, index=True),
        *_timestamps(),
    )

    op.create_table(
        "transactions",
        _id(),
        _owner(),
        sa.Column("appointment_id", sa.Uuid(), sa.ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("type", sa.Text(), nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("payment_method", sa.Text(), nullable=True),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "expenses",
        _id(),
        _owner(),
        sa.Column("expense_date", sa.Date(), nullable=False, index=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "points_ledger",
        _id(),
        _owner(),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "customer_products",
        _id(),
        _owner(),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "customer_product_ledger",
        _id(),
        _owner(),
        sa.Column(
            "customer_product_id",
            sa.Uuid(),
            sa.ForeignKey("customer_products.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "vouchers",
        _id(),
        _owner(),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("remaining_amount", MONEY, nullable=False),
        sa.Column("expires_at", sa.Date(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "voucher_uses",
        _id(),
        _owner(),
        sa.Column("voucher_id", sa.Uuid(), sa.ForeignKey("vouchers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("transaction_id", sa.Uuid(), sa.ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "staff_attendance",
        _id(),
        _owner(),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "payroll_settings",
        _id(),
        _owner(),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
        sa.Column("base_salary", MONEY, nullable=False),
        sa.Column("hourly_rate", MONEY, nullable=False),
        sa.Column("national_pension_rate", sa.Float(), nullable=False),
        sa.Column("health_insurance_rate", sa.Float(), nullable=False),
        sa.Column("employment_insurance_rate", sa.Float(), nullable=False),
        sa.Column("income_tax_rate", sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("owner_id", "staff_id", name="uq_payroll_settings_owner_staff"),
    )

    op.create_table(
        "payroll_records",
        _id(),
        _owner(),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("month", sa.Text(), nullable=False),
        sa.Column("base_salary", MONEY, nullable=False),
        sa.Column("overtime_pay", MONEY, nullable=False),
        sa.Column("incentive_pay", MONEY, nullable=False),
        sa.Column("total_gross", MONEY, nullable=False),
        sa.Column("national_pension", MONEY, nullable=False),
        sa.Column("health_insurance", MONEY, nullable=False),
        sa.Column("employment_insurance", MONEY, nullable=False),
        sa.Column("income_tax", MONEY, nullable=False),
        sa.Column("total_deductions", MONEY, nullable=False),
        sa.Column("net_salary", MONEY, nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("owner_id", "staff_id", "month", name="uq_payroll_records_owner_staff_month"),
    )

    op.create_table(
        "inventory_transactions",
        _id(),
        _owner(),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("before_count", sa.Integer(), nullable=False),
        sa.Column("after_count", sa.Integer(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "inventory_alerts",
        _id(),
        _owner(),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("alert_type", sa.Text(), nullable=False),
        sa.Column("acknowledged", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "product_batches",
        _id(),
        _owner(),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("batch_number", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "settings",
        _id(),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("settings", JSON, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column("resource_type", sa.Text(), nullable=False, index=True),
        sa.Column("resource_id", sa.Text(), nullable=True),
        sa.Column("old_data", JSON, nullable=True),
        sa.Column("new_data", JSON, nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    for table in (
        "audit_logs",
        "settings",
        "product_batches",
        "inventory_alerts",
        "inventory_transactions",
        "payroll_records",
        "payroll_settings",
        "staff_attendance",
        "voucher_uses",
        "vouchers",
        "customer_product_ledger",
        "customer_products",
        "points_ledger",
        "expenses",
        "transactions",
        "appointments",
        "staff",
        "products",
        "customers",
        "users",
    ):
        op.drop_table(table)
