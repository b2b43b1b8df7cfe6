"""initial schema

Revision ID: 5f1c2a9e7b10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5f1c2a9e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RX_STATUS = ("pending", "approved", "rejected", "processing", "partially_filled", "filled")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.Enum("patient", "doctor", "admin", name="roleenum"), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("prescription_number", sa.String(32), nullable=False),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("doctor_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("source", sa.Enum("patient", "doctor", name="prescriptionsource"), nullable=False),
        sa.Column("status", sa.Enum(*RX_STATUS, name="prescriptionstatus"), nullable=False),
        sa.Column("file_url", sa.String(1024), nullable=True),
        sa.Column("file_public_id", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("pharmacist_name", sa.String(255), nullable=True),
        sa.Column("filled_at", sa.DateTime(), nullable=True),
        sa.Column("refill_count", sa.Integer(), nullable=False),
        sa.Column("refill_limit", sa.Integer(), nullable=True),
        sa.Column("is_refillable", sa.Boolean(), nullable=False),
        sa.Column("last_refilled_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_prescriptions_prescription_number", "prescriptions", ["prescription_number"])
    op.create_index("ix_prescriptions_patient_id", "prescriptions", ["patient_id"])
    op.create_index("ix_prescriptions_doctor_id", "prescriptions", ["doctor_id"])
    op.create_index("ix_prescriptions_status", "prescriptions", ["status"])

    op.create_table(
        "prescription_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("prescription_id", sa.String(36), sa.ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("medication_name", sa.String(255), nullable=False),
        sa.Column("dosage", sa.String(255), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity >= 0 AND quantity <= total_amount", name="ck_rx_item_quantity"),
    )
    op.create_index("ix_prescription_items_prescription_id", "prescription_items", ["prescription_id"])

    op.create_table(
        "prescription_fills",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("prescription_id", sa.String(36), sa.ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pharmacist_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("pharmacist_name", sa.String(255), nullable=False),
        sa.Column("proof_file_url", sa.String(1024), nullable=False),
        sa.Column("lines", sa.JSON(), nullable=False),
        sa.Column("resulting_status", sa.Enum(*RX_STATUS, name="prescriptionstatus"), nullable=False),
        sa.Column("filled_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_prescription_fills_prescription_id", "prescription_fills", ["prescription_id"])

    op.create_table(
        "refill_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("prescription_id", sa.String(36), sa.ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.Enum("pending", "approved", "rejected", "completed", name="refillstatus"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("refill_number", sa.Integer(), nullable=True),
        sa.Column("reviewed_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_refill_requests_prescription_id", "refill_requests", ["prescription_id"])
    op.create_index("ix_refill_requests_patient_id", "refill_requests", ["patient_id"])
    op.create_index("ix_refill_requests_status", "refill_requests", ["status"])

    op.create_table(
        "otc_drugs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("sub_category", sa.String(100), nullable=True),
        sa.Column("manufacturer", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("file_url", sa.String(1024), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_on_sale", sa.Boolean(), nullable=False),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("sale_discount_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("pharm_confirm", sa.Boolean(), nullable=False),
        sa.Column("quantity_on_hand", sa.Integer(), nullable=False),
        sa.Column("reorder_level", sa.Integer(), nullable=False),
        sa.Column("low_stock_alert", sa.Boolean(), nullable=False),
        sa.Column("status", sa.Enum("active", "discontinued", "out_of_stock", name="drugstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_otc_drugs_name", "otc_drugs", ["name"])
    op.create_index("ix_otc_drugs_category", "otc_drugs", ["category"])
    op.create_index("ix_otc_drugs_status", "otc_drugs", ["status"])

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("drug_id", sa.String(36), sa.ForeignKey("otc_drugs.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "transaction_type",
            sa.Enum("adjustment", "purchase", "sale", "expiration", "damage", name="inventorytransactiontype"),
            nullable=False,
        ),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("quantity_before", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inventory_transactions_drug_id", "inventory_transactions", ["drug_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("order_number", sa.String(32), nullable=False, unique=True),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "confirmed", "payment_pending", "payment_verified",
                "processing", "shipped", "delivered", "cancelled",
                name="orderstatus",
            ),
            nullable=False,
        ),
        sa.Column("subtotal_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("shipping_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("shipping_collect_on_delivery", sa.Boolean(), nullable=False),
        sa.Column("shipping_custom_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("shipping_paid_online", sa.Boolean(), nullable=False),
        sa.Column("payment_status", sa.Enum("pending", "paid", "failed", name="paymentstatus"), nullable=False),
        sa.Column("payment_method", sa.Enum("bank_transfer", "card", name="paymentmethod"), nullable=True),
        sa.Column("receipt_url", sa.String(1024), nullable=True),
        sa.Column("is_prescription_order", sa.Boolean(), nullable=False),
        sa.Column("prescription_id", sa.String(36), sa.ForeignKey("prescriptions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("shipping_street_line_1", sa.String(255), nullable=True),
        sa.Column("shipping_street_line_2", sa.String(255), nullable=True),
        sa.Column("shipping_city", sa.String(120), nullable=True),
        sa.Column("shipping_state", sa.String(120), nullable=True),
        sa.Column("shipping_postal_code", sa.String(32), nullable=True),
        sa.Column("shipping_country", sa.String(120), nullable=True),
        sa.Column("billing_street_line_1", sa.String(255), nullable=True),
        sa.Column("billing_street_line_2", sa.String(255), nullable=True),
        sa.Column("billing_city", sa.String(120), nullable=True),
        sa.Column("billing_state", sa.String(120), nullable=True),
        sa.Column("billing_postal_code", sa.String(32), nullable=True),
        sa.Column("billing_country", sa.String(120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])
    op.create_index("ix_orders_prescription_id", "orders", ["prescription_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("drug_id", sa.String(36), sa.ForeignKey("otc_drugs.id"), nullable=True),
        sa.Column("drug_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("pharm_confirm", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_drug_id", "order_items", ["drug_id"])

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("drug_id", sa.String(36), sa.ForeignKey("otc_drugs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "drug_id", name="uq_cart_user_drug"),
    )
    op.create_index("ix_cart_items_user_id", "cart_items", ["user_id"])

    op.create_table(
        "payment_config",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("bank_account_holder", sa.String(255), nullable=True),
        sa.Column("bank_name", sa.String(255), nullable=True),
        sa.Column("account_number", sa.String(64), nullable=True),
        sa.Column("routing_number", sa.String(64), nullable=True),
        sa.Column("iban", sa.String(64), nullable=True),
        sa.Column("swift_code", sa.String(32), nullable=True),
        sa.Column("additional_instructions", sa.Text(), nullable=True),
        sa.Column("tax_type", sa.Enum("none", "inclusive", name="taxtype"), nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("default_shipping_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "shipping_rates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("parish", sa.String(120), nullable=False),
        sa.Column("city_town", sa.String(120), nullable=True),
        sa.Column("rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_shipping_rates_parish", "shipping_rates", ["parish"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("action", sa.Enum("CREATE", "UPDATE", "DELETE", "APPROVE", "REJECT", name="auditaction"), nullable=False),
        sa.Column("resource_type", sa.String(64), nullable=False),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "audit_logs", "shipping_rates", "payment_config", "cart_items", "order_items", "orders",
        "inventory_transactions", "otc_drugs", "refill_requests", "prescription_fills",
        "prescription_items", "prescriptions", "users",
    ):
        op.drop_table(table)
