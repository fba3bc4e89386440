"""initial consignment schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the KickLedger schema:
- organizations, document_sequences: tenants and payout numbering
- users, session_tokens: staff authentication
- consignors, variants: who owns which pair
- sales, sale_items, sale_profit_distributions: checkouts and profit shares
- avatars, profit_distribution_templates, profit_template_items
- consignment_sales: the consignor ledger
- payout_transactions, payout_transaction_items: settlements
- custom_payment_methods
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, updated: bool = False):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade():
    # ============================================================================
    # Tenancy
    # ============================================================================
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_organizations_code", "organizations", ["code"], unique=True)
    op.create_index("ix_organizations_is_active", "organizations", ["is_active"])

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("document_type", sa.String(length=32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("org_id", "document_type", name="uq_doc_sequences_org_type"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_document_sequences_org_id", "document_sequences", ["org_id"])
    op.create_index("ix_document_sequences_document_type", "document_sequences", ["document_type"])

    # ============================================================================
    # Authentication
    # ============================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("org_id", "username", name="uq_users_org_username"),
        sa.UniqueConstraint("org_id", "email", name="uq_users_org_email"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_org_id", "users", ["org_id"])
    op.create_index("ix_users_username", "users", ["username"])

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("token_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_user_id", "session_tokens", ["user_id"])
    op.create_index("ix_session_tokens_org_id", "session_tokens", ["org_id"])
    op.create_index("ix_session_tokens_expires_at", "session_tokens", ["expires_at"])
    op.create_index("ix_session_tokens_is_revoked", "session_tokens", ["is_revoked"])
    op.create_index("ix_session_tokens_user_active", "session_tokens", ["user_id", "is_revoked"])

    # ============================================================================
    # Consignors and inventory
    # ============================================================================
    op.create_table(
        "consignors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("commission_rate_bps", sa.Integer(), nullable=False, server_default="2000"),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column("payout_method", sa.String(length=32), nullable=False, server_default="percentage_split"),
        sa.Column("fixed_markup_cents", sa.Integer(), nullable=True),
        sa.Column("markup_percentage_bps", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("portal_password_hash", sa.String(length=255), nullable=True),
        *_timestamps(updated=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_consignors_org_id", "consignors", ["org_id"])
    op.create_index("ix_consignors_status", "consignors", ["status"])
    op.create_index("ix_consignors_org_archived", "consignors", ["org_id", "is_archived"])

    op.create_table(
        "variants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("brand", sa.String(length=128), nullable=True),
        sa.Column("sku", sa.String(length=64), nullable=True),
        sa.Column("size", sa.String(length=32), nullable=True),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="Available"),
        sa.Column("owner_type", sa.String(length=16), nullable=False, server_default="store"),
        sa.Column("consignor_id", sa.Integer(), sa.ForeignKey("consignors.id"), nullable=True),
        sa.Column("cost_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sale_price_cents", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint(
            "(owner_type = 'consignor' AND consignor_id IS NOT NULL) OR "
            "(owner_type = 'store' AND consignor_id IS NULL)",
            name="ck_variants_owner_consignor",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_variants_org_id", "variants", ["org_id"])
    op.create_index("ix_variants_sku", "variants", ["sku"])
    op.create_index("ix_variants_status", "variants", ["status"])
    op.create_index("ix_variants_consignor_id", "variants", ["consignor_id"])
    op.create_index("ix_variants_org_status", "variants", ["org_id", "status"])

    # ============================================================================
    # Sales and profit distribution
    # ============================================================================
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("total_discount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("net_profit_cents", sa.Integer(), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=64), nullable=True),
        sa.Column("payment_type", sa.String(length=64), nullable=True),
        sa.Column("distribution_mode", sa.String(length=16), nullable=False, server_default="default"),
        sa.Column("commission_basis", sa.String(length=16), nullable=False, server_default="total"),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_org_id", "sales", ["org_id"])
    op.create_index("ix_sales_org_date", "sales", ["org_id", "sale_date"])

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("variant_id", sa.Integer(), sa.ForeignKey("variants.id"), nullable=False),
        sa.Column("sold_price_cents", sa.Integer(), nullable=False),
        sa.Column("cost_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("owner_type", sa.String(length=16), nullable=False),
        sa.Column("store_gets_cents", sa.Integer(), nullable=False),
        sa.Column("consignor_gets_cents", sa.Integer(), nullable=False, server_default="0"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])
    op.create_index("ix_sale_items_variant_id", "sale_items", ["variant_id"])

    op.create_table(
        "avatars",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("avatar_type", sa.String(length=16), nullable=False, server_default="Member"),
        sa.Column("default_percentage_bps", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("org_id", "name", name="uq_avatars_org_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_avatars_org_id", "avatars", ["org_id"])

    op.create_table(
        "profit_distribution_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        *_timestamps(updated=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_profit_distribution_templates_org_id", "profit_distribution_templates", ["org_id"])

    op.create_table(
        "profit_template_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("profit_distribution_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("avatar_id", sa.Integer(), sa.ForeignKey("avatars.id"), nullable=False),
        sa.Column("percentage_bps", sa.Integer(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_profit_template_items_template_id", "profit_template_items", ["template_id"])

    op.create_table(
        "sale_profit_distributions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("avatar_id", sa.Integer(), sa.ForeignKey("avatars.id"), nullable=True),
        sa.Column("percentage_bps", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_profit_distributions_sale_id", "sale_profit_distributions", ["sale_id"])
    op.create_index("ix_sale_profit_distributions_avatar_id", "sale_profit_distributions", ["avatar_id"])

    # ============================================================================
    # Consignment ledger and payouts
    # ============================================================================
    op.create_table(
        "consignment_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("consignor_id", sa.Integer(), sa.ForeignKey("consignors.id"), nullable=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=True),
        sa.Column("variant_id", sa.Integer(), sa.ForeignKey("variants.id"), nullable=True),
        sa.Column("sale_price_cents", sa.Integer(), nullable=False),
        sa.Column("cost_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("commission_rate_bps", sa.Integer(), nullable=False),
        sa.Column("store_commission_cents", sa.Integer(), nullable=False),
        sa.Column("consignor_payout_cents", sa.Integer(), nullable=False),
        sa.Column("payout_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("payout_date", sa.Date(), nullable=True),
        sa.Column("payout_method", sa.String(length=64), nullable=True),
        sa.Column("payout_reference", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint(
            "store_commission_cents + consignor_payout_cents = sale_price_cents",
            name="ck_consignment_sales_split_complete",
        ),
        sa.CheckConstraint("store_commission_cents >= 0", name="ck_consignment_sales_commission_nonneg"),
        sa.CheckConstraint("consignor_payout_cents >= 0", name="ck_consignment_sales_payout_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_consignment_sales_org_id", "consignment_sales", ["org_id"])
    op.create_index("ix_consignment_sales_consignor_id", "consignment_sales", ["consignor_id"])
    op.create_index("ix_consignment_sales_sale_id", "consignment_sales", ["sale_id"])
    op.create_index("ix_consignment_sales_variant_id", "consignment_sales", ["variant_id"])
    op.create_index("ix_consignment_sales_payout_status", "consignment_sales", ["payout_status"])
    op.create_index("ix_consignment_sales_created_at", "consignment_sales", ["created_at"])
    op.create_index(
        "ix_consignment_sales_consignor_status_created",
        "consignment_sales",
        ["consignor_id", "payout_status", "created_at"],
    )

    op.create_table(
        "payout_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("consignor_id", sa.Integer(), sa.ForeignKey("consignors.id"), nullable=True),
        sa.Column("payout_number", sa.String(length=64), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column("payout_date", sa.Date(), nullable=False),
        sa.Column("reference_number", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("sales_included", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("org_id", "payout_number", name="uq_payout_transactions_org_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_payout_transactions_org_id", "payout_transactions", ["org_id"])
    op.create_index("ix_payout_transactions_consignor_id", "payout_transactions", ["consignor_id"])
    op.create_index("ix_payout_transactions_status", "payout_transactions", ["status"])
    op.create_index("ix_payout_transactions_created_at", "payout_transactions", ["created_at"])
    op.create_index(
        "ix_payout_transactions_consignor_date", "payout_transactions", ["consignor_id", "payout_date"]
    )

    op.create_table(
        "payout_transaction_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "payout_transaction_id", sa.Integer(), sa.ForeignKey("payout_transactions.id"), nullable=False
        ),
        sa.Column("consignment_sale_id", sa.Integer(), sa.ForeignKey("consignment_sales.id"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("consignment_sale_id", name="uq_payout_items_sale"),
        sqlite_autoincrement=True,
    )
    op.create_index(
        "ix_payout_transaction_items_payout_transaction_id",
        "payout_transaction_items",
        ["payout_transaction_id"],
    )

    op.create_table(
        "custom_payment_methods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("method_name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "method_name", name="uq_custom_payment_methods_user_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_custom_payment_methods_user_id", "custom_payment_methods", ["user_id"])


def downgrade():
    op.drop_table("custom_payment_methods")
    op.drop_table("payout_transaction_items")
    op.drop_table("payout_transactions")
    op.drop_table("consignment_sales")
    op.drop_table("sale_profit_distributions")
    op.drop_table("profit_template_items")
    op.drop_table("profit_distribution_templates")
    op.drop_table("avatars")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("variants")
    op.drop_table("consignors")
    op.drop_table("session_tokens")
    op.drop_table("users")
    op.drop_table("document_sequences")
    op.drop_table("organizations")
