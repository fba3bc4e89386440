from __future__ import annotations

from ..extensions import db
from kickledger.time_utils import to_utc_z, to_iso_date

PAYOUT_STATUS_PENDING = "pending"
PAYOUT_STATUS_PAID = "paid"


class Consignor(db.Model):
    """
    A third party who owns stock the store sells on their behalf.

    PAYOUT METHODS (what the consignor receives per sale):
    - cost_price: the variant's cost price
    - cost_plus_fixed: cost price + fixed_markup_cents
    - cost_plus_percentage: cost price + markup_percentage_bps of cost
    - percentage_split: sale price minus commission_rate_bps store commission

    INVARIANT: a consignor with any pending ledger row can only be archived,
    never permanently deleted.
    """
    __tablename__ = "consignors"
    __table_args__ = (
        db.Index("ix_consignors_org_archived", "org_id", "is_archived"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Store keeps this share under percentage_split (basis points)
    commission_rate_bps = db.Column(db.Integer, nullable=False, default=2000)

    # How the consignor prefers to be paid (PayPal, Zelle, ...)
    payment_method = db.Column(db.String(64), nullable=True)

    payout_method = db.Column(db.String(32), nullable=False, default="percentage_split")
    fixed_markup_cents = db.Column(db.Integer, nullable=True)
    markup_percentage_bps = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, inactive
    is_archived = db.Column(db.Boolean, nullable=False, default=False)

    # Bcrypt hash; portal disabled while null
    portal_password_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "notes": self.notes,
            "commission_rate_bps": self.commission_rate_bps,
            "payment_method": self.payment_method,
            "payout_method": self.payout_method,
            "fixed_markup_cents": self.fixed_markup_cents,
            "markup_percentage_bps": self.markup_percentage_bps,
            "status": self.status,
            "is_archived": self.is_archived,
            "portal_enabled": self.portal_password_hash is not None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class ConsignmentSale(db.Model):
    """
    Ledger row: one sold consignor-owned variant.

    INVARIANT: store_commission_cents + consignor_payout_cents == sale_price_cents.

    LIFECYCLE: pending -> paid, one way, only through a payout. Never deleted.
    commission_rate_bps is the effective rate, which differs from the
    consignor's default when a custom split was applied at checkout.
    """
    __tablename__ = "consignment_sales"
    __table_args__ = (
        db.CheckConstraint(
            "store_commission_cents + consignor_payout_cents = sale_price_cents",
            name="ck_consignment_sales_split_complete",
        ),
        db.CheckConstraint("store_commission_cents >= 0", name="ck_consignment_sales_commission_nonneg"),
        db.CheckConstraint("consignor_payout_cents >= 0", name="ck_consignment_sales_payout_nonneg"),
        # FIFO settlement scans pending rows per consignor oldest-first
        db.Index("ix_consignment_sales_consignor_status_created", "consignor_id", "payout_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=True, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=True, index=True)

    sale_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    commission_rate_bps = db.Column(db.Integer, nullable=False)
    store_commission_cents = db.Column(db.Integer, nullable=False)
    consignor_payout_cents = db.Column(db.Integer, nullable=False)

    payout_status = db.Column(db.String(16), nullable=False, default=PAYOUT_STATUS_PENDING, index=True)
    payout_date = db.Column(db.Date, nullable=True)
    payout_method = db.Column(db.String(64), nullable=True)
    payout_reference = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    consignor = db.relationship("Consignor", backref=db.backref("consignment_sales", lazy=True))
    sale = db.relationship("Sale", backref=db.backref("consignment_sales", lazy=True))
    variant = db.relationship("Variant")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_id": self.consignor_id,
            "sale_id": self.sale_id,
            "variant_id": self.variant_id,
            "sale_price_cents": self.sale_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "commission_rate_bps": self.commission_rate_bps,
            "store_commission_cents": self.store_commission_cents,
            "consignor_payout_cents": self.consignor_payout_cents,
            "payout_status": self.payout_status,
            "payout_date": to_iso_date(self.payout_date),
            "payout_method": self.payout_method,
            "payout_reference": self.payout_reference,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class PayoutTransaction(db.Model):
    """
    Header for one payout action to a consignor.

    total_amount_cents is the amount the operator requested; the line items
    record what each settled ledger row absorbed. Created together with its
    items in one database transaction and never mutated afterwards.
    """
    __tablename__ = "payout_transactions"
    __table_args__ = (
        db.UniqueConstraint("org_id", "payout_number", name="uq_payout_transactions_org_number"),
        db.Index("ix_payout_transactions_consignor_date", "consignor_id", "payout_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=True, index=True)

    # Human-readable reference, e.g. "PO-001-00042"
    payout_number = db.Column(db.String(64), nullable=False)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(64), nullable=True)
    payout_date = db.Column(db.Date, nullable=False)
    reference_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    sales_included = db.Column(db.Integer, nullable=False, default=0)
    period_start = db.Column(db.DateTime(timezone=True), nullable=True)
    period_end = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    consignor = db.relationship("Consignor", backref=db.backref("payout_transactions", lazy=True))

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_id": self.consignor_id,
            "payout_number": self.payout_number,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "payout_date": to_iso_date(self.payout_date),
            "reference_number": self.reference_number,
            "notes": self.notes,
            "status": self.status,
            "sales_included": self.sales_included,
            "period_start": to_utc_z(self.period_start),
            "period_end": to_utc_z(self.period_end),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PayoutTransactionItem(db.Model):
    """Line item linking a payout to the ledger row it settled. Immutable."""
    __tablename__ = "payout_transaction_items"
    __table_args__ = (
        db.UniqueConstraint("consignment_sale_id", name="uq_payout_items_sale"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payout_transaction_id = db.Column(
        db.Integer, db.ForeignKey("payout_transactions.id"), nullable=False, index=True
    )
    consignment_sale_id = db.Column(db.Integer, db.ForeignKey("consignment_sales.id"), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    payout_transaction = db.relationship(
        "PayoutTransaction",
        backref=db.backref("items", lazy=True, order_by="PayoutTransactionItem.id"),
    )
    consignment_sale = db.relationship("ConsignmentSale")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payout_transaction_id": self.payout_transaction_id,
            "consignment_sale_id": self.consignment_sale_id,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }


class CustomPaymentMethod(db.Model):
    """Payment method names an operator typed that are not built in; per user."""
    __tablename__ = "custom_payment_methods"
    __table_args__ = (
        db.UniqueConstraint("user_id", "method_name", name="uq_custom_payment_methods_user_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    method_name = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "method_name": self.method_name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
