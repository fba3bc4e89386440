from __future__ import annotations

from ..extensions import db
from kickledger.time_utils import to_utc_z, to_iso_date

class Sale(db.Model):
    """
    A completed checkout.

    net_profit_cents is the store's profit: full margin on store-owned items
    plus the store commission on consigned items, less the cart discount.
    Its distribution across avatars is snapshotted in sale_profit_distributions.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_org_date", "org_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    sale_date = db.Column(db.Date, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    total_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    net_profit_cents = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)
    payment_type = db.Column(db.String(64), nullable=True)

    # default, template, manual
    distribution_mode = db.Column(db.String(16), nullable=False, default="default")
    # total, profit
    commission_basis = db.Column(db.String(16), nullable=False, default="total")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "sale_date": to_iso_date(self.sale_date),
            "total_amount_cents": self.total_amount_cents,
            "total_discount_cents": self.total_discount_cents,
            "net_profit_cents": self.net_profit_cents,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "payment_type": self.payment_type,
            "distribution_mode": self.distribution_mode,
            "commission_basis": self.commission_basis,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
            "profit_distribution": [d.to_dict() for d in self.profit_distributions],
        }


class SaleItem(db.Model):
    """One variant sold on a sale, with the split computed at checkout."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True)

    sold_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    owner_type = db.Column(db.String(16), nullable=False)
    store_gets_cents = db.Column(db.Integer, nullable=False)
    consignor_gets_cents = db.Column(db.Integer, nullable=False, default=0)

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.id"))
    variant = db.relationship("Variant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "variant_id": self.variant_id,
            "sold_price_cents": self.sold_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "owner_type": self.owner_type,
            "store_gets_cents": self.store_gets_cents,
            "consignor_gets_cents": self.consignor_gets_cents,
        }


class Avatar(db.Model):
    """
    Internal profit-sharing participant (team member or category).

    At most one avatar per organization has avatar_type "Main"; it receives
    100% of the profit when a sale uses the default distribution.
    """
    __tablename__ = "avatars"
    __table_args__ = (
        db.UniqueConstraint("org_id", "name", name="uq_avatars_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    avatar_type = db.Column(db.String(16), nullable=False, default="Member")  # Main, Member
    default_percentage_bps = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "avatar_type": self.avatar_type,
            "default_percentage_bps": self.default_percentage_bps,
            "created_at": to_utc_z(self.created_at),
        }


class ProfitDistributionTemplate(db.Model):
    """
    Named, reusable set of (avatar, percentage) pairs totalling 100%.

    Sales snapshot the shares at checkout; editing or deleting a template
    never rewrites recorded distributions.
    """
    __tablename__ = "profit_distribution_templates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "description": self.description,
            "distributions": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProfitTemplateItem(db.Model):
    __tablename__ = "profit_template_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(
        db.Integer, db.ForeignKey("profit_distribution_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    avatar_id = db.Column(db.Integer, db.ForeignKey("avatars.id"), nullable=False)
    percentage_bps = db.Column(db.Integer, nullable=False)

    template = db.relationship(
        "ProfitDistributionTemplate",
        backref=db.backref("items", lazy=True, order_by="ProfitTemplateItem.id", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "avatar_id": self.avatar_id,
            "percentage_bps": self.percentage_bps,
        }


class SaleProfitDistribution(db.Model):
    """Snapshot of one avatar's share of a sale's net profit."""
    __tablename__ = "sale_profit_distributions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    avatar_id = db.Column(db.Integer, db.ForeignKey("avatars.id"), nullable=True, index=True)
    percentage_bps = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale", backref=db.backref("profit_distributions", lazy=True, order_by="SaleProfitDistribution.id")
    )

    def to_dict(self) -> dict:
        return {
            "avatar_id": self.avatar_id,
            "percentage_bps": self.percentage_bps,
            "amount_cents": self.amount_cents,
        }
