from __future__ import annotations

from ..extensions import db
from kickledger.time_utils import to_utc_z

OWNER_STORE = "store"
OWNER_CONSIGNOR = "consignor"

VARIANT_STATUS_AVAILABLE = "Available"
VARIANT_STATUS_SOLD = "Sold"


class Variant(db.Model):
    """
    One physical unit of stock (a single pair in a single size).

    OWNERSHIP:
    - store: the business bought it; the sale price is all store money
    - consignor: a third party owns it; consignor_id is set and the sale
      is settled through the consignment ledger

    Ownership may be reassigned while the variant is Available; the row is
    immutable once Sold.
    """
    __tablename__ = "variants"
    __table_args__ = (
        db.CheckConstraint(
            "(owner_type = 'consignor' AND consignor_id IS NOT NULL) OR "
            "(owner_type = 'store' AND consignor_id IS NULL)",
            name="ck_variants_owner_consignor",
        ),
        db.Index("ix_variants_org_status", "org_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(128), nullable=True)
    sku = db.Column(db.String(64), nullable=True, index=True)
    size = db.Column(db.String(32), nullable=True)
    location = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=VARIANT_STATUS_AVAILABLE, index=True)

    owner_type = db.Column(db.String(16), nullable=False, default=OWNER_STORE)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=True, index=True)

    # All amounts in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    consignor = db.relationship("Consignor", backref=db.backref("variants", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "product_name": self.product_name,
            "brand": self.brand,
            "sku": self.sku,
            "size": self.size,
            "location": self.location,
            "status": self.status,
            "owner_type": self.owner_type,
            "consignor_id": self.consignor_id,
            "cost_price_cents": self.cost_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "created_at": to_utc_z(self.created_at),
        }
