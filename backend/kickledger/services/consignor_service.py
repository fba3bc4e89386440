# Overview: Service-layer operations for consignors; lifecycle, stats and the public portal read.

"""
Consignor Management Service

LIFECYCLE:
- active consignors can be edited and receive new consigned stock
- archive (soft delete) is refused while they still own consigned variants
- restore brings an archived consignor back as active
- permanent delete is only for archived consignors with no pending ledger
  rows; their variants revert to store ownership and their settled history
  is kept with the consignor reference cleared

PORTAL: consignors read their own stats with a portal password, stored as a
bcrypt hash.
"""

from __future__ import annotations

from dataclasses import dataclass

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Consignor, ConsignmentSale, Organization, PayoutTransaction, Variant
from ..models.consignment import PAYOUT_STATUS_PENDING, PAYOUT_STATUS_PAID
from ..models.inventory import OWNER_CONSIGNOR, OWNER_STORE, VARIANT_STATUS_AVAILABLE
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_consignor,
    validate_payload,
)

CONSIGNOR_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "email",
        "phone",
        "notes",
        "commission_rate_bps",
        "payment_method",
        "payout_method",
        "fixed_markup_cents",
        "markup_percentage_bps",
        "status",
    },
    required_on_create={"name"},
)

VALID_STATUSES = ("active", "inactive")


class ConsignorError(Exception):
    """Raised for consignor lifecycle errors."""
    pass


class ConsignorNotFoundError(ConsignorError):
    pass


class PortalAccessError(ConsignorError):
    """Portal disabled (403) or wrong password (401)."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ConsignorStats:
    consignor: Consignor
    total_sales_amount_cents: int = 0
    total_payout_cents: int = 0
    pending_payout_cents: int = 0
    paid_payout_cents: int = 0
    total_variants: int = 0
    available_variants: int = 0
    sold_variants: int = 0

    def to_dict(self) -> dict:
        data = self.consignor.to_dict()
        data.update({
            "total_sales_amount_cents": self.total_sales_amount_cents,
            "total_payout_cents": self.total_payout_cents,
            "pending_payout_cents": self.pending_payout_cents,
            "paid_payout_cents": self.paid_payout_cents,
            "total_variants": self.total_variants,
            "available_variants": self.available_variants,
            "sold_variants": self.sold_variants,
        })
        return data


# =============================================================================
# CRUD
# =============================================================================

def get_consignor(org_id: int, consignor_id: int, *, include_archived: bool = False) -> Consignor:
    query = db.session.query(Consignor).filter_by(id=consignor_id, org_id=org_id)
    if not include_archived:
        query = query.filter_by(is_archived=False)
    consignor = query.first()
    if not consignor:
        raise ConsignorNotFoundError("Consignor not found")
    return consignor


def create_consignor(org_id: int, payload: dict) -> Consignor:
    payload = dict(payload or {})
    portal_password = payload.pop("portal_password", None)

    patch = validate_payload(model=Consignor, payload=payload, policy=CONSIGNOR_POLICY, partial=False)
    if patch.get("commission_rate_bps") is None:
        patch["commission_rate_bps"] = current_app.config.get("DEFAULT_COMMISSION_RATE_BPS", 2000)
    enforce_rules_consignor(patch)
    _check_status(patch)

    consignor = Consignor(org_id=org_id, **patch)
    consignor.status = patch.get("status") or "active"
    if portal_password:
        consignor.portal_password_hash = hash_portal_password(portal_password)

    db.session.add(consignor)
    db.session.commit()
    return consignor


def update_consignor(org_id: int, consignor_id: int, payload: dict) -> Consignor:
    consignor = get_consignor(org_id, consignor_id, include_archived=True)

    payload = dict(payload or {})
    clear_portal = "portal_password" in payload and not payload.get("portal_password")
    portal_password = payload.pop("portal_password", None)

    patch = validate_payload(model=Consignor, payload=payload, policy=CONSIGNOR_POLICY, partial=True)
    enforce_rules_consignor(patch, current=consignor)
    _check_status(patch)

    for key, value in patch.items():
        setattr(consignor, key, value)
    if portal_password:
        consignor.portal_password_hash = hash_portal_password(portal_password)
    elif clear_portal:
        consignor.portal_password_hash = None

    db.session.commit()
    return consignor


def list_consignors(
    *,
    org_id: int,
    archived: bool = False,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Consignor], int]:
    query = db.session.query(Consignor).filter(
        Consignor.org_id == org_id,
        Consignor.is_archived.is_(archived),
    )
    if status and status != "all":
        query = query.filter(Consignor.status == status)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Consignor.name.ilike(like),
            Consignor.email.ilike(like),
            Consignor.phone.ilike(like),
        ))

    total = query.count()
    rows = (
        query.order_by(Consignor.created_at.desc(), Consignor.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def archive_consignor(org_id: int, consignor_id: int) -> Consignor:
    consignor = get_consignor(org_id, consignor_id, include_archived=True)
    owned = (
        db.session.query(Variant.id)
        .filter_by(org_id=org_id, consignor_id=consignor.id, owner_type=OWNER_CONSIGNOR)
        .first()
    )
    if owned:
        raise ConsignorError("Cannot delete consignor with active variants. Archive the consignor instead.")

    consignor.is_archived = True
    consignor.status = "inactive"
    db.session.commit()
    return consignor


def restore_consignor(org_id: int, consignor_id: int) -> Consignor:
    consignor = (
        db.session.query(Consignor)
        .filter_by(id=consignor_id, org_id=org_id, is_archived=True)
        .first()
    )
    if not consignor:
        raise ConsignorNotFoundError("Consignor not found or not archived")
    consignor.is_archived = False
    consignor.status = "active"
    db.session.commit()
    return consignor


def delete_consignor_permanently(org_id: int, consignor_id: int) -> None:
    """
    Hard-delete an archived consignor.

    Refused while any of their ledger rows is unpaid. Variants they still
    own become store stock; paid ledger rows and payouts keep their amounts
    with the consignor reference cleared.
    """
    consignor = (
        db.session.query(Consignor)
        .filter_by(id=consignor_id, org_id=org_id, is_archived=True)
        .first()
    )
    if not consignor:
        raise ConsignorNotFoundError("Consignor not found or not archived")

    unpaid = (
        db.session.query(ConsignmentSale.id)
        .filter(
            ConsignmentSale.consignor_id == consignor.id,
            ConsignmentSale.payout_status != PAYOUT_STATUS_PAID,
        )
        .first()
    )
    if unpaid:
        raise ConsignorError("Consignor has unpaid consignment sales; settle them before deleting")

    for variant in db.session.query(Variant).filter_by(consignor_id=consignor.id).all():
        variant.owner_type = OWNER_STORE
        variant.consignor_id = None

    db.session.query(ConsignmentSale).filter_by(consignor_id=consignor.id).update(
        {"consignor_id": None}, synchronize_session=False
    )
    db.session.query(PayoutTransaction).filter_by(consignor_id=consignor.id).update(
        {"consignor_id": None}, synchronize_session=False
    )
    db.session.delete(consignor)
    db.session.commit()


def list_items(org_id: int, consignor_id: int) -> dict:
    """Variants a consignor currently owns, newest first, with counts."""
    consignor = get_consignor(org_id, consignor_id, include_archived=True)
    items = (
        db.session.query(Variant)
        .filter_by(org_id=org_id, consignor_id=consignor.id, owner_type=OWNER_CONSIGNOR)
        .order_by(Variant.created_at.desc(), Variant.id.desc())
        .all()
    )
    available = [v for v in items if v.status == VARIANT_STATUS_AVAILABLE]
    return {
        "consignor": {"id": consignor.id, "name": consignor.name},
        "items": [v.to_dict() for v in items],
        "summary": {
            "total_items": len(items),
            "available_items": len(available),
            "total_value_cents": sum(v.sale_price_cents or 0 for v in items),
            "available_value_cents": sum(v.sale_price_cents or 0 for v in available),
        },
    }


# =============================================================================
# STATS
# =============================================================================

def consignor_stats(org_id: int, consignors: list[Consignor]) -> list[ConsignorStats]:
    """Ledger and inventory totals for each consignor, in two grouped queries."""
    if not consignors:
        return []
    ids = [c.id for c in consignors]
    stats = {c.id: ConsignorStats(consignor=c) for c in consignors}

    ledger_rows = (
        db.session.query(
            ConsignmentSale.consignor_id,
            ConsignmentSale.payout_status,
            db.func.count(ConsignmentSale.id),
            db.func.coalesce(db.func.sum(ConsignmentSale.sale_price_cents), 0),
            db.func.coalesce(db.func.sum(ConsignmentSale.consignor_payout_cents), 0),
        )
        .filter(ConsignmentSale.org_id == org_id, ConsignmentSale.consignor_id.in_(ids))
        .group_by(ConsignmentSale.consignor_id, ConsignmentSale.payout_status)
        .all()
    )
    for consignor_id, payout_status, count, sales_amount, payout_amount in ledger_rows:
        s = stats[consignor_id]
        s.sold_variants += int(count)
        s.total_sales_amount_cents += int(sales_amount)
        s.total_payout_cents += int(payout_amount)
        if payout_status == PAYOUT_STATUS_PENDING:
            s.pending_payout_cents += int(payout_amount)
        elif payout_status == PAYOUT_STATUS_PAID:
            s.paid_payout_cents += int(payout_amount)

    variant_rows = (
        db.session.query(Variant.consignor_id, Variant.status, db.func.count(Variant.id))
        .filter(
            Variant.org_id == org_id,
            Variant.consignor_id.in_(ids),
            Variant.owner_type == OWNER_CONSIGNOR,
        )
        .group_by(Variant.consignor_id, Variant.status)
        .all()
    )
    for consignor_id, status, count in variant_rows:
        s = stats[consignor_id]
        s.total_variants += int(count)
        if status == VARIANT_STATUS_AVAILABLE:
            s.available_variants += int(count)

    return [stats[c.id] for c in consignors]


def stats_summary(org_id: int, *, archived: bool = False) -> dict:
    consignors = (
        db.session.query(Consignor)
        .filter(Consignor.org_id == org_id, Consignor.is_archived.is_(archived))
        .order_by(Consignor.created_at.desc(), Consignor.id.desc())
        .all()
    )
    stats = consignor_stats(org_id, consignors)
    return {
        "consignors": [s.to_dict() for s in stats],
        "summary": {
            "total_consignors": len(stats),
            "active_consignors": sum(1 for s in stats if s.consignor.status == "active"),
            "total_sales_amount_cents": sum(s.total_sales_amount_cents for s in stats),
            "total_pending_payouts_cents": sum(s.pending_payout_cents for s in stats),
            "total_paid_payouts_cents": sum(s.paid_payout_cents for s in stats),
            "total_variants": sum(s.total_variants for s in stats),
            "available_variants": sum(s.available_variants for s in stats),
            "sold_variants": sum(s.sold_variants for s in stats),
        },
    }


# =============================================================================
# PORTAL
# =============================================================================

def hash_portal_password(password: str) -> str:
    if len(password) < 6:
        raise ValidationError("portal_password must be at least 6 characters")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_portal_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def portal_view(consignor_id: int, password: str) -> dict:
    """
    Public read for a consignor: stats, sales, current inventory and payout
    history. Not tenant-scoped by session; the password is the credential.
    """
    from .payout_service import payout_history

    consignor = db.session.query(Consignor).filter_by(id=consignor_id).first()
    if not consignor:
        raise ConsignorNotFoundError("Consignor not found")
    if not consignor.portal_password_hash:
        raise PortalAccessError("Portal access not configured for this consignor", 403)
    if not verify_portal_password(password, consignor.portal_password_hash):
        raise PortalAccessError("Invalid password", 401)

    org = db.session.query(Organization).filter_by(id=consignor.org_id).first()

    sales = (
        db.session.query(ConsignmentSale)
        .filter_by(org_id=consignor.org_id, consignor_id=consignor.id)
        .order_by(ConsignmentSale.created_at.desc(), ConsignmentSale.id.desc())
        .all()
    )
    inventory = (
        db.session.query(Variant)
        .filter_by(org_id=consignor.org_id, consignor_id=consignor.id, owner_type=OWNER_CONSIGNOR)
        .order_by(Variant.created_at.desc(), Variant.id.desc())
        .all()
    )
    [stats] = consignor_stats(consignor.org_id, [consignor])
    available = sum(1 for v in inventory if v.status == VARIANT_STATUS_AVAILABLE)

    return {
        "consignor": {
            "id": consignor.id,
            "name": consignor.name,
            "email": consignor.email,
            "commission_rate_bps": consignor.commission_rate_bps,
            "payment_method": consignor.payment_method,
        },
        "currency": org.currency if org else "USD",
        "stats": {
            "total_sales_cents": stats.total_sales_amount_cents,
            "total_earnings_cents": stats.total_payout_cents,
            "pending_payout_cents": stats.pending_payout_cents,
            "paid_payout_cents": stats.paid_payout_cents,
            "available_items": available,
            "sold_items": len(sales),
            "total_items": len(inventory) + len(sales),
        },
        "sales": [s.to_dict() for s in sales],
        "current_inventory": [v.to_dict() for v in inventory],
        "payout_groups": [
            p.to_dict(include_items=True) for p in payout_history(consignor.org_id, consignor.id)
        ],
    }


def _check_status(patch: dict) -> None:
    if "status" in patch and patch["status"] not in VALID_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(VALID_STATUSES)}")
