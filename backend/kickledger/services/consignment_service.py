# Overview: Service-layer operations for consignment sales; writes and reads the consignor ledger.

"""
Consignment Sale Recorder

WHY: Each sold consignor-owned variant becomes one ledger row holding the
store/consignor split. Payouts later settle these rows oldest-first.

INVARIANTS:
- store_commission_cents + consignor_payout_cents == sale_price_cents
- new rows are always pending
- rows are never deleted; only the payout flow changes them
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from ..models import Consignor, ConsignmentSale, Sale, Variant
from ..models.consignment import PAYOUT_STATUS_PENDING, PAYOUT_STATUS_PAID
from ..models.inventory import OWNER_CONSIGNOR
from ..time_utils import utcnow
from ..validation import ValidationError, coerce_int, require_bps, require_cents
from .split_service import SaleSplit, compute_split, PAYOUT_PERCENTAGE_SPLIT

VALID_PAYOUT_STATUSES = (PAYOUT_STATUS_PENDING, PAYOUT_STATUS_PAID)


class ConsignmentError(Exception):
    """Raised for consignment ledger errors."""
    pass


class ConsignmentNotFoundError(ConsignmentError):
    pass


@dataclass
class LedgerPage:
    rows: list
    total: int
    page: int
    limit: int
    total_amount_cents: int
    total_payout_cents: int
    total_commission_cents: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


# =============================================================================
# RECORDING
# =============================================================================

def add_ledger_row(
    *,
    org_id: int,
    consignor_id: int,
    split: SaleSplit,
    sale_id: int | None = None,
    variant_id: int | None = None,
    cost_price_cents: int = 0,
    commission_rate_bps: int | None = None,
    created_at: datetime | None = None,
) -> ConsignmentSale:
    """
    Stage one pending ledger row from a computed split. Does not commit.

    created_at is stamped here rather than by the database so rows written in
    the same transaction keep their insertion order for FIFO settlement.
    """
    if split.store_gets_cents + split.consignor_gets_cents != split.sale_price_cents:
        raise ConsignmentError("Split does not add up to the sale price")

    rate = commission_rate_bps
    if rate is None:
        rate = split.effective_rate_bps if split.effective_rate_bps is not None else 0

    row = ConsignmentSale(
        org_id=org_id,
        consignor_id=consignor_id,
        sale_id=sale_id,
        variant_id=variant_id,
        sale_price_cents=split.sale_price_cents,
        cost_price_cents=cost_price_cents or 0,
        commission_rate_bps=rate,
        store_commission_cents=split.store_gets_cents,
        consignor_payout_cents=split.consignor_gets_cents,
        payout_status=PAYOUT_STATUS_PENDING,
        created_at=created_at or utcnow(),
    )
    db.session.add(row)
    return row


def record_consignment_sale(*, org_id: int, data: dict) -> ConsignmentSale:
    """
    Record one consignment sale from {sale_id, consignor_id, variant_id,
    sale_price_cents, commission_rate_bps}. The store commission is the
    commission rate applied to the full sale price; the rate defaults to the
    consignor's own.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    if data.get("consignor_id") is None:
        raise ValidationError("consignor_id is required")
    if data.get("sale_price_cents") is None:
        raise ValidationError("sale_price_cents is required")

    consignor = _get_consignor(org_id, coerce_int(data["consignor_id"], "consignor_id"))
    sale_price = require_cents(data["sale_price_cents"], "sale_price_cents", allow_zero=False)
    rate = data.get("commission_rate_bps")
    rate = consignor.commission_rate_bps if rate is None else require_bps(rate, "commission_rate_bps")

    sale_id = _optional_sale_id(org_id, data.get("sale_id"))
    variant = _optional_variant(org_id, data.get("variant_id"))

    split = compute_split(
        owner_type=OWNER_CONSIGNOR,
        sale_price_cents=sale_price,
        cost_price_cents=variant.cost_price_cents if variant else 0,
        payout_method=PAYOUT_PERCENTAGE_SPLIT,
        commission_rate_bps=rate,
    )
    row = add_ledger_row(
        org_id=org_id,
        consignor_id=consignor.id,
        split=split,
        sale_id=sale_id,
        variant_id=variant.id if variant else None,
        cost_price_cents=variant.cost_price_cents if variant else 0,
        commission_rate_bps=rate,
    )
    db.session.commit()
    return row


def record_consignment_sales_bulk(*, org_id: int, rows: list) -> list[ConsignmentSale]:
    """
    Record pre-split ledger rows in one transaction (all or nothing).

    Each row: {consignor_id, sale_price_cents, store_commission_cents,
    consignor_payout_cents, commission_rate_bps, sale_id?, variant_id?}.
    """
    if not isinstance(rows, list) or not rows:
        raise ValidationError("Sales array is required")

    created = []
    try:
        for index, data in enumerate(rows):
            if not isinstance(data, dict):
                raise ValidationError(f"sales[{index}] must be an object")
            for key in ("consignor_id", "sale_price_cents", "store_commission_cents", "consignor_payout_cents"):
                if data.get(key) is None:
                    raise ValidationError(f"sales[{index}].{key} is required")

            consignor = _get_consignor(org_id, coerce_int(data["consignor_id"], "consignor_id"))
            sale_price = require_cents(data["sale_price_cents"], "sale_price_cents", allow_zero=False)
            store_gets = require_cents(data["store_commission_cents"], "store_commission_cents")
            consignor_gets = require_cents(data["consignor_payout_cents"], "consignor_payout_cents")
            if store_gets + consignor_gets != sale_price:
                raise ValidationError(
                    f"sales[{index}]: store_commission_cents + consignor_payout_cents must equal sale_price_cents"
                )
            rate = data.get("commission_rate_bps")
            rate = consignor.commission_rate_bps if rate is None else require_bps(rate, "commission_rate_bps")
            variant = _optional_variant(org_id, data.get("variant_id"))

            split = SaleSplit(
                sale_price_cents=sale_price,
                owner_type=OWNER_CONSIGNOR,
                store_gets_cents=store_gets,
                consignor_gets_cents=consignor_gets,
                effective_rate_bps=rate,
            )
            created.append(add_ledger_row(
                org_id=org_id,
                consignor_id=consignor.id,
                split=split,
                sale_id=_optional_sale_id(org_id, data.get("sale_id")),
                variant_id=variant.id if variant else None,
                cost_price_cents=variant.cost_price_cents if variant else 0,
                commission_rate_bps=rate,
            ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return created


# =============================================================================
# QUERIES
# =============================================================================

def get_consignment_sale(org_id: int, consignment_sale_id: int) -> ConsignmentSale:
    row = db.session.query(ConsignmentSale).filter_by(id=consignment_sale_id, org_id=org_id).first()
    if not row:
        raise ConsignmentNotFoundError(f"Consignment sale {consignment_sale_id} not found")
    return row


def pending_sales_query(org_id: int, consignor_id: int):
    """Pending rows for one consignor, oldest debt first."""
    return (
        db.session.query(ConsignmentSale)
        .filter(
            ConsignmentSale.org_id == org_id,
            ConsignmentSale.consignor_id == consignor_id,
            ConsignmentSale.payout_status == PAYOUT_STATUS_PENDING,
        )
        .order_by(ConsignmentSale.created_at.asc(), ConsignmentSale.id.asc())
    )


def list_consignment_sales(
    *,
    org_id: int,
    consignor_id: int | None = None,
    payout_status: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = 1,
    limit: int = 20,
) -> LedgerPage:
    """
    Filtered, paginated ledger rows, newest first.

    Aggregates cover the whole filtered set, not only the returned page.
    """
    query = db.session.query(ConsignmentSale).filter(ConsignmentSale.org_id == org_id)

    if consignor_id is not None:
        query = query.filter(ConsignmentSale.consignor_id == consignor_id)
    if payout_status and payout_status != "all":
        if payout_status not in VALID_PAYOUT_STATUSES:
            raise ValidationError(f"payout_status must be one of all, {', '.join(VALID_PAYOUT_STATUSES)}")
        query = query.filter(ConsignmentSale.payout_status == payout_status)
    if date_from is not None:
        query = query.filter(ConsignmentSale.created_at >= date_from)
    if date_to is not None:
        query = query.filter(ConsignmentSale.created_at <= date_to)

    totals = query.with_entities(
        db.func.count(ConsignmentSale.id),
        db.func.coalesce(db.func.sum(ConsignmentSale.sale_price_cents), 0),
        db.func.coalesce(db.func.sum(ConsignmentSale.consignor_payout_cents), 0),
        db.func.coalesce(db.func.sum(ConsignmentSale.store_commission_cents), 0),
    ).one()

    rows = (
        query.order_by(ConsignmentSale.created_at.desc(), ConsignmentSale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return LedgerPage(
        rows=rows,
        total=int(totals[0]),
        page=page,
        limit=limit,
        total_amount_cents=int(totals[1]),
        total_payout_cents=int(totals[2]),
        total_commission_cents=int(totals[3]),
    )


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def _get_consignor(org_id: int, consignor_id: int) -> Consignor:
    consignor = db.session.query(Consignor).filter_by(id=consignor_id, org_id=org_id).first()
    if not consignor:
        raise ConsignmentNotFoundError(f"Consignor {consignor_id} not found")
    return consignor


def _optional_variant(org_id: int, variant_id) -> Variant | None:
    if variant_id is None:
        return None
    variant = db.session.query(Variant).filter_by(id=coerce_int(variant_id, "variant_id"), org_id=org_id).first()
    if not variant:
        raise ConsignmentNotFoundError(f"Variant {variant_id} not found")
    return variant


def _optional_sale_id(org_id: int, sale_id) -> int | None:
    if sale_id is None:
        return None
    sale_id = coerce_int(sale_id, "sale_id")
    if not db.session.query(Sale.id).filter_by(id=sale_id, org_id=org_id).first():
        raise ConsignmentNotFoundError(f"Sale {sale_id} not found")
    return sale_id
