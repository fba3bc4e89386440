# Overview: Service-layer operations for consignor payouts; allocates a payment across pending ledger rows.

"""
Payout Allocator

WHY: An operator pays a consignor some amount; that money must be matched
against the consignor's unpaid ledger rows so every row is either fully paid
by exactly one payout or still pending.

ALLOCATION (process_payout):
- pending rows are visited oldest first (created_at, then id)
- a row is paid only if the remaining amount covers its whole payout;
  the first row that cannot be covered stops the allocation
- the header records the requested amount; processed_amount is what the
  paid rows absorbed
- there is no partially paid state: pending -> paid is the only transition

TRANSACTIONS:
- header, row flips and line items commit together or not at all
- the consignor row is locked for the duration of the allocation
- each flip is a conditional UPDATE on payout_status = 'pending'; a row
  already flipped by another payout aborts the whole allocation
- a per-row database error rolls back only that row's savepoint, is logged
  and the loop moves on; if no row was paid the header is discarded
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Consignor, ConsignmentSale, PayoutTransaction, PayoutTransactionItem
from ..models.consignment import PAYOUT_STATUS_PENDING, PAYOUT_STATUS_PAID
from ..money import format_cents
from ..time_utils import utcnow
from ..validation import ValidationError, coerce_int
from . import payment_method_service
from .concurrency import ConcurrentModificationError, lock_for_update, run_with_retry
from .consignment_service import pending_sales_query
from .document_service import next_payout_number

PAYOUT_STATUS_COMPLETED = "completed"


class PayoutError(Exception):
    """Base for payout failures; status_code is the HTTP mapping."""
    status_code = 400


class InvalidAmountError(PayoutError):
    status_code = 400


class ConsignorNotFoundError(PayoutError):
    status_code = 404


class PayoutNotFoundError(PayoutError):
    status_code = 404


class NoPendingPayoutsError(PayoutError):
    status_code = 400


class AmountExceedsPendingError(PayoutError):
    status_code = 400


class NoSalesUpdatedError(PayoutError):
    status_code = 500


class ConcurrentPayoutError(PayoutError):
    status_code = 409


@dataclass
class PayoutResult:
    payout: PayoutTransaction
    processed_amount_cents: int
    updated_sale_ids: list[int]
    remaining_pending_cents: int
    skipped_sale_ids: list[int] = field(default_factory=list)

    @property
    def updated_sale_count(self) -> int:
        return len(self.updated_sale_ids)

    def to_dict(self) -> dict:
        return {
            "payout_transaction_id": self.payout.id,
            "payout_number": self.payout.payout_number,
            "processed_amount_cents": self.processed_amount_cents,
            "updated_sale_count": self.updated_sale_count,
            "updated_sale_ids": self.updated_sale_ids,
            "remaining_pending_cents": self.remaining_pending_cents,
            "skipped_sale_ids": self.skipped_sale_ids,
        }


# =============================================================================
# FIFO ALLOCATION
# =============================================================================

def process_payout(
    *,
    org_id: int,
    user_id: int,
    consignor_id: int,
    amount_cents,
    method: str | None,
    payout_date: date | None = None,
    notes: str | None = None,
) -> PayoutResult:
    """
    Pay `amount_cents` to a consignor against their oldest pending sales.

    Preconditions, first failure wins:
    1. amount is a positive integer (InvalidAmountError)
    2. consignor exists in this organization (ConsignorNotFoundError)
    3. consignor has pending sales (NoPendingPayoutsError)
    4. amount <= total pending payout (AmountExceedsPendingError)

    Raises NoSalesUpdatedError when the amount could not pay any sale in
    full; nothing is written in that case.
    """
    amount = _parse_amount(amount_cents)
    payout_date = payout_date or utcnow().date()
    method = _clean_method(method)

    def _op() -> PayoutResult:
        try:
            consignor = _lock_consignor(org_id, consignor_id)

            pending = pending_sales_query(org_id, consignor.id).all()
            if not pending:
                raise NoPendingPayoutsError("No pending payouts found for this consignor")

            total_pending = sum(sale.consignor_payout_cents for sale in pending)
            if amount > total_pending:
                raise AmountExceedsPendingError(
                    f"Payout amount ({format_cents(amount)}) exceeds pending total ({format_cents(total_pending)})"
                )

            payout = PayoutTransaction(
                org_id=org_id,
                consignor_id=consignor.id,
                payout_number=next_payout_number(org_id),
                total_amount_cents=amount,
                payment_method=method,
                payout_date=payout_date,
                notes=notes or None,
                status=PAYOUT_STATUS_COMPLETED,
                created_by_user_id=user_id,
                created_at=utcnow(),
            )
            db.session.add(payout)
            db.session.flush()

            remaining = amount
            updated: list[ConsignmentSale] = []
            skipped: list[int] = []

            for sale in pending:
                if remaining <= 0:
                    break
                due = sale.consignor_payout_cents
                if remaining < due:
                    break
                try:
                    _settle_sale(payout, sale, method=method, payout_date=payout_date, notes=notes)
                except SQLAlchemyError:
                    current_app.logger.warning(
                        "Payout %s: could not settle consignment sale %s", payout.payout_number, sale.id,
                        exc_info=True,
                    )
                    skipped.append(sale.id)
                    continue
                updated.append(sale)
                remaining -= due

            if not updated:
                current_app.logger.error(
                    "Payout %s for consignor %s settled no sales; discarding header",
                    payout.payout_number, consignor.id,
                )
                raise NoSalesUpdatedError("No sales were updated")

            payout.sales_included = len(updated)
            payout.period_start = updated[0].created_at
            payout.period_end = updated[-1].created_at

            payment_method_service.remember(user_id, method)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            "Payout %s: consignor %s paid %s across %d sale(s)",
            payout.payout_number, consignor_id, format_cents(amount - remaining), len(updated),
        )
        return PayoutResult(
            payout=payout,
            processed_amount_cents=amount - remaining,
            updated_sale_ids=[sale.id for sale in updated],
            remaining_pending_cents=max(remaining, 0),
            skipped_sale_ids=skipped,
        )

    try:
        return run_with_retry(_op)
    except ConcurrentModificationError as exc:
        raise ConcurrentPayoutError(str(exc))


# =============================================================================
# EXPLICIT SELECTION
# =============================================================================

def create_payout_for_sales(
    *,
    org_id: int,
    user_id: int,
    consignor_id: int,
    sale_ids,
    method: str | None,
    payout_date: date | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
) -> PayoutTransaction:
    """
    Pay a chosen set of pending sales in full.

    All-or-nothing: any missing, foreign or already-paid row rejects the
    whole payout. The header total is the sum of the selected payouts.
    """
    if not isinstance(sale_ids, list) or not sale_ids:
        raise ValidationError("sale_ids must be a non-empty list")
    ids = sorted({coerce_int(sid, "sale_ids") for sid in sale_ids})
    payout_date = payout_date or utcnow().date()
    method = _clean_method(method)

    def _op() -> PayoutTransaction:
        try:
            consignor = _lock_consignor(org_id, consignor_id)

            sales = (
                db.session.query(ConsignmentSale)
                .filter(
                    ConsignmentSale.org_id == org_id,
                    ConsignmentSale.consignor_id == consignor.id,
                    ConsignmentSale.id.in_(ids),
                )
                .order_by(ConsignmentSale.created_at.asc(), ConsignmentSale.id.asc())
                .all()
            )
            found = {sale.id for sale in sales}
            missing = [sid for sid in ids if sid not in found]
            if missing:
                raise PayoutNotFoundError(
                    f"Consignment sale(s) not found for this consignor: {', '.join(str(s) for s in missing)}"
                )
            already_paid = [sale.id for sale in sales if sale.payout_status != PAYOUT_STATUS_PENDING]
            if already_paid:
                raise ConcurrentPayoutError(
                    f"Consignment sale(s) already paid: {', '.join(str(s) for s in already_paid)}"
                )

            payout = PayoutTransaction(
                org_id=org_id,
                consignor_id=consignor.id,
                payout_number=next_payout_number(org_id),
                total_amount_cents=sum(sale.consignor_payout_cents for sale in sales),
                payment_method=method,
                payout_date=payout_date,
                reference_number=reference_number or None,
                notes=notes or None,
                status=PAYOUT_STATUS_COMPLETED,
                sales_included=len(sales),
                period_start=sales[0].created_at,
                period_end=sales[-1].created_at,
                created_by_user_id=user_id,
                created_at=utcnow(),
            )
            db.session.add(payout)
            db.session.flush()

            for sale in sales:
                _settle_sale(payout, sale, method=method, payout_date=payout_date, notes=notes)

            payment_method_service.remember(user_id, method)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return payout

    try:
        return run_with_retry(_op)
    except ConcurrentModificationError as exc:
        raise ConcurrentPayoutError(str(exc))


# =============================================================================
# QUERIES
# =============================================================================

def get_payout(org_id: int, payout_id: int) -> PayoutTransaction:
    payout = db.session.query(PayoutTransaction).filter_by(id=payout_id, org_id=org_id).first()
    if not payout:
        raise PayoutNotFoundError(f"Payout {payout_id} not found")
    return payout


def list_payouts(
    *,
    org_id: int,
    consignor_id: int | None = None,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[PayoutTransaction], int, int]:
    """
    Filtered payouts, newest first.

    Returns (rows, total_count, total_amount_cents); the amount sums the
    whole filtered set.
    """
    query = db.session.query(PayoutTransaction).filter(PayoutTransaction.org_id == org_id)
    if consignor_id is not None:
        query = query.filter(PayoutTransaction.consignor_id == consignor_id)
    if status and status != "all":
        query = query.filter(PayoutTransaction.status == status)
    if date_from is not None:
        query = query.filter(PayoutTransaction.payout_date >= date_from)
    if date_to is not None:
        query = query.filter(PayoutTransaction.payout_date <= date_to)

    count, total_amount = query.with_entities(
        db.func.count(PayoutTransaction.id),
        db.func.coalesce(db.func.sum(PayoutTransaction.total_amount_cents), 0),
    ).one()

    rows = (
        query.order_by(PayoutTransaction.created_at.desc(), PayoutTransaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, int(count), int(total_amount)


def payout_history(org_id: int, consignor_id: int) -> list[PayoutTransaction]:
    return (
        db.session.query(PayoutTransaction)
        .filter_by(org_id=org_id, consignor_id=consignor_id)
        .order_by(PayoutTransaction.payout_date.desc(), PayoutTransaction.id.desc())
        .all()
    )


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def _parse_amount(amount_cents) -> int:
    if amount_cents is None or isinstance(amount_cents, bool):
        raise InvalidAmountError("Invalid payout amount")
    try:
        amount = coerce_int(amount_cents, "amount_cents")
    except ValidationError:
        raise InvalidAmountError("Invalid payout amount")
    if amount <= 0:
        raise InvalidAmountError("Invalid payout amount")
    return amount


def _clean_method(method) -> str | None:
    if method is None:
        return None
    if not isinstance(method, str):
        raise ValidationError("payment_method must be a string")
    return method.strip() or None


def _lock_consignor(org_id: int, consignor_id: int) -> Consignor:
    consignor = lock_for_update(
        db.session.query(Consignor).filter_by(id=consignor_id, org_id=org_id)
    ).first()
    if not consignor:
        raise ConsignorNotFoundError("Consignor not found")
    return consignor


def _settle_sale(
    payout: PayoutTransaction,
    sale: ConsignmentSale,
    *,
    method: str | None,
    payout_date: date,
    notes: str | None,
) -> PayoutTransactionItem:
    """
    Flip one pending row to paid and record its line item, in a savepoint.

    Raises ConcurrentModificationError when the row is no longer pending.
    """
    nested = db.session.begin_nested()
    try:
        result = db.session.execute(
            update(ConsignmentSale)
            .where(
                ConsignmentSale.id == sale.id,
                ConsignmentSale.payout_status == PAYOUT_STATUS_PENDING,
            )
            .values(
                payout_status=PAYOUT_STATUS_PAID,
                payout_date=payout_date,
                payout_method=method,
                payout_reference=payout.payout_number,
                notes=notes or None,
                version_id=ConsignmentSale.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"Consignment sale {sale.id} was settled by another payout; re-read pending sales and retry"
            )

        item = PayoutTransactionItem(
            payout_transaction_id=payout.id,
            consignment_sale_id=sale.id,
            amount_cents=sale.consignor_payout_cents,
            created_at=utcnow(),
        )
        db.session.add(item)
        db.session.flush()
        nested.commit()
        return item
    except Exception:
        nested.rollback()
        raise
