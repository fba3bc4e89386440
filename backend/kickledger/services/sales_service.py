# Overview: Service-layer operations for checkout; records a sale, its splits, ledger rows and profit shares.

"""
Checkout Recording Service

WHY: A checkout touches four things that must agree: the sold variants, the
per-item store/consignor split, the consignor ledger and the store's profit
distribution. They are written in one transaction so a failure leaves none
of them behind.

NET PROFIT:
    sum(sold - cost) over store-owned items
  + sum(store_gets) over consignor-owned items
  - cart discount

The profit is then divided across avatars by the chosen distribution mode.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Consignor, Sale, SaleItem, SaleProfitDistribution, Variant
from ..models.inventory import OWNER_CONSIGNOR, OWNER_STORE, VARIANT_STATUS_AVAILABLE, VARIANT_STATUS_SOLD
from ..time_utils import parse_iso_date, utcnow
from ..validation import ValidationError, coerce_int, require_bps, require_cents
from .concurrency import lock_for_update, run_with_retry
from .consignment_service import add_ledger_row
from .profit_service import MODE_DEFAULT, distribute, parse_shares, resolve_shares
from .split_service import VALID_COMMISSION_BASES, compute_split, custom_split


class SaleError(Exception):
    """Raised for checkout errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def record_sale(*, org_id: int, user_id: int | None, payload: dict) -> Sale:
    """
    Record a checkout.

    payload:
        items: [{variant_id, sold_price_cents?, custom_store_gets_cents?,
                 custom_consignor_gets_cents?}]
        total_discount_cents, sale_date, customer_name, customer_phone,
        payment_type, commission_basis,
        custom_commission_rates: {consignor_id: bps}
        distribution: {mode, template_id?, shares?}
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items are required")

    discount = require_cents(payload.get("total_discount_cents") or 0, "total_discount_cents")
    sale_date = parse_iso_date(payload.get("sale_date")) if payload.get("sale_date") else utcnow().date()

    basis = payload.get("commission_basis") or current_app.config.get("DEFAULT_COMMISSION_BASIS", "total")
    if basis not in VALID_COMMISSION_BASES:
        raise ValidationError(f"commission_basis must be one of {', '.join(VALID_COMMISSION_BASES)}")

    custom_rates = _parse_custom_rates(payload.get("custom_commission_rates"))

    distribution = payload.get("distribution") or {}
    if not isinstance(distribution, dict):
        raise ValidationError("distribution must be an object")
    mode = distribution.get("mode") or MODE_DEFAULT
    template_id = distribution.get("template_id")
    if template_id is not None:
        template_id = coerce_int(template_id, "template_id")
    manual_shares = parse_shares(distribution.get("shares")) if distribution.get("shares") is not None else None

    variant_ids = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict) or raw.get("variant_id") is None:
            raise ValidationError(f"items[{index}].variant_id is required")
        variant_ids.append(coerce_int(raw["variant_id"], "variant_id"))
    if len(set(variant_ids)) != len(variant_ids):
        raise ValidationError("A variant can only be sold once per sale")

    def _op():
        shares = resolve_shares(org_id=org_id, mode=mode, template_id=template_id, manual_shares=manual_shares)

        variants = {
            v.id: v
            for v in lock_for_update(
                db.session.query(Variant).filter(Variant.org_id == org_id, Variant.id.in_(variant_ids))
            ).all()
        }
        missing = [vid for vid in variant_ids if vid not in variants]
        if missing:
            raise SaleError("Variant not found", details={"variant_ids": missing})
        unavailable = [vid for vid in variant_ids if variants[vid].status != VARIANT_STATUS_AVAILABLE]
        if unavailable:
            raise SaleError("Variant is not available for sale", details={"variant_ids": unavailable})

        consignors = _load_consignors(org_id, variants.values())

        sale = Sale(
            org_id=org_id,
            sale_date=sale_date,
            total_amount_cents=0,
            total_discount_cents=discount,
            net_profit_cents=0,
            customer_name=payload.get("customer_name"),
            customer_phone=payload.get("customer_phone"),
            payment_type=payload.get("payment_type"),
            distribution_mode=mode,
            commission_basis=basis,
            created_by_user_id=user_id,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        gross = 0
        store_profit = 0
        for raw, variant_id in zip(raw_items, variant_ids):
            variant = variants[variant_id]
            sold_price = raw.get("sold_price_cents")
            if sold_price is None:
                sold_price = variant.sale_price_cents
            if sold_price is None:
                raise SaleError("Variant has no sale price", details={"variant_id": variant_id})
            # consigned pairs always owe the consignor something
            sold_price = require_cents(
                sold_price, "sold_price_cents", allow_zero=variant.owner_type != OWNER_CONSIGNOR
            )
            cost = variant.cost_price_cents or 0

            split, rate = _split_item(raw, variant, sold_price, consignors, custom_rates, basis)

            if variant.owner_type == OWNER_STORE:
                store_profit += sold_price - cost
            else:
                store_profit += split.store_gets_cents
                add_ledger_row(
                    org_id=org_id,
                    consignor_id=variant.consignor_id,
                    split=split,
                    sale_id=sale.id,
                    variant_id=variant.id,
                    cost_price_cents=cost,
                    commission_rate_bps=rate,
                    created_at=utcnow(),
                )

            db.session.add(SaleItem(
                sale_id=sale.id,
                variant_id=variant.id,
                sold_price_cents=sold_price,
                cost_price_cents=cost,
                owner_type=variant.owner_type,
                store_gets_cents=split.store_gets_cents,
                consignor_gets_cents=split.consignor_gets_cents,
            ))
            variant.status = VARIANT_STATUS_SOLD
            gross += sold_price

        if discount > gross:
            raise ValidationError("total_discount_cents cannot exceed the items total")

        sale.total_amount_cents = gross - discount
        sale.net_profit_cents = store_profit - discount

        for share in distribute(sale.net_profit_cents, shares):
            db.session.add(SaleProfitDistribution(
                sale_id=sale.id,
                avatar_id=share.participant_id,
                percentage_bps=share.percentage_bps,
                amount_cents=share.amount_cents,
            ))

        db.session.commit()
        return sale

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def get_sale(org_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, org_id=org_id).first()
    if not sale:
        raise SaleError("Sale not found")
    return sale


def _split_item(raw, variant, sold_price, consignors, custom_rates, basis):
    if variant.owner_type != OWNER_CONSIGNOR:
        return compute_split(owner_type=OWNER_STORE, sale_price_cents=sold_price), None

    consignor = consignors[variant.consignor_id]
    store_amount = raw.get("custom_store_gets_cents")
    consignor_amount = raw.get("custom_consignor_gets_cents")
    if store_amount is not None or consignor_amount is not None:
        if store_amount is None or consignor_amount is None:
            raise ValidationError("custom_store_gets_cents and custom_consignor_gets_cents must be given together")
        split = custom_split(
            sale_price_cents=sold_price,
            store_gets_cents=require_cents(store_amount, "custom_store_gets_cents"),
            consignor_gets_cents=require_cents(consignor_amount, "custom_consignor_gets_cents"),
        )
        return split, split.effective_rate_bps

    rate = custom_rates.get(consignor.id, consignor.commission_rate_bps)
    split = compute_split(
        owner_type=OWNER_CONSIGNOR,
        sale_price_cents=sold_price,
        cost_price_cents=variant.cost_price_cents or 0,
        payout_method=consignor.payout_method,
        commission_rate_bps=rate,
        fixed_markup_cents=consignor.fixed_markup_cents,
        markup_percentage_bps=consignor.markup_percentage_bps,
        commission_basis=basis,
    )
    return split, split.effective_rate_bps if split.effective_rate_bps is not None else rate


def _load_consignors(org_id: int, variants) -> dict[int, Consignor]:
    ids = {v.consignor_id for v in variants if v.owner_type == OWNER_CONSIGNOR}
    if not ids:
        return {}
    rows = db.session.query(Consignor).filter(Consignor.org_id == org_id, Consignor.id.in_(ids)).all()
    return {c.id: c for c in rows}


def _parse_custom_rates(raw) -> dict[int, int]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("custom_commission_rates must be an object")
    return {
        coerce_int(key, "consignor_id"): require_bps(value, "commission_rate_bps")
        for key, value in raw.items()
    }
