# Overview: Service-layer operations for sale splits; pure store/consignor money split per sold item.

"""
Sale Split Calculator

WHY: Every sold consignor-owned variant must be divided into the store's
commission and the consignor's payout before it reaches the ledger.

PAYOUT METHODS:
- cost_price: consignor recovers cost only
- cost_plus_fixed: cost + fixed markup
- cost_plus_percentage: cost + round2(cost * markup%)
- percentage_split: store keeps round2(base * rate%), base is the sale
  price ("total" basis) or sale minus cost ("profit" basis)

INVARIANT: store_gets + consignor_gets == sale_price, exactly, in cents.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..money import percent_of, rate_bps_from_amounts
from ..models.inventory import OWNER_CONSIGNOR, OWNER_STORE

PAYOUT_COST_PRICE = "cost_price"
PAYOUT_COST_PLUS_FIXED = "cost_plus_fixed"
PAYOUT_COST_PLUS_PERCENTAGE = "cost_plus_percentage"
PAYOUT_PERCENTAGE_SPLIT = "percentage_split"

BASIS_TOTAL = "total"
BASIS_PROFIT = "profit"
VALID_COMMISSION_BASES = (BASIS_TOTAL, BASIS_PROFIT)

DEFAULT_COMMISSION_RATE_BPS = 2000


class SplitError(ValueError):
    """Raised for inputs the calculator cannot split."""


@dataclass(frozen=True)
class SaleSplit:
    sale_price_cents: int
    owner_type: str
    store_gets_cents: int
    consignor_gets_cents: int
    payout_method: str | None = None
    effective_rate_bps: int | None = None
    markup_amount_cents: int | None = None

    def to_dict(self) -> dict:
        return {
            "sale_price_cents": self.sale_price_cents,
            "owner_type": self.owner_type,
            "store_gets_cents": self.store_gets_cents,
            "consignor_gets_cents": self.consignor_gets_cents,
            "payout_method": self.payout_method,
            "effective_rate_bps": self.effective_rate_bps,
            "markup_amount_cents": self.markup_amount_cents,
        }


def compute_split(
    *,
    owner_type: str,
    sale_price_cents: int,
    cost_price_cents: int = 0,
    payout_method: str | None = None,
    commission_rate_bps: int | None = None,
    fixed_markup_cents: int | None = None,
    markup_percentage_bps: int | None = None,
    commission_basis: str = BASIS_TOTAL,
) -> SaleSplit:
    """
    Split one sold item between the store and its consignor.

    Store-owned items keep the whole price. Unknown payout methods fall back
    to percentage_split, and a missing commission rate falls back to
    the 20% default.
    """
    if sale_price_cents < 0:
        raise SplitError("sale_price_cents must be >= 0")
    if cost_price_cents is None:
        cost_price_cents = 0
    if cost_price_cents < 0:
        raise SplitError("cost_price_cents must be >= 0")
    if commission_basis not in VALID_COMMISSION_BASES:
        raise SplitError(f"commission_basis must be one of {', '.join(VALID_COMMISSION_BASES)}")

    if owner_type == OWNER_STORE:
        return SaleSplit(
            sale_price_cents=sale_price_cents,
            owner_type=OWNER_STORE,
            store_gets_cents=sale_price_cents,
            consignor_gets_cents=0,
        )
    if owner_type != OWNER_CONSIGNOR:
        raise SplitError(f"Unknown owner_type: {owner_type}")

    method = payout_method or PAYOUT_PERCENTAGE_SPLIT
    markup_amount = None
    effective_rate = None

    if method == PAYOUT_COST_PRICE:
        consignor_gets = cost_price_cents
    elif method == PAYOUT_COST_PLUS_FIXED:
        markup_amount = fixed_markup_cents or 0
        consignor_gets = cost_price_cents + markup_amount
    elif method == PAYOUT_COST_PLUS_PERCENTAGE:
        markup_amount = percent_of(cost_price_cents, markup_percentage_bps or 0)
        consignor_gets = cost_price_cents + markup_amount
    else:
        method = PAYOUT_PERCENTAGE_SPLIT
        effective_rate = DEFAULT_COMMISSION_RATE_BPS if commission_rate_bps is None else commission_rate_bps
        if commission_basis == BASIS_PROFIT:
            base = sale_price_cents - cost_price_cents
        else:
            base = sale_price_cents
        store_gets = percent_of(base, effective_rate)
        consignor_gets = sale_price_cents - store_gets

    # Clamp into [0, sale_price]; the store takes whatever is left.
    consignor_gets = max(0, min(consignor_gets, sale_price_cents))
    store_gets = sale_price_cents - consignor_gets

    return SaleSplit(
        sale_price_cents=sale_price_cents,
        owner_type=OWNER_CONSIGNOR,
        store_gets_cents=store_gets,
        consignor_gets_cents=consignor_gets,
        payout_method=method,
        effective_rate_bps=effective_rate,
        markup_amount_cents=markup_amount,
    )


def custom_split(*, sale_price_cents: int, store_gets_cents: int, consignor_gets_cents: int) -> SaleSplit:
    """
    Operator-entered split for one item. The two amounts must add up to the
    sale price; the effective rate is derived from the store's share.
    """
    if store_gets_cents < 0 or consignor_gets_cents < 0:
        raise SplitError("Custom split amounts must be >= 0")
    if store_gets_cents + consignor_gets_cents != sale_price_cents:
        raise SplitError("Custom store and consignor amounts must add up to the sale price")

    return SaleSplit(
        sale_price_cents=sale_price_cents,
        owner_type=OWNER_CONSIGNOR,
        store_gets_cents=store_gets_cents,
        consignor_gets_cents=consignor_gets_cents,
        payout_method="custom",
        effective_rate_bps=rate_bps_from_amounts(store_gets_cents, sale_price_cents),
    )
