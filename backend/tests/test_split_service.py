# Overview: Pytest coverage for the store/consignor sale split.

import pytest

from kickledger.money import cents_to_str, format_cents, percent_of, percent_to_bps, rate_bps_from_amounts, to_cents
from kickledger.services.split_service import (
    BASIS_PROFIT,
    SplitError,
    compute_split,
    custom_split,
)


class TestMoney:
    def test_percent_of_rounds_half_up(self):
        assert percent_of(1005, 1000) == 101  # 100.5 -> 101
        assert percent_of(1004, 1000) == 100
        assert percent_of(-1005, 1000) == -101

    def test_rate_from_amounts(self):
        assert rate_bps_from_amounts(3000, 10000) == 3000
        assert rate_bps_from_amounts(1, 3) == 3333
        assert rate_bps_from_amounts(5, 0) == 0

    def test_format_cents(self):
        assert format_cents(123456) == "$1,234.56"
        assert format_cents(-5) == "-$0.05"

    def test_to_cents_rounds_half_up(self):
        assert to_cents("19.99") == 1999
        assert to_cents(12.345) == 1235
        assert to_cents(7) == 700
        with pytest.raises(ValueError):
            to_cents("abc")

    def test_cents_to_str(self):
        assert cents_to_str(1234) == "12.34"
        assert cents_to_str(-5) == "-0.05"

    def test_percent_to_bps(self):
        assert percent_to_bps("12.5") == 1250
        assert percent_to_bps(20) == 2000
        with pytest.raises(ValueError):
            percent_to_bps("")


class TestComputeSplit:
    def test_store_item_keeps_everything(self):
        split = compute_split(owner_type="store", sale_price_cents=25000, cost_price_cents=18000)
        assert split.store_gets_cents == 25000
        assert split.consignor_gets_cents == 0
        assert split.payout_method is None

    def test_percentage_split_on_total(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=10000,
            payout_method="percentage_split",
            commission_rate_bps=2000,
        )
        assert split.store_gets_cents == 2000
        assert split.consignor_gets_cents == 8000
        assert split.effective_rate_bps == 2000

    def test_percentage_split_on_profit(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=10000,
            cost_price_cents=6000,
            commission_rate_bps=2500,
            commission_basis=BASIS_PROFIT,
        )
        assert split.store_gets_cents == 1000
        assert split.consignor_gets_cents == 9000

    def test_loss_on_profit_basis_clamps_to_sale_price(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=5000,
            cost_price_cents=8000,
            commission_rate_bps=2000,
            commission_basis=BASIS_PROFIT,
        )
        assert split.consignor_gets_cents == 5000
        assert split.store_gets_cents == 0

    def test_missing_rate_defaults_to_twenty_percent(self):
        split = compute_split(owner_type="consignor", sale_price_cents=10000)
        assert split.payout_method == "percentage_split"
        assert split.store_gets_cents == 2000

    def test_zero_rate_is_honored(self):
        split = compute_split(owner_type="consignor", sale_price_cents=10000, commission_rate_bps=0)
        assert split.store_gets_cents == 0
        assert split.consignor_gets_cents == 10000

    def test_unknown_method_falls_back_to_percentage_split(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=10000,
            payout_method="barter",
            commission_rate_bps=1000,
        )
        assert split.payout_method == "percentage_split"
        assert split.store_gets_cents == 1000

    def test_cost_price(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=20000,
            cost_price_cents=15000,
            payout_method="cost_price",
        )
        assert split.consignor_gets_cents == 15000
        assert split.store_gets_cents == 5000

    def test_cost_plus_fixed(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=20000,
            cost_price_cents=15000,
            payout_method="cost_plus_fixed",
            fixed_markup_cents=2500,
        )
        assert split.consignor_gets_cents == 17500
        assert split.store_gets_cents == 2500
        assert split.markup_amount_cents == 2500

    def test_cost_plus_percentage_rounds_markup(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=20000,
            cost_price_cents=10005,
            payout_method="cost_plus_percentage",
            markup_percentage_bps=1000,
        )
        # 10% of 100.05 = 10.005 -> 10.01
        assert split.markup_amount_cents == 1001
        assert split.consignor_gets_cents == 11006
        assert split.store_gets_cents == 8994

    def test_markup_above_sale_price_is_capped(self):
        split = compute_split(
            owner_type="consignor",
            sale_price_cents=10000,
            cost_price_cents=9500,
            payout_method="cost_plus_fixed",
            fixed_markup_cents=2000,
        )
        assert split.consignor_gets_cents == 10000
        assert split.store_gets_cents == 0

    @pytest.mark.parametrize("price,rate", [(1, 3333), (999, 1250), (123457, 1999), (10, 5000)])
    def test_parts_always_sum_to_sale_price(self, price, rate):
        split = compute_split(owner_type="consignor", sale_price_cents=price, commission_rate_bps=rate)
        assert split.store_gets_cents + split.consignor_gets_cents == price
        assert split.store_gets_cents >= 0
        assert split.consignor_gets_cents >= 0

    def test_rejects_negative_price(self):
        with pytest.raises(SplitError):
            compute_split(owner_type="consignor", sale_price_cents=-1)

    def test_rejects_unknown_owner(self):
        with pytest.raises(SplitError):
            compute_split(owner_type="vendor", sale_price_cents=100)

    def test_rejects_unknown_basis(self):
        with pytest.raises(SplitError):
            compute_split(owner_type="consignor", sale_price_cents=100, commission_basis="gross")


class TestCustomSplit:
    def test_custom_amounts_and_effective_rate(self):
        split = custom_split(sale_price_cents=20000, store_gets_cents=3000, consignor_gets_cents=17000)
        assert split.payout_method == "custom"
        assert split.effective_rate_bps == 1500

    def test_custom_amounts_must_add_up(self):
        with pytest.raises(SplitError):
            custom_split(sale_price_cents=20000, store_gets_cents=3000, consignor_gets_cents=16000)

    def test_custom_amounts_cannot_be_negative(self):
        with pytest.raises(SplitError):
            custom_split(sale_price_cents=100, store_gets_cents=-10, consignor_gets_cents=110)
