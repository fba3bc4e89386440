# Overview: Pytest coverage for checkout recording: splits, ledger rows and profit shares.

import pytest

from kickledger.models import Avatar, ConsignmentSale, Sale, SaleProfitDistribution, Variant
from kickledger.services import sales_service
from kickledger.services.profit_service import PercentageMismatchError, ProfitDistributionError
from kickledger.services.sales_service import SaleError
from kickledger.validation import ValidationError


def _checkout(org, user, items, **extra):
    payload = {"items": items}
    payload.update(extra)
    return sales_service.record_sale(org_id=org.id, user_id=user.id, payload=payload)


class TestRecordSale:
    def test_mixed_cart(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        store_pair = make_variant(org_a.id, sale_price_cents=25000, cost_price_cents=18000)
        consigned = make_variant(org_a.id, sale_price_cents=20000, cost_price_cents=12000, consignor=consignor_a)

        sale = _checkout(
            org_a, user_a,
            [{"variant_id": store_pair.id}, {"variant_id": consigned.id}],
            total_discount_cents=1000,
            customer_name="Walk-in",
        )

        # 7000 store margin + 4000 commission - 1000 discount
        assert sale.net_profit_cents == 10000
        assert sale.total_amount_cents == 44000
        assert sale.distribution_mode == "default"

        [row] = db_session.query(ConsignmentSale).filter_by(sale_id=sale.id).all()
        assert row.consignor_id == consignor_a.id
        assert row.variant_id == consigned.id
        assert row.store_commission_cents == 4000
        assert row.consignor_payout_cents == 16000
        assert row.commission_rate_bps == 2000
        assert row.payout_status == "pending"

        assert db_session.get(Variant, store_pair.id).status == "Sold"
        assert db_session.get(Variant, consigned.id).status == "Sold"

        [share] = db_session.query(SaleProfitDistribution).filter_by(sale_id=sale.id).all()
        assert share.avatar_id == main_avatar_a.id
        assert share.amount_cents == 10000

    def test_sold_price_override(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        consigned = make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        sale = _checkout(org_a, user_a, [{"variant_id": consigned.id, "sold_price_cents": 18000}])
        [item] = sale.items
        assert item.sold_price_cents == 18000
        assert item.store_gets_cents == 3600
        assert item.consignor_gets_cents == 14400

    def test_custom_amounts(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        consigned = make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        sale = _checkout(org_a, user_a, [{
            "variant_id": consigned.id,
            "custom_store_gets_cents": 3000,
            "custom_consignor_gets_cents": 17000,
        }])
        row = db_session.query(ConsignmentSale).filter_by(sale_id=sale.id).one()
        assert row.store_commission_cents == 3000
        assert row.commission_rate_bps == 1500
        assert sale.net_profit_cents == 3000

    def test_custom_amounts_need_both_sides(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        consigned = make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        with pytest.raises(ValidationError):
            _checkout(org_a, user_a, [{"variant_id": consigned.id, "custom_store_gets_cents": 3000}])

    def test_custom_commission_rate(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        consigned = make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        sale = _checkout(
            org_a, user_a, [{"variant_id": consigned.id}],
            custom_commission_rates={str(consignor_a.id): 1000},
        )
        row = db_session.query(ConsignmentSale).filter_by(sale_id=sale.id).one()
        assert row.store_commission_cents == 2000
        assert row.commission_rate_bps == 1000

    def test_profit_basis(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        consigned = make_variant(org_a.id, sale_price_cents=20000, cost_price_cents=15000, consignor=consignor_a)
        sale = _checkout(org_a, user_a, [{"variant_id": consigned.id}], commission_basis="profit")
        row = db_session.query(ConsignmentSale).filter_by(sale_id=sale.id).one()
        assert row.store_commission_cents == 1000
        assert row.consignor_payout_cents == 19000

    def test_manual_distribution(self, db_session, org_a, user_a, main_avatar_a, make_variant):
        partner = Avatar(org_id=org_a.id, name="Partner", avatar_type="Member")
        db_session.add(partner)
        db_session.commit()
        pair = make_variant(org_a.id, sale_price_cents=10001, cost_price_cents=0)

        sale = _checkout(
            org_a, user_a, [{"variant_id": pair.id}],
            distribution={
                "mode": "manual",
                "shares": [
                    {"avatar_id": main_avatar_a.id, "percentage_bps": 5000},
                    {"avatar_id": partner.id, "percentage_bps": 5000},
                ],
            },
        )
        amounts = [d.amount_cents for d in sale.profit_distributions]
        assert amounts == [5001, 5000]
        assert sum(amounts) == sale.net_profit_cents

    def test_manual_distribution_must_total_100(self, db_session, org_a, user_a, main_avatar_a, make_variant):
        pair = make_variant(org_a.id, sale_price_cents=10000)
        with pytest.raises(PercentageMismatchError):
            _checkout(
                org_a, user_a, [{"variant_id": pair.id}],
                distribution={"mode": "manual", "shares": [{"avatar_id": main_avatar_a.id, "percentage_bps": 9000}]},
            )
        assert db_session.get(Variant, pair.id).status == "Available"


class TestRecordSaleFailures:
    def test_unavailable_variant(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        pair = make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        _checkout(org_a, user_a, [{"variant_id": pair.id}])

        with pytest.raises(SaleError) as exc:
            _checkout(org_a, user_a, [{"variant_id": pair.id}])
        assert exc.value.details == {"variant_ids": [pair.id]}
        assert db_session.query(Sale).count() == 1
        assert db_session.query(ConsignmentSale).count() == 1

    def test_variant_from_other_org(self, db_session, org_a, org_b, user_b, make_variant):
        db_session.add(Avatar(org_id=org_b.id, name="Vault", avatar_type="Main"))
        db_session.commit()
        pair = make_variant(org_a.id, sale_price_cents=20000)
        with pytest.raises(SaleError):
            _checkout(org_b, user_b, [{"variant_id": pair.id}])

    def test_discount_above_gross_rolls_back(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        pair = make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        with pytest.raises(ValidationError):
            _checkout(org_a, user_a, [{"variant_id": pair.id}], total_discount_cents=20001)

        assert db_session.query(Sale).count() == 0
        assert db_session.query(ConsignmentSale).count() == 0
        assert db_session.get(Variant, pair.id).status == "Available"

    def test_duplicate_variant_in_cart(self, db_session, org_a, user_a, main_avatar_a, make_variant):
        pair = make_variant(org_a.id, sale_price_cents=20000)
        with pytest.raises(ValidationError):
            _checkout(org_a, user_a, [{"variant_id": pair.id}, {"variant_id": pair.id}])

    def test_empty_cart(self, db_session, org_a, user_a):
        with pytest.raises(ValidationError):
            _checkout(org_a, user_a, [])

    def test_no_main_avatar(self, db_session, org_a, user_a, make_variant):
        pair = make_variant(org_a.id, sale_price_cents=20000)
        with pytest.raises(ProfitDistributionError):
            _checkout(org_a, user_a, [{"variant_id": pair.id}])
        assert db_session.query(Sale).count() == 0

    def test_zero_price_consigned_pair_rolls_back(self, db_session, org_a, user_a, consignor_a, main_avatar_a, make_variant):
        pair = make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        with pytest.raises(ValidationError):
            _checkout(org_a, user_a, [{"variant_id": pair.id, "sold_price_cents": 0}])

        assert db_session.query(Sale).count() == 0
        assert db_session.query(ConsignmentSale).count() == 0
        assert db_session.get(Variant, pair.id).status == "Available"

    def test_zero_price_store_pair_allowed(self, db_session, org_a, user_a, main_avatar_a, make_variant):
        pair = make_variant(org_a.id, sale_price_cents=20000, cost_price_cents=0)
        sale = _checkout(org_a, user_a, [{"variant_id": pair.id, "sold_price_cents": 0}])
        assert sale.total_amount_cents == 0
        assert sale.net_profit_cents == 0
