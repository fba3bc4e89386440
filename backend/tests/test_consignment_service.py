# Overview: Pytest coverage for recording and listing consignment ledger rows.

from datetime import datetime

import pytest

from kickledger.models import ConsignmentSale
from kickledger.services import consignment_service
from kickledger.services.consignment_service import ConsignmentNotFoundError
from kickledger.validation import ValidationError


class TestRecordConsignmentSale:
    def test_rate_defaults_to_consignor(self, db_session, org_a, consignor_a):
        row = consignment_service.record_consignment_sale(
            org_id=org_a.id,
            data={"consignor_id": consignor_a.id, "sale_price_cents": 25000},
        )
        assert row.commission_rate_bps == 2000
        assert row.store_commission_cents == 5000
        assert row.consignor_payout_cents == 20000
        assert row.payout_status == "pending"

    def test_explicit_rate_and_variant_cost(self, db_session, org_a, consignor_a, make_variant):
        variant = make_variant(org_a.id, sale_price_cents=30000, cost_price_cents=21000, consignor=consignor_a)
        row = consignment_service.record_consignment_sale(
            org_id=org_a.id,
            data={
                "consignor_id": consignor_a.id,
                "variant_id": variant.id,
                "sale_price_cents": 30000,
                "commission_rate_bps": 1500,
            },
        )
        assert row.store_commission_cents == 4500
        assert row.consignor_payout_cents == 25500
        assert row.cost_price_cents == 21000

    def test_missing_consignor(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignment_service.record_consignment_sale(org_id=org_a.id, data={"sale_price_cents": 100})

    def test_consignor_from_other_org(self, db_session, org_b, consignor_a):
        with pytest.raises(ConsignmentNotFoundError):
            consignment_service.record_consignment_sale(
                org_id=org_b.id, data={"consignor_id": consignor_a.id, "sale_price_cents": 100}
            )

    @pytest.mark.parametrize("price", [0, -5, 10.5, "ten"])
    def test_bad_sale_price(self, db_session, org_a, consignor_a, price):
        with pytest.raises(ValidationError):
            consignment_service.record_consignment_sale(
                org_id=org_a.id, data={"consignor_id": consignor_a.id, "sale_price_cents": price}
            )


class TestBulkRecord:
    def test_records_all_rows(self, db_session, org_a, consignor_a):
        rows = consignment_service.record_consignment_sales_bulk(
            org_id=org_a.id,
            rows=[
                {"consignor_id": consignor_a.id, "sale_price_cents": 10000,
                 "store_commission_cents": 2000, "consignor_payout_cents": 8000},
                {"consignor_id": consignor_a.id, "sale_price_cents": 5000,
                 "store_commission_cents": 0, "consignor_payout_cents": 5000, "commission_rate_bps": 0},
            ],
        )
        assert len(rows) == 2
        assert [r.commission_rate_bps for r in rows] == [2000, 0]
        assert db_session.query(ConsignmentSale).count() == 2

    def test_one_bad_row_rejects_the_batch(self, db_session, org_a, consignor_a):
        with pytest.raises(ValidationError):
            consignment_service.record_consignment_sales_bulk(
                org_id=org_a.id,
                rows=[
                    {"consignor_id": consignor_a.id, "sale_price_cents": 10000,
                     "store_commission_cents": 2000, "consignor_payout_cents": 8000},
                    {"consignor_id": consignor_a.id, "sale_price_cents": 10000,
                     "store_commission_cents": 2000, "consignor_payout_cents": 7000},
                ],
            )
        assert db_session.query(ConsignmentSale).count() == 0

    def test_empty_batch(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignment_service.record_consignment_sales_bulk(org_id=org_a.id, rows=[])


class TestListConsignmentSales:
    def test_aggregates_cover_full_filtered_set(self, db_session, org_a, consignor_a, make_pending_sales):
        make_pending_sales(consignor_a, [4000, 3000, 8000])

        page = consignment_service.list_consignment_sales(org_id=org_a.id, page=1, limit=2)

        assert len(page.rows) == 2
        assert page.total == 3
        assert page.total_pages == 2
        assert page.total_payout_cents == 15000
        assert page.total_amount_cents == 5000 + 3750 + 10000
        assert page.total_commission_cents == 1000 + 750 + 2000

    def test_newest_first(self, db_session, org_a, consignor_a, make_pending_sales):
        rows = make_pending_sales(consignor_a, [4000, 3000, 8000])
        page = consignment_service.list_consignment_sales(org_id=org_a.id)
        assert [r.id for r in page.rows] == [rows[2].id, rows[1].id, rows[0].id]

    def test_filters(self, db_session, org_a, consignor_a, make_pending_sales):
        rows = make_pending_sales(consignor_a, [4000, 3000, 8000])
        rows[0].payout_status = "paid"
        db_session.commit()

        pending = consignment_service.list_consignment_sales(org_id=org_a.id, payout_status="pending")
        assert pending.total == 2

        ranged = consignment_service.list_consignment_sales(
            org_id=org_a.id,
            date_from=datetime(2025, 1, 2),
            date_to=datetime(2025, 1, 2, 23, 59, 59),
        )
        assert [r.id for r in ranged.rows] == [rows[1].id]

    def test_bad_status_filter(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignment_service.list_consignment_sales(org_id=org_a.id, payout_status="refunded")

    def test_tenant_scoped(self, db_session, org_b, consignor_a, make_pending_sales):
        make_pending_sales(consignor_a, [4000])
        page = consignment_service.list_consignment_sales(org_id=org_b.id)
        assert page.total == 0
        assert page.total_amount_cents == 0
