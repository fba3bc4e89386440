# Overview: Pytest coverage for consignor lifecycle, stats and portal access.

import pytest

from kickledger.models import Consignor, ConsignmentSale, PayoutTransaction, Variant
from kickledger.services import consignor_service, payout_service
from kickledger.services.consignor_service import (
    ConsignorError,
    ConsignorNotFoundError,
    PortalAccessError,
)
from kickledger.validation import ValidationError


class TestCreateAndUpdate:
    def test_rate_defaults_from_config(self, db_session, org_a):
        consignor = consignor_service.create_consignor(org_a.id, {"name": "Sam Sneakers"})
        assert consignor.commission_rate_bps == 2000
        assert consignor.payout_method == "percentage_split"
        assert consignor.status == "active"
        assert consignor.portal_password_hash is None

    def test_name_required(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignor_service.create_consignor(org_a.id, {"email": "x@y.test"})

    def test_unknown_field_rejected(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignor_service.create_consignor(org_a.id, {"name": "Sam", "org_id": 99})

    def test_rate_out_of_range(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignor_service.create_consignor(org_a.id, {"name": "Sam", "commission_rate_bps": 10001})

    def test_cost_plus_fixed_needs_markup(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignor_service.create_consignor(org_a.id, {"name": "Sam", "payout_method": "cost_plus_fixed"})

    def test_portal_password_is_hashed(self, db_session, org_a):
        consignor = consignor_service.create_consignor(org_a.id, {"name": "Sam", "portal_password": "secret1"})
        assert consignor.portal_password_hash
        assert consignor.portal_password_hash != "secret1"
        assert consignor.to_dict()["portal_enabled"] is True

    def test_short_portal_password(self, db_session, org_a):
        with pytest.raises(ValidationError):
            consignor_service.create_consignor(org_a.id, {"name": "Sam", "portal_password": "abc"})

    def test_update_and_clear_portal(self, db_session, org_a, consignor_a):
        consignor_service.update_consignor(org_a.id, consignor_a.id, {"portal_password": "secret1", "phone": "555"})
        assert consignor_a.portal_password_hash is not None
        assert consignor_a.phone == "555"

        consignor_service.update_consignor(org_a.id, consignor_a.id, {"portal_password": ""})
        assert consignor_a.portal_password_hash is None

    def test_invalid_status(self, db_session, org_a, consignor_a):
        with pytest.raises(ValidationError):
            consignor_service.update_consignor(org_a.id, consignor_a.id, {"status": "banned"})

    def test_other_org_cannot_update(self, db_session, org_b, consignor_a):
        with pytest.raises(ConsignorNotFoundError):
            consignor_service.update_consignor(org_b.id, consignor_a.id, {"name": "Hijacked"})


class TestListing:
    def test_search_and_pagination(self, db_session, org_a):
        for name in ("Alice Kicks", "Bob Soles", "Alicia Laces"):
            consignor_service.create_consignor(org_a.id, {"name": name})

        rows, total = consignor_service.list_consignors(org_id=org_a.id, search="ali", limit=1)
        assert total == 2
        assert len(rows) == 1

    def test_archived_listed_separately(self, db_session, org_a, consignor_a):
        consignor_service.archive_consignor(org_a.id, consignor_a.id)
        active, _ = consignor_service.list_consignors(org_id=org_a.id)
        archived, _ = consignor_service.list_consignors(org_id=org_a.id, archived=True)
        assert active == []
        assert [c.id for c in archived] == [consignor_a.id]


class TestArchiveRestoreDelete:
    def test_archive_refused_while_owning_variants(self, db_session, org_a, consignor_a, make_variant):
        make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        with pytest.raises(ConsignorError):
            consignor_service.archive_consignor(org_a.id, consignor_a.id)
        assert consignor_a.is_archived is False

    def test_archive_and_restore(self, db_session, org_a, consignor_a):
        archived = consignor_service.archive_consignor(org_a.id, consignor_a.id)
        assert archived.is_archived is True
        assert archived.status == "inactive"

        with pytest.raises(ConsignorNotFoundError):
            consignor_service.get_consignor(org_a.id, consignor_a.id)

        restored = consignor_service.restore_consignor(org_a.id, consignor_a.id)
        assert restored.is_archived is False
        assert restored.status == "active"

    def test_restore_requires_archived(self, db_session, org_a, consignor_a):
        with pytest.raises(ConsignorNotFoundError):
            consignor_service.restore_consignor(org_a.id, consignor_a.id)

    def test_permanent_delete_requires_archived(self, db_session, org_a, consignor_a):
        with pytest.raises(ConsignorNotFoundError):
            consignor_service.delete_consignor_permanently(org_a.id, consignor_a.id)

    def test_permanent_delete_refused_with_pending_rows(self, db_session, org_a, consignor_a, make_pending_sales):
        make_pending_sales(consignor_a, [1000])
        consignor_service.archive_consignor(org_a.id, consignor_a.id)

        with pytest.raises(ConsignorError):
            consignor_service.delete_consignor_permanently(org_a.id, consignor_a.id)
        assert db_session.get(Consignor, consignor_a.id) is not None

    def test_permanent_delete_keeps_settled_history(
        self, db_session, org_a, user_a, consignor_a, make_pending_sales
    ):
        rows = make_pending_sales(consignor_a, [1000])
        result = payout_service.process_payout(
            org_id=org_a.id, user_id=user_a.id, consignor_id=consignor_a.id, amount_cents=1000, method="Cash"
        )
        consignor_id = consignor_a.id
        consignor_service.archive_consignor(org_a.id, consignor_id)

        # Stock handed over after archiving still reverts to the store.
        leftover = Variant(
            org_id=org_a.id, product_name="Dunk Low", owner_type="consignor",
            consignor_id=consignor_id, sale_price_cents=15000,
        )
        db_session.add(leftover)
        db_session.commit()

        consignor_service.delete_consignor_permanently(org_a.id, consignor_id)

        assert db_session.get(Consignor, consignor_id) is None
        row = db_session.get(ConsignmentSale, rows[0].id)
        assert row.consignor_id is None
        assert row.consignor_payout_cents == 1000
        assert db_session.get(PayoutTransaction, result.payout.id).consignor_id is None
        variant = db_session.get(Variant, leftover.id)
        assert variant.owner_type == "store"
        assert variant.consignor_id is None


class TestStats:
    def test_stats_split_pending_and_paid(
        self, db_session, org_a, user_a, consignor_a, make_pending_sales, make_variant
    ):
        make_pending_sales(consignor_a, [4000, 3000])
        payout_service.process_payout(
            org_id=org_a.id, user_id=user_a.id, consignor_id=consignor_a.id, amount_cents=4000, method="Cash"
        )
        make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        make_variant(org_a.id, sale_price_cents=9000)

        [stats] = consignor_service.consignor_stats(org_a.id, [consignor_a])

        assert stats.pending_payout_cents == 3000
        assert stats.paid_payout_cents == 4000
        assert stats.total_payout_cents == 7000
        assert stats.total_sales_amount_cents == 5000 + 3750
        assert stats.sold_variants == 2
        assert stats.total_variants == 1
        assert stats.available_variants == 1

    def test_summary(self, db_session, org_a, consignor_a, make_pending_sales):
        make_pending_sales(consignor_a, [4000])
        summary = consignor_service.stats_summary(org_a.id)["summary"]
        assert summary["total_consignors"] == 1
        assert summary["active_consignors"] == 1
        assert summary["total_pending_payouts_cents"] == 4000

    def test_items(self, db_session, org_a, consignor_a, make_variant):
        make_variant(org_a.id, sale_price_cents=20000, consignor=consignor_a)
        sold = make_variant(org_a.id, sale_price_cents=10000, consignor=consignor_a)
        sold.status = "Sold"
        db_session.commit()

        summary = consignor_service.list_items(org_a.id, consignor_a.id)["summary"]
        assert summary == {
            "total_items": 2,
            "available_items": 1,
            "total_value_cents": 30000,
            "available_value_cents": 20000,
        }


class TestPortal:
    def test_portal_disabled(self, db_session, consignor_a):
        with pytest.raises(PortalAccessError) as exc:
            consignor_service.portal_view(consignor_a.id, "whatever")
        assert exc.value.status_code == 403

    def test_wrong_password(self, db_session, org_a, consignor_a):
        consignor_service.update_consignor(org_a.id, consignor_a.id, {"portal_password": "secret1"})
        with pytest.raises(PortalAccessError) as exc:
            consignor_service.portal_view(consignor_a.id, "secret2")
        assert exc.value.status_code == 401

    def test_unknown_consignor(self, db_session):
        with pytest.raises(ConsignorNotFoundError):
            consignor_service.portal_view(424242, "secret1")

    def test_view(self, db_session, org_a, user_a, consignor_a, make_pending_sales):
        consignor_service.update_consignor(org_a.id, consignor_a.id, {"portal_password": "secret1"})
        make_pending_sales(consignor_a, [4000, 3000])
        payout_service.process_payout(
            org_id=org_a.id, user_id=user_a.id, consignor_id=consignor_a.id, amount_cents=4000, method="Cash"
        )

        view = consignor_service.portal_view(consignor_a.id, "secret1")

        assert view["consignor"]["name"] == "Jordan Collector"
        assert view["currency"] == "USD"
        assert view["stats"]["pending_payout_cents"] == 3000
        assert view["stats"]["paid_payout_cents"] == 4000
        assert view["stats"]["sold_items"] == 2
        assert len(view["sales"]) == 2
        [group] = view["payout_groups"]
        assert group["total_amount_cents"] == 4000
        assert len(group["items"]) == 1
