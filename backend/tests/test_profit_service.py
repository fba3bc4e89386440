# Overview: Pytest coverage for profit distribution across avatars.

import pytest

from kickledger.models import Avatar, ProfitTemplateItem
from kickledger.services import profit_service
from kickledger.services.profit_service import (
    PercentageMismatchError,
    ProfitDistributionError,
    Share,
    TemplateNotFoundError,
    distribute,
    validate_shares,
)
from kickledger.validation import ValidationError


class TestDistribute:
    def test_last_share_absorbs_residual(self):
        result = distribute(10000, [Share(1, 3333), Share(2, 3333), Share(3, 3334)])
        assert [r.amount_cents for r in result] == [3333, 3333, 3334]
        assert sum(r.amount_cents for r in result) == 10000

    def test_rounding_residual_on_odd_cents(self):
        result = distribute(101, [Share(1, 5000), Share(2, 5000)])
        # 50.5 rounds half-up to 51; the last share takes the rest
        assert [r.amount_cents for r in result] == [51, 50]

    def test_negative_profit_is_distributed(self):
        result = distribute(-1000, [Share(1, 7000), Share(2, 3000)])
        assert [r.amount_cents for r in result] == [-700, -300]

    def test_zero_total_percentage_gives_zeros(self):
        result = distribute(5000, [Share(1, 0), Share(2, 0)])
        assert [r.amount_cents for r in result] == [0, 0]

    def test_empty_shares(self):
        assert distribute(5000, []) == []

    def test_single_share_takes_everything(self):
        [only] = distribute(12345, [Share(7, 10000)])
        assert only.amount_cents == 12345
        assert only.to_dict() == {"avatar_id": 7, "percentage_bps": 10000, "amount_cents": 12345}


class TestValidateShares:
    def test_must_total_one_hundred_percent(self):
        with pytest.raises(PercentageMismatchError):
            validate_shares([Share(1, 5000), Share(2, 4000)])

    def test_rejects_out_of_range(self):
        with pytest.raises(ValidationError):
            validate_shares([Share(1, 11000), Share(2, -1000)])

    def test_requires_a_share(self):
        with pytest.raises(PercentageMismatchError):
            validate_shares([])


class TestTemplatesAndModes:
    @pytest.fixture
    def avatars(self, db_session, org_a):
        main = profit_service.create_avatar(org_id=org_a.id, name="Store", avatar_type="Main")
        partner = profit_service.create_avatar(org_id=org_a.id, name="Partner")
        return main, partner

    def test_default_mode_uses_main_avatar(self, db_session, org_a, avatars):
        main, _ = avatars
        shares = profit_service.resolve_shares(org_id=org_a.id, mode="default")
        assert shares == [Share(main.id, 10000)]

    def test_default_mode_without_main_avatar(self, db_session, org_a):
        with pytest.raises(ProfitDistributionError):
            profit_service.resolve_shares(org_id=org_a.id, mode="default")

    def test_only_one_main_avatar(self, db_session, org_a, avatars):
        with pytest.raises(ValidationError):
            profit_service.create_avatar(org_id=org_a.id, name="Boss", avatar_type="Main")

    def test_create_and_resolve_template(self, db_session, org_a, avatars):
        main, partner = avatars
        template = profit_service.create_template(
            org_id=org_a.id,
            name="Partners",
            description=None,
            shares=[Share(main.id, 6000), Share(partner.id, 4000)],
        )
        shares = profit_service.resolve_shares(org_id=org_a.id, mode="template", template_id=template.id)
        assert shares == [Share(main.id, 6000), Share(partner.id, 4000)]

    def test_template_must_total_one_hundred(self, db_session, org_a, avatars):
        main, partner = avatars
        with pytest.raises(PercentageMismatchError):
            profit_service.create_template(
                org_id=org_a.id,
                name="Bad",
                description=None,
                shares=[Share(main.id, 6000), Share(partner.id, 3000)],
            )

    def test_update_template_replaces_items(self, db_session, org_a, avatars):
        main, partner = avatars
        template = profit_service.create_template(
            org_id=org_a.id, name="Split", description=None, shares=[Share(main.id, 10000)]
        )
        profit_service.update_template(
            org_id=org_a.id,
            template_id=template.id,
            shares=[Share(main.id, 5000), Share(partner.id, 5000)],
        )
        items = db_session.query(ProfitTemplateItem).filter_by(template_id=template.id).all()
        assert sorted((i.avatar_id, i.percentage_bps) for i in items) == [(main.id, 5000), (partner.id, 5000)]

    def test_delete_template(self, db_session, org_a, avatars):
        main, _ = avatars
        template = profit_service.create_template(
            org_id=org_a.id, name="Solo", description=None, shares=[Share(main.id, 10000)]
        )
        profit_service.delete_template(org_id=org_a.id, template_id=template.id)
        with pytest.raises(TemplateNotFoundError):
            profit_service.get_template(org_a.id, template.id)

    def test_template_from_other_org_is_not_found(self, db_session, org_a, org_b, avatars):
        main, _ = avatars
        template = profit_service.create_template(
            org_id=org_a.id, name="Solo", description=None, shares=[Share(main.id, 10000)]
        )
        with pytest.raises(TemplateNotFoundError):
            profit_service.resolve_shares(org_id=org_b.id, mode="template", template_id=template.id)

    def test_manual_shares_must_reference_org_avatars(self, db_session, org_a, org_b, avatars):
        foreign = Avatar(org_id=org_b.id, name="Outsider", avatar_type="Member")
        db_session.add(foreign)
        db_session.commit()
        with pytest.raises(ValidationError):
            profit_service.resolve_shares(
                org_id=org_a.id, mode="manual", manual_shares=[Share(foreign.id, 10000)]
            )

    def test_unknown_mode(self, db_session, org_a):
        with pytest.raises(ValidationError):
            profit_service.resolve_shares(org_id=org_a.id, mode="lottery")
