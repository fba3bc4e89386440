# Overview: Service-layer operations for profit distribution; splits a sale's net profit across avatars.

"""
Profit Distribution Engine

WHY: A sale's net profit is shared across team "avatars" by percentage, and
the recorded amounts must add up to the profit to the cent.

MODES:
- default: 100% to the organization's Main avatar
- template: shares copied from a saved ProfitDistributionTemplate
- manual: ad hoc shares entered at checkout

The last share absorbs the rounding residual: it is set to
net_profit - sum(preceding shares) instead of being computed from its
percentage.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Avatar, ProfitDistributionTemplate, ProfitTemplateItem
from ..money import FULL_PERCENT_BPS, percent_of
from ..validation import coerce_int, ValidationError

MODE_DEFAULT = "default"
MODE_TEMPLATE = "template"
MODE_MANUAL = "manual"
VALID_MODES = (MODE_DEFAULT, MODE_TEMPLATE, MODE_MANUAL)

AVATAR_TYPE_MAIN = "Main"
AVATAR_TYPE_MEMBER = "Member"


class ProfitDistributionError(Exception):
    """Raised for distribution setup problems (unknown template, no Main avatar)."""


class PercentageMismatchError(ProfitDistributionError):
    """Shares do not total exactly 100%."""


class TemplateNotFoundError(ProfitDistributionError):
    pass


@dataclass(frozen=True)
class Share:
    participant_id: int
    percentage_bps: int


@dataclass(frozen=True)
class ShareAmount:
    participant_id: int
    percentage_bps: int
    amount_cents: int

    def to_dict(self) -> dict:
        return {
            "avatar_id": self.participant_id,
            "percentage_bps": self.percentage_bps,
            "amount_cents": self.amount_cents,
        }


# =============================================================================
# ENGINE
# =============================================================================

def distribute(net_profit_cents: int, shares: list[Share]) -> list[ShareAmount]:
    """
    Split net_profit_cents across shares so the amounts sum exactly to it.

    Percentages are not validated here; callers run validate_shares first.
    A zero percentage total yields zero for every share.
    """
    if not shares:
        return []

    if sum(s.percentage_bps for s in shares) == 0:
        return [ShareAmount(s.participant_id, s.percentage_bps, 0) for s in shares]

    result = []
    distributed = 0
    for share in shares[:-1]:
        amount = percent_of(net_profit_cents, share.percentage_bps)
        distributed += amount
        result.append(ShareAmount(share.participant_id, share.percentage_bps, amount))

    last = shares[-1]
    result.append(ShareAmount(last.participant_id, last.percentage_bps, net_profit_cents - distributed))
    return result


def validate_shares(shares: list[Share]) -> None:
    if not shares:
        raise PercentageMismatchError("At least one profit share is required")
    for share in shares:
        if share.percentage_bps < 0 or share.percentage_bps > FULL_PERCENT_BPS:
            raise ValidationError("percentage_bps must be between 0 and 10000")
    total = sum(s.percentage_bps for s in shares)
    if total != FULL_PERCENT_BPS:
        raise PercentageMismatchError(
            f"Total profit distribution percentage must be exactly 100% (got {total / 100:.2f}%)"
        )


def parse_shares(raw_shares) -> list[Share]:
    """Parse [{"avatar_id": .., "percentage_bps": ..}, ...] from a request body."""
    if not isinstance(raw_shares, list):
        raise ValidationError("shares must be a list")
    shares = []
    for raw in raw_shares:
        if not isinstance(raw, dict):
            raise ValidationError("Each share must be an object")
        if raw.get("avatar_id") is None:
            raise ValidationError("Each share requires avatar_id")
        shares.append(Share(
            participant_id=coerce_int(raw.get("avatar_id"), "avatar_id"),
            percentage_bps=coerce_int(raw.get("percentage_bps"), "percentage_bps"),
        ))
    return shares


# =============================================================================
# SHARE SELECTION
# =============================================================================

def resolve_shares(
    *,
    org_id: int,
    mode: str,
    template_id: int | None = None,
    manual_shares: list[Share] | None = None,
) -> list[Share]:
    """
    Build the validated share list for a checkout.

    Template shares are copied at call time so later template edits do not
    reach recorded sales.
    """
    if mode == MODE_DEFAULT:
        main = db.session.query(Avatar).filter_by(org_id=org_id, avatar_type=AVATAR_TYPE_MAIN).first()
        if not main:
            raise ProfitDistributionError("No Main avatar found for default distribution")
        shares = [Share(main.id, FULL_PERCENT_BPS)]
    elif mode == MODE_TEMPLATE:
        if template_id is None:
            raise ValidationError("template_id is required for template distribution")
        template = get_template(org_id, template_id)
        shares = [Share(item.avatar_id, item.percentage_bps) for item in template.items]
    elif mode == MODE_MANUAL:
        shares = list(manual_shares or [])
        _require_org_avatars(org_id, shares)
    else:
        raise ValidationError(f"distribution mode must be one of {', '.join(VALID_MODES)}")

    validate_shares(shares)
    return shares


def _require_org_avatars(org_id: int, shares: list[Share]) -> None:
    ids = {s.participant_id for s in shares}
    if not ids:
        return
    found = {
        row.id for row in db.session.query(Avatar.id).filter(Avatar.org_id == org_id, Avatar.id.in_(ids))
    }
    missing = ids - found
    if missing:
        raise ValidationError(f"Unknown avatar(s): {', '.join(str(i) for i in sorted(missing))}")


# =============================================================================
# TEMPLATES
# =============================================================================

def get_template(org_id: int, template_id: int) -> ProfitDistributionTemplate:
    template = db.session.query(ProfitDistributionTemplate).filter_by(id=template_id, org_id=org_id).first()
    if not template:
        raise TemplateNotFoundError(f"Profit template {template_id} not found")
    return template


def list_templates(org_id: int) -> list[ProfitDistributionTemplate]:
    return (
        db.session.query(ProfitDistributionTemplate)
        .filter_by(org_id=org_id)
        .order_by(ProfitDistributionTemplate.name)
        .all()
    )


def create_template(*, org_id: int, name: str, description: str | None, shares: list[Share]) -> ProfitDistributionTemplate:
    if not name or not name.strip():
        raise ValidationError("name is required")
    _require_org_avatars(org_id, shares)
    validate_shares(shares)

    template = ProfitDistributionTemplate(org_id=org_id, name=name.strip(), description=description)
    db.session.add(template)
    db.session.flush()
    for share in shares:
        db.session.add(ProfitTemplateItem(
            template_id=template.id,
            avatar_id=share.participant_id,
            percentage_bps=share.percentage_bps,
        ))
    db.session.commit()
    return template


def update_template(
    *,
    org_id: int,
    template_id: int,
    name: str | None = None,
    description: str | None = None,
    shares: list[Share] | None = None,
) -> ProfitDistributionTemplate:
    template = get_template(org_id, template_id)
    if name is not None:
        if not name.strip():
            raise ValidationError("name cannot be blank")
        template.name = name.strip()
    if description is not None:
        template.description = description
    if shares is not None:
        _require_org_avatars(org_id, shares)
        validate_shares(shares)
        template.items.clear()
        db.session.flush()
        for share in shares:
            template.items.append(ProfitTemplateItem(
                avatar_id=share.participant_id,
                percentage_bps=share.percentage_bps,
            ))
    db.session.commit()
    return template


def delete_template(org_id: int, template_id: int) -> None:
    template = get_template(org_id, template_id)
    db.session.delete(template)
    db.session.commit()


# =============================================================================
# AVATARS
# =============================================================================

def list_avatars(org_id: int) -> list[Avatar]:
    return db.session.query(Avatar).filter_by(org_id=org_id).order_by(Avatar.id).all()


def create_avatar(
    *,
    org_id: int,
    name: str,
    avatar_type: str = AVATAR_TYPE_MEMBER,
    default_percentage_bps: int | None = None,
) -> Avatar:
    if not name or not name.strip():
        raise ValidationError("name is required")
    if avatar_type not in (AVATAR_TYPE_MAIN, AVATAR_TYPE_MEMBER):
        raise ValidationError("avatar_type must be Main or Member")
    if avatar_type == AVATAR_TYPE_MAIN:
        existing = db.session.query(Avatar).filter_by(org_id=org_id, avatar_type=AVATAR_TYPE_MAIN).first()
        if existing:
            raise ValidationError("Organization already has a Main avatar")
    if db.session.query(Avatar).filter_by(org_id=org_id, name=name.strip()).first():
        raise ValidationError(f"Avatar {name.strip()!r} already exists")

    avatar = Avatar(
        org_id=org_id,
        name=name.strip(),
        avatar_type=avatar_type,
        default_percentage_bps=default_percentage_bps,
    )
    db.session.add(avatar)
    db.session.commit()
    return avatar
