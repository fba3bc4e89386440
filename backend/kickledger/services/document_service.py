# Overview: Service-layer operations for document numbering; mints payout reference numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence

DOCUMENT_TYPE_PAYOUT = "PAYOUT"
PAYOUT_PREFIX = "PO"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(
    *,
    org_id: int,
    document_type: str,
    prefix: str,
    pad: int = 5,
) -> str:
    """
    Allocate the next document number for an organization/type.

    The increment is a single UPDATE on (org_id, document_type) so two
    concurrent callers serialize on the row. Runs inside the caller's
    transaction: a rolled-back payout releases its number.
    """
    if not org_id:
        raise DocumentSequenceError("org_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.org_id == org_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current_value(org_id, document_type) - 1
    else:
        seq = DocumentSequence(org_id=org_id, document_type=document_type, next_number=2)
        nested = db.session.begin_nested()
        try:
            db.session.add(seq)
            db.session.flush()
            nested.commit()
            next_num = 1
        except IntegrityError:
            # Another request created the row first; take the next slot.
            nested.rollback()
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current_value(org_id, document_type) - 1

    return f"{prefix}-{org_id:03d}-{next_num:0{pad}d}"


def _current_value(org_id: int, document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(org_id=org_id, document_type=document_type)
        .scalar()
    )


def next_payout_number(org_id: int) -> str:
    return next_document_number(org_id=org_id, document_type=DOCUMENT_TYPE_PAYOUT, prefix=PAYOUT_PREFIX)
