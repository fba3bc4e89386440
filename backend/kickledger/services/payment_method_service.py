# Overview: Service-layer operations for custom payment methods; remembers non-standard payout methods per user.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CustomPaymentMethod
from ..validation import ConflictError, ValidationError

STANDARD_PAYMENT_METHODS = (
    "PayPal",
    "Bank Transfer",
    "Venmo",
    "Zelle",
    "Cash",
    "Check",
    "Wire Transfer",
)


def is_standard_method(method_name: str) -> bool:
    return method_name in STANDARD_PAYMENT_METHODS


def remember(user_id: int, method_name: str | None) -> CustomPaymentMethod | None:
    """
    Remember a payout method name the operator typed, once per user.

    Runs in a savepoint of the caller's transaction and never raises: a
    failed insert is logged and the payout carries on without it.
    """
    if not method_name or not method_name.strip():
        return None
    name = method_name.strip()
    if is_standard_method(name):
        return None

    existing = db.session.query(CustomPaymentMethod).filter_by(user_id=user_id, method_name=name).first()
    if existing:
        return existing

    nested = db.session.begin_nested()
    try:
        method = CustomPaymentMethod(
            user_id=user_id,
            method_name=name,
            description=f"Custom payment method: {name}",
        )
        db.session.add(method)
        db.session.flush()
        nested.commit()
        return method
    except SQLAlchemyError:
        nested.rollback()
        current_app.logger.warning("Could not remember custom payment method %r for user %s", name, user_id, exc_info=True)
        return None


def list_methods(user_id: int) -> list[CustomPaymentMethod]:
    return (
        db.session.query(CustomPaymentMethod)
        .filter_by(user_id=user_id, is_active=True)
        .order_by(CustomPaymentMethod.method_name)
        .all()
    )


def create_method(user_id: int, method_name: str | None, description: str | None = None) -> CustomPaymentMethod:
    if not method_name or not method_name.strip():
        raise ValidationError("Method name is required")
    name = method_name.strip()
    if is_standard_method(name):
        raise ConflictError(f"{name} is a built-in payment method")

    existing = db.session.query(CustomPaymentMethod).filter_by(user_id=user_id, method_name=name).first()
    if existing and existing.is_active:
        raise ConflictError("Payment method already exists")
    if existing:
        existing.is_active = True
        if description is not None:
            existing.description = description.strip() or None
        db.session.commit()
        return existing

    method = CustomPaymentMethod(
        user_id=user_id,
        method_name=name,
        description=description.strip() if description and description.strip() else None,
    )
    db.session.add(method)
    db.session.commit()
    return method


def deactivate_method(user_id: int, method_id: int) -> bool:
    """Hide a remembered method from pickers. Returns False if not found."""
    method = db.session.query(CustomPaymentMethod).filter_by(id=method_id, user_id=user_id).first()
    if not method:
        return False
    method.is_active = False
    db.session.commit()
    return True
