# Overview: Flask API routes for payout transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import payout_service
from ..services.payout_service import PayoutError
from ..time_utils import parse_iso_date
from ..validation import ValidationError, coerce_int, parse_pagination


payouts_bp = Blueprint("payouts", __name__, url_prefix="/api/consignment-payouts")


@payouts_bp.get("")
@require_auth
def list_payouts_route():
    """
    List payout transactions, newest first.

    Query parameters: consignor_id, status, date_from, date_to (payout dates),
    page, limit. total_amount_cents covers the whole filtered set.
    """
    try:
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["PAGE_SIZE_DEFAULT"],
            max_limit=current_app.config["PAGE_SIZE_MAX"],
        )
        consignor_id = request.args.get("consignor_id")
        rows, total, total_amount = payout_service.list_payouts(
            org_id=g.org_id,
            consignor_id=coerce_int(consignor_id, "consignor_id") if consignor_id else None,
            status=request.args.get("status"),
            date_from=parse_iso_date(request.args.get("date_from")),
            date_to=parse_iso_date(request.args.get("date_to")),
            page=page,
            limit=limit,
        )
    except (ValidationError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "payouts": [p.to_dict() for p in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        },
        "total_amount_cents": total_amount,
    }), 200


@payouts_bp.post("")
@require_auth
def create_payout_route():
    """
    Pay a chosen set of pending consignment sales in full.

    Request body:
    {
        "consignor_id": 1,
        "sale_ids": [3, 4],
        "payment_method": "Zelle",
        "payout_date": "2025-01-31",
        "reference_number": "...",
        "notes": "..."
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("consignor_id") is None:
            raise ValidationError("consignor_id is required")
        payout_date = parse_iso_date(data.get("payout_date")) if data.get("payout_date") else None
        payout = payout_service.create_payout_for_sales(
            org_id=g.org_id,
            user_id=g.current_user.id,
            consignor_id=coerce_int(data["consignor_id"], "consignor_id"),
            sale_ids=data.get("sale_ids"),
            method=data.get("payment_method"),
            payout_date=payout_date,
            reference_number=data.get("reference_number"),
            notes=data.get("notes"),
        )
        return jsonify({"payout": payout.to_dict(include_items=True)}), 201
    except PayoutError as e:
        return jsonify({"error": str(e)}), e.status_code
    except (ValidationError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create payout")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.get("/<int:payout_id>")
@require_auth
def get_payout_route(payout_id: int):
    try:
        payout = payout_service.get_payout(g.org_id, payout_id)
    except PayoutError as e:
        return jsonify({"error": str(e)}), e.status_code
    return jsonify({"payout": payout.to_dict(include_items=True)}), 200
