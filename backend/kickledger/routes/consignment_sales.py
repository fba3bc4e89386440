# Overview: Flask API routes for the consignment ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import consignment_service
from ..services.consignment_service import ConsignmentError, ConsignmentNotFoundError
from ..services.split_service import SplitError
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, coerce_int, parse_pagination


consignment_sales_bp = Blueprint("consignment_sales", __name__, url_prefix="/api/consignment-sales")


@consignment_sales_bp.get("")
@require_auth
def list_consignment_sales_route():
    """
    List ledger rows, newest first.

    Query parameters:
    - consignor_id
    - payout_status: pending | paid | all
    - date_from, date_to: ISO dates or datetimes on created_at
    - page, limit

    The totals cover every row matching the filters, not only this page.
    """
    try:
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["PAGE_SIZE_DEFAULT"],
            max_limit=current_app.config["PAGE_SIZE_MAX"],
        )
        consignor_id = request.args.get("consignor_id")
        result = consignment_service.list_consignment_sales(
            org_id=g.org_id,
            consignor_id=coerce_int(consignor_id, "consignor_id") if consignor_id else None,
            payout_status=request.args.get("payout_status"),
            date_from=parse_iso_datetime(request.args.get("date_from")),
            date_to=parse_iso_datetime(request.args.get("date_to")),
            page=page,
            limit=limit,
        )
    except (ValidationError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "sales": [row.to_dict() for row in result.rows],
        "pagination": {
            "page": result.page,
            "limit": result.limit,
            "total": result.total,
            "total_pages": result.total_pages,
        },
        "totals": {
            "total_amount_cents": result.total_amount_cents,
            "total_payout_cents": result.total_payout_cents,
            "total_commission_cents": result.total_commission_cents,
        },
    }), 200


@consignment_sales_bp.post("")
@require_auth
def record_consignment_sale_route():
    try:
        row = consignment_service.record_consignment_sale(
            org_id=g.org_id, data=request.get_json(silent=True)
        )
        return jsonify({"consignment_sale": row.to_dict()}), 201
    except ConsignmentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, SplitError, ConsignmentError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record consignment sale")
        return jsonify({"error": "Internal server error"}), 500


@consignment_sales_bp.post("/bulk")
@require_auth
def record_consignment_sales_bulk_route():
    """Record several pre-split rows at once: {"sales": [...]}. All or nothing."""
    data = request.get_json(silent=True) or {}
    try:
        rows = consignment_service.record_consignment_sales_bulk(org_id=g.org_id, rows=data.get("sales"))
        return jsonify({
            "consignment_sales": [row.to_dict() for row in rows],
            "count": len(rows),
        }), 201
    except ConsignmentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ConsignmentError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record consignment sales")
        return jsonify({"error": "Internal server error"}), 500


@consignment_sales_bp.get("/<int:consignment_sale_id>")
@require_auth
def get_consignment_sale_route(consignment_sale_id: int):
    try:
        row = consignment_service.get_consignment_sale(g.org_id, consignment_sale_id)
    except ConsignmentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"consignment_sale": row.to_dict()}), 200
