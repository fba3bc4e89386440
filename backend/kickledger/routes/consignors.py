# Overview: Flask API routes for consignor operations; parses input and returns JSON responses.

"""
Consignor Routes

All routes require authentication and are scoped to the caller's organization.
Consignor payouts (FIFO amount) live here because they are addressed by
consignor; explicit sale selection lives under /api/consignment-payouts.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import consignor_service, payout_service
from ..services.consignor_service import ConsignorError, ConsignorNotFoundError
from ..services.payout_service import PayoutError
from ..time_utils import parse_iso_date
from ..validation import ValidationError, parse_pagination


consignors_bp = Blueprint("consignors", __name__, url_prefix="/api/consignors")


def _flag(name: str) -> bool:
    return request.args.get(name, "false").lower() == "true"


@consignors_bp.get("")
@require_auth
def list_consignors_route():
    """
    List consignors with their ledger stats.

    Query parameters:
    - archived: list archived consignors instead of live ones (default: false)
    - status: active | inactive | all
    - search: matches name, email or phone
    - page, limit: pagination (default limit 10)
    """
    try:
        page, limit = parse_pagination(
            request.args, default_limit=10, max_limit=current_app.config["PAGE_SIZE_MAX"]
        )
        consignors, total = consignor_service.list_consignors(
            org_id=g.org_id,
            archived=_flag("archived"),
            status=request.args.get("status"),
            search=request.args.get("search"),
            page=page,
            limit=limit,
        )
        stats = consignor_service.consignor_stats(g.org_id, consignors)
        return jsonify({
            "consignors": [s.to_dict() for s in stats],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit,
            },
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list consignors")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.get("/stats")
@require_auth
def consignor_stats_route():
    try:
        return jsonify(consignor_service.stats_summary(g.org_id, archived=_flag("archived"))), 200
    except Exception:
        current_app.logger.exception("Failed to load consignor stats")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.post("")
@require_auth
def create_consignor_route():
    """
    Create a consignor.

    Request body: name, commission_rate_bps (required); email, phone, notes,
    payment_method, payout_method, fixed_markup_cents, markup_percentage_bps,
    status, portal_password (optional).
    """
    try:
        consignor = consignor_service.create_consignor(g.org_id, request.get_json(silent=True) or {})
        return jsonify({"consignor": consignor.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create consignor")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.get("/<int:consignor_id>")
@require_auth
def get_consignor_route(consignor_id: int):
    try:
        consignor = consignor_service.get_consignor(g.org_id, consignor_id)
        [stats] = consignor_service.consignor_stats(g.org_id, [consignor])
        return jsonify({"consignor": stats.to_dict()}), 200
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load consignor")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.put("/<int:consignor_id>")
@require_auth
def update_consignor_route(consignor_id: int):
    try:
        consignor = consignor_service.update_consignor(
            g.org_id, consignor_id, request.get_json(silent=True) or {}
        )
        return jsonify({"consignor": consignor.to_dict()}), 200
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update consignor")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.delete("/<int:consignor_id>")
@require_auth
def archive_consignor_route(consignor_id: int):
    try:
        consignor = consignor_service.archive_consignor(g.org_id, consignor_id)
        return jsonify({"message": "Consignor archived", "consignor": consignor.to_dict()}), 200
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConsignorError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to archive consignor")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.post("/<int:consignor_id>/restore")
@require_auth
def restore_consignor_route(consignor_id: int):
    try:
        consignor = consignor_service.restore_consignor(g.org_id, consignor_id)
        return jsonify({"message": "Consignor restored", "consignor": consignor.to_dict()}), 200
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to restore consignor")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.delete("/<int:consignor_id>/permanent")
@require_auth
def delete_consignor_route(consignor_id: int):
    try:
        consignor_service.delete_consignor_permanently(g.org_id, consignor_id)
        return jsonify({"message": "Consignor permanently deleted"}), 200
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConsignorError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete consignor")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.get("/<int:consignor_id>/items")
@require_auth
def consignor_items_route(consignor_id: int):
    try:
        return jsonify(consignor_service.list_items(g.org_id, consignor_id)), 200
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to list consignor items")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYOUTS
# =============================================================================

@consignors_bp.post("/<int:consignor_id>/payouts")
@require_auth
def process_payout_route(consignor_id: int):
    """
    Pay an amount against the consignor's oldest pending sales.

    Request body:
    {
        "amount_cents": 5000,          // required, positive integer
        "payment_method": "PayPal",    // optional, remembered when custom
        "payout_date": "2025-01-31",   // optional, defaults to today
        "notes": "..."                 // optional
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        payout_date = parse_iso_date(data.get("payout_date")) if data.get("payout_date") else None
        result = payout_service.process_payout(
            org_id=g.org_id,
            user_id=g.current_user.id,
            consignor_id=consignor_id,
            amount_cents=data.get("amount_cents"),
            method=data.get("payment_method"),
            payout_date=payout_date,
            notes=data.get("notes"),
        )
        return jsonify({"success": True, **result.to_dict()}), 200
    except PayoutError as e:
        return jsonify({"error": str(e)}), e.status_code
    except (ValidationError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process consignor payout")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.get("/<int:consignor_id>/payouts")
@require_auth
def payout_history_route(consignor_id: int):
    try:
        consignor_service.get_consignor(g.org_id, consignor_id, include_archived=True)
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    payouts = payout_service.payout_history(g.org_id, consignor_id)
    return jsonify({"payouts": [p.to_dict() for p in payouts]}), 200
