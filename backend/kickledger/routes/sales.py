# Overview: Flask API routes for checkout; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import sales_service
from ..services.profit_service import ProfitDistributionError, TemplateNotFoundError
from ..services.sales_service import SaleError
from ..services.split_service import SplitError
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def record_sale_route():
    """
    Record a checkout: sold variants, per-item splits, consignment ledger rows
    and the profit distribution, in one transaction.

    Request body:
    {
        "items": [{"variant_id": 1, "sold_price_cents": 25000}, ...],
        "total_discount_cents": 0,
        "commission_basis": "total",
        "custom_commission_rates": {"3": 1500},
        "distribution": {"mode": "template", "template_id": 2},
        "customer_name": "...", "customer_phone": "...", "payment_type": "Cash"
    }
    """
    try:
        sale = sales_service.record_sale(
            org_id=g.org_id,
            user_id=g.current_user.id,
            payload=request.get_json(silent=True),
        )
        return jsonify({"success": True, "sale": sale.to_dict()}), 201
    except TemplateNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except (ValidationError, SplitError, ProfitDistributionError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.org_id, sale_id)
    except SaleError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"sale": sale.to_dict()}), 200
