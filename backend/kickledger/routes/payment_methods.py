# Overview: Flask API routes for custom payment methods; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import payment_method_service
from ..validation import ConflictError, ValidationError


payment_methods_bp = Blueprint("payment_methods", __name__, url_prefix="/api/custom-payment-methods")


@payment_methods_bp.get("")
@require_auth
def list_payment_methods_route():
    """Built-in methods plus the caller's remembered custom ones."""
    methods = payment_method_service.list_methods(g.current_user.id)
    return jsonify({
        "standard_methods": list(payment_method_service.STANDARD_PAYMENT_METHODS),
        "payment_methods": [m.to_dict() for m in methods],
    }), 200


@payment_methods_bp.post("")
@require_auth
def create_payment_method_route():
    data = request.get_json(silent=True) or {}
    try:
        method = payment_method_service.create_method(
            g.current_user.id, data.get("method_name"), data.get("description")
        )
        return jsonify({"payment_method": method.to_dict()}), 201
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create payment method")
        return jsonify({"error": "Internal server error"}), 500


@payment_methods_bp.delete("/<int:method_id>")
@require_auth
def deactivate_payment_method_route(method_id: int):
    if not payment_method_service.deactivate_method(g.current_user.id, method_id):
        return jsonify({"error": "Payment method not found"}), 404
    return jsonify({"message": "Payment method deactivated"}), 200
