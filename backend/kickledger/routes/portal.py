# Overview: Flask API routes for the public consignor portal; parses input and returns JSON responses.

"""
Consignor Portal

Public, read-only. A consignor proves access with their portal password;
no staff session is involved.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import consignor_service
from ..services.consignor_service import ConsignorNotFoundError, PortalAccessError


portal_bp = Blueprint("portal", __name__, url_prefix="/api/portal")


@portal_bp.post("/consignors/<int:consignor_id>")
def portal_view_route(consignor_id: int):
    data = request.get_json(silent=True) or {}
    password = data.get("password")
    if not password:
        return jsonify({"error": "password is required"}), 400

    try:
        return jsonify(consignor_service.portal_view(consignor_id, password)), 200
    except ConsignorNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PortalAccessError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load consignor portal")
        return jsonify({"error": "Internal server error"}), 500
