# Overview: Flask API routes for profit distribution templates and avatars; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import profit_service
from ..services.profit_service import ProfitDistributionError, TemplateNotFoundError
from ..validation import ValidationError, coerce_int


profit_bp = Blueprint("profit", __name__, url_prefix="/api/profit")


# =============================================================================
# TEMPLATES
# =============================================================================

@profit_bp.get("/templates")
@require_auth
def list_templates_route():
    templates = profit_service.list_templates(g.org_id)
    return jsonify({"templates": [t.to_dict() for t in templates]}), 200


@profit_bp.post("/templates")
@require_auth
def create_template_route():
    """
    Create a template.

    Request body:
    {
        "name": "Partners",
        "description": "...",
        "distributions": [{"avatar_id": 1, "percentage_bps": 6000}, ...]
    }

    Percentages must add up to 10000 bps (100%).
    """
    data = request.get_json(silent=True) or {}
    try:
        template = profit_service.create_template(
            org_id=g.org_id,
            name=data.get("name"),
            description=data.get("description"),
            shares=profit_service.parse_shares(data.get("distributions")),
        )
        return jsonify({"template": template.to_dict()}), 201
    except (ValidationError, ProfitDistributionError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create profit template")
        return jsonify({"error": "Internal server error"}), 500


@profit_bp.get("/templates/<int:template_id>")
@require_auth
def get_template_route(template_id: int):
    try:
        template = profit_service.get_template(g.org_id, template_id)
    except TemplateNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"template": template.to_dict()}), 200


@profit_bp.put("/templates/<int:template_id>")
@require_auth
def update_template_route(template_id: int):
    data = request.get_json(silent=True) or {}
    try:
        shares = None
        if data.get("distributions") is not None:
            shares = profit_service.parse_shares(data["distributions"])
        template = profit_service.update_template(
            org_id=g.org_id,
            template_id=template_id,
            name=data.get("name"),
            description=data.get("description"),
            shares=shares,
        )
        return jsonify({"template": template.to_dict()}), 200
    except TemplateNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ProfitDistributionError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update profit template")
        return jsonify({"error": "Internal server error"}), 500


@profit_bp.delete("/templates/<int:template_id>")
@require_auth
def delete_template_route(template_id: int):
    try:
        profit_service.delete_template(g.org_id, template_id)
    except TemplateNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Template deleted"}), 200


# =============================================================================
# PREVIEW
# =============================================================================

@profit_bp.post("/distribute")
@require_auth
def preview_distribution_route():
    """
    Preview how a net profit would be divided, without recording anything.

    Request body: {"net_profit_cents": 12345, "mode": "default"|"template"|"manual",
    "template_id": 1, "shares": [...]}
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("net_profit_cents") is None:
            raise ValidationError("net_profit_cents is required")
        net_profit = coerce_int(data["net_profit_cents"], "net_profit_cents")
        template_id = data.get("template_id")
        shares = profit_service.resolve_shares(
            org_id=g.org_id,
            mode=data.get("mode") or profit_service.MODE_DEFAULT,
            template_id=coerce_int(template_id, "template_id") if template_id is not None else None,
            manual_shares=profit_service.parse_shares(data["shares"]) if data.get("shares") is not None else None,
        )
        amounts = profit_service.distribute(net_profit, shares)
    except TemplateNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ProfitDistributionError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "net_profit_cents": net_profit,
        "distribution": [a.to_dict() for a in amounts],
    }), 200


# =============================================================================
# AVATARS
# =============================================================================

@profit_bp.get("/avatars")
@require_auth
def list_avatars_route():
    avatars = profit_service.list_avatars(g.org_id)
    return jsonify({"avatars": [a.to_dict() for a in avatars]}), 200


@profit_bp.post("/avatars")
@require_auth
def create_avatar_route():
    data = request.get_json(silent=True) or {}
    try:
        default_bps = data.get("default_percentage_bps")
        avatar = profit_service.create_avatar(
            org_id=g.org_id,
            name=data.get("name"),
            avatar_type=data.get("avatar_type") or profit_service.AVATAR_TYPE_MEMBER,
            default_percentage_bps=coerce_int(default_bps, "default_percentage_bps") if default_bps is not None else None,
        )
        return jsonify({"avatar": avatar.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create avatar")
        return jsonify({"error": "Internal server error"}), 500
