# backend/kickledger/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.consignors import consignors_bp
    from .routes.consignment_sales import consignment_sales_bp
    from .routes.payouts import payouts_bp
    from .routes.profit import profit_bp
    from .routes.sales import sales_bp
    from .routes.payment_methods import payment_methods_bp
    from .routes.portal import portal_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(consignors_bp)
    app.register_blueprint(consignment_sales_bp)
    app.register_blueprint(payouts_bp)
    app.register_blueprint(profit_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(payment_methods_bp)
    app.register_blueprint(portal_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    from .cli import register_commands
    register_commands(app)

    return app
