# backend/unitledger/__init__.py
from flask import Flask, jsonify, request

from .config import Config
from .errors import InventoryError
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before the engine is created by db.init_app
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.stores import stores_bp
    from .routes.batches import batches_bp  # Batch planning + barcode admission
    from .routes.inventory import inventory_bp
    from .routes.defects import defects_bp
    from .routes.orders import orders_bp  # Orders: allocation + ledger sync
    from .routes.sales import sales_bp  # POS sales: same pipeline, kind=sale
    from .routes.ledger import ledger_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(stores_bp)
    app.register_blueprint(batches_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(defects_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(ledger_bp)

    @app.errorhandler(InventoryError)
    def handle_inventory_error(exc: InventoryError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
