"""
Centralized Blueprint Registration
All blueprints MUST be registered inside register_all_blueprints(app)
"""

def register_all_blueprints(app):

    # Root
    from backend.routes.root.root_routes import root_bp
    app.register_blueprint(root_bp)

    # Orders (seller -> farmer -> deliveryman)
    from backend.routes.orders.order_routes import orders_bp
    app.register_blueprint(orders_bp)

    app.logger.info("All blueprints registered")
