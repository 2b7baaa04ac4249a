# app.py (Render + Local working)

from flask import Flask
from flask_cors import CORS
from datetime import timedelta

from flask_jwt_extended import JWTManager

from backend.app_config import load_config
from backend.mongo import init_mongo
from backend.register_blueprints import register_all_blueprints


def create_app(overrides=None):
    app = Flask(__name__)

    # -------------------------
    # Config & security
    # -------------------------
    load_config(app)
    if overrides:
        app.config.update(overrides)
    app.secret_key = app.config["SECRET_KEY"]
    app.permanent_session_lifetime = timedelta(days=7)

    CORS(app, resources={r"/*": {"origins": "*"}})

    # -------------------------
    # Mongo
    # -------------------------
    init_mongo(app)

    # -------------------------
    # JWT
    # -------------------------
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=6)
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    JWTManager(app)

    # -------------------------
    # Blueprints
    # -------------------------
    register_all_blueprints(app)

    return app


# Local run only
if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
