from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import DEFAULT_SECRET_KEY, Config
from .extensions import cors, db
from .routes import register_routes


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(config_object or Config)
    app.config.from_envvar("APP_SETTINGS", silent=True)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    if app.config["SECRET_KEY"] == DEFAULT_SECRET_KEY and not (app.debug or app.testing):
        app.logger.warning("SECRET_KEY is not set; tokens are signed with the development default")

    db.init_app(app)

    # Allow the admin, owner and customer front ends to talk to the backend
    cors.init_app(
        app,
        origins=app.config["CORS_ORIGINS"],
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    )

    register_routes(app)
    _register_error_handlers(app)

    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        message = "Route not found" if exc.code == 404 else exc.description
        return jsonify({"success": False, "error": exc.name.lower().replace(" ", "_"), "message": message}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error", exc_info=exc)
        return jsonify({"success": False, "error": "server_error", "message": "Internal Server Error"}), 500
