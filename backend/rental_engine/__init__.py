import pymysql
pymysql.install_as_MySQLdb()
from flask import Flask
from flask_cors import CORS

from .config import DevConfig
from .extensions import db, migrate, jwt, ma
from .utils.errors import register_error_handlers
from .api import rental_routes, availability_routes, catalog_routes


def create_app(config_class=DevConfig) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("FRONTEND_BASE_URL", "*")}},
        supports_credentials=True,
    )

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)

    app.register_blueprint(rental_routes.bp, url_prefix="/api/rentals")
    app.register_blueprint(availability_routes.bp, url_prefix="/api/availability")
    app.register_blueprint(catalog_routes.bp, url_prefix="/api")

    register_error_handlers(app)

    @app.get("/api/health")
    def health_check():
        return {"status": "ok", "service": "rental-engine"}

    return app
