from flask import Flask, jsonify
from flask_cors import CORS

from shopplan.logging_config import configure_logging, get_logger
from shopplan.models import ManufacturingStage, db

logger = get_logger(__name__)


def create_app(test_config=None):
    """
    Application factory.

    Args:
        test_config: Optional dict of config values applied before the database
                     is initialized (tests pass SQLALCHEMY_DATABASE_URI here)
    """
    # Import config after dotenv is loaded
    from shopplan.config import get_config
    from shopplan.db_config import configure_database

    config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)
    if test_config:
        app.config.update(test_config)

    configure_logging(log_level=app.config["LOG_LEVEL"], log_file=app.config.get("LOG_FILE"))

    configure_database(app, database_uri=(test_config or {}).get("SQLALCHEMY_DATABASE_URI"))

    logger.info(f"Starting application in {config_class.ENV} environment")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')[:50]}...")

    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    # Enable CORS for React frontend
    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    db.init_app(app)

    with app.app_context():
        # Only create tables if they don't exist
        db.create_all()

        if app.config.get("SEED_STAGES_ON_STARTUP") and ManufacturingStage.query.count() == 0:
            from shopplan.seed import seed_default_stages
            seed_default_stages()

    from shopplan.planning.routes import planning_bp
    app.register_blueprint(planning_bp, url_prefix="/planning")

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "environment": config_class.ENV}), 200

    return app
