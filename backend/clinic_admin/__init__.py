# clinic_admin/__init__.py
"""
Flask application factory for the clinic admin backend
"""
import logging
from flask import Flask
from flask_cors import CORS
from clinic_admin.config import Config
from clinic_admin.extensions import db, migrate

logger = logging.getLogger(__name__)

def create_app(config_class=Config):
    """Create and configure Flask application"""

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config['INTEGRATION_STATUS'] = config_class.integration_status()

    # Configure CORS
    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         allow_headers=['Content-Type', 'Authorization'],
         methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
    )

    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so metadata and migrations see every table
    from clinic_admin import models  # noqa: F401

    # Register blueprints
    from clinic_admin.routes.health import health_bp
    from clinic_admin.routes.agenda import agenda_bp
    from clinic_admin.routes.doctors import doctors_bp
    from clinic_admin.routes.users import users_bp
    from clinic_admin.routes.embeddings import embeddings_bp
    from clinic_admin.routes.files import files_bp
    from clinic_admin.routes.costs import costs_bp
    from clinic_admin.routes.metrics import metrics_bp
    from clinic_admin.routes.scheduler import scheduler_bp

    for blueprint in (health_bp, agenda_bp, doctors_bp, users_bp, embeddings_bp,
                      files_bp, costs_bp, metrics_bp, scheduler_bp):
        app.register_blueprint(blueprint, url_prefix='/api')

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {'error': 'Endpoint not found'}, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {'error': 'Method not allowed'}, 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return {'error': 'Internal server error'}, 500

    logger.info("Flask application created successfully")
    return app
