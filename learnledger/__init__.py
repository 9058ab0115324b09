import logging

import click
from flask import Flask, jsonify, current_app
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

# Initialize extensions
db = SQLAlchemy()
bcrypt = Bcrypt()
jwt = JWTManager()


def create_app(config_object='learnledger.config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_object)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)
    CORS(app, resources={
        r"/*": {
            "origins": app.config['CORS_ORIGINS'],
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Authorization", "Content-Type"],
            "expose_headers": ["Authorization"],
            "supports_credentials": True,
        }
    })

    # Create tables if they don't exist
    with app.app_context():
        create_tables()

    register_error_handlers(app)
    register_commands(app)

    # Import and register Blueprints
    from learnledger.auth_routes import auth_bp
    from learnledger.profile_routes import profile_bp
    from learnledger.project_routes import project_bp
    from learnledger.submission_routes import submission_bp
    from learnledger.bookmark_routes import bookmark_bp
    from learnledger.dashboard_routes import dashboard_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(profile_bp, url_prefix='/profile')
    app.register_blueprint(project_bp, url_prefix='/projects')
    app.register_blueprint(submission_bp, url_prefix='/submissions')
    app.register_blueprint(bookmark_bp, url_prefix='/bookmarks')
    app.register_blueprint(dashboard_bp, url_prefix='/dashboard')

    app.logger.info(f"Running in {'debug' if app.config['DEBUG'] else 'production'} mode")
    return app


def configure_logging(app):
    formatter = logging.Formatter('[%(levelname)s] %(name)s: %(message)s')
    for handler in app.logger.handlers:
        handler.setFormatter(formatter)
    app.logger.setLevel(app.config['LOG_LEVEL'])


def create_tables():
    from learnledger import models  # noqa: F401  registers the tables on db.metadata
    db.create_all()


def register_error_handlers(app):
    from learnledger.errors import LedgerError, InternalError, Unauthenticated

    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        db.session.rollback()
        app.logger.debug(f"{error.kind}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.error(f"Database error: {error}")
        internal = InternalError('Internal server error')
        return jsonify(internal.to_dict()), internal.status_code

    def token_error(message):
        error = Unauthenticated(message)
        current_app.logger.debug(f"{error.kind}: {message}")
        return jsonify(error.to_dict()), error.status_code

    @jwt.unauthorized_loader
    def missing_token(reason):
        return token_error(f"Missing access token: {reason}")

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return token_error(f"Invalid access token: {reason}")

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return token_error('Access token has expired')


def register_commands(app):
    @app.cli.command('backfill-skills')
    def backfill_skills_command():
        """Turn free-text profile skills into user_skills rows."""
        from learnledger.profiles import backfill_user_skills
        from learnledger.utils import atomic

        with atomic():
            granted = backfill_user_skills()
        click.echo(f"Granted {granted} skills")
