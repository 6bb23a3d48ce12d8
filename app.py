import atexit
import logging
import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase
from werkzeug.middleware.proxy_fix import ProxyFix
from config import Config

# Set up logging - use INFO in production, DEBUG only when DEV_MODE is set
log_level = logging.DEBUG if os.environ.get('DEV_MODE', '').lower() == 'true' else logging.INFO
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

db = SQLAlchemy(model_class=Base)

def create_app(testing: bool = False, test_config: dict = None):
    """Application factory.

    Side effects (DB create_all, sync scheduler start) are gated by config flags.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if testing:
        app.config['TESTING'] = True

    # Refresh env-dependent config at runtime.
    dev_mode = os.environ.get('DEV_MODE', '').lower() == 'true'
    app.config.update({
        'DEV_MODE': dev_mode,
        'DATABASE_URL': os.environ.get('DATABASE_URL'),
        'SECRET_KEY': os.environ.get('SECRET_KEY'),
        'SESSION_SECRET': os.environ.get('SESSION_SECRET'),
        'REMOTE_SYNC_URL': os.environ.get('REMOTE_SYNC_URL'),
        'REMOTE_SYNC_API_KEY': os.environ.get('REMOTE_SYNC_API_KEY'),
        'AUTO_CREATE_DB': os.environ.get("AUTO_CREATE_DB", "true" if dev_mode else "false").lower() == "true",
    })
    app.config["SQLALCHEMY_DATABASE_URI"] = app.config.get("DATABASE_URL")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    if test_config:
        app.config.update(test_config)

    # Security: Validate all required secrets before continuing.
    # In tests we allow missing required secrets.
    from utils.security import SecurityValidator

    raise_on_missing = not app.config.get('TESTING', False)
    security_results = SecurityValidator.validate_all_secrets(raise_on_missing_required=raise_on_missing)
    logger.info(
        "Security check passed: remote sync %s",
        "enabled" if security_results['sync_enabled'] else "disabled",
    )

    app.secret_key = app.config.get("SESSION_SECRET")
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    if not str(app.config["SQLALCHEMY_DATABASE_URI"] or '').startswith('sqlite'):
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_recycle": 300,
            "pool_pre_ping": True,
        }

    # Initialize the app with the extension
    db.init_app(app)

    # Decision engine and remote sync, shared by all requests
    from services.decision.decision_service import DecisionService
    from services.decision.weight_manager import WeightManager
    from services.remote_sync_client import RemoteSyncClient
    from services.sync_service import SyncService

    decision_service = DecisionService(WeightManager(app.config.get('WEIGHT_PRESETS_PATH')))
    sync_client = RemoteSyncClient(
        base_url=app.config.get('REMOTE_SYNC_URL') or '',
        api_key=app.config.get('REMOTE_SYNC_API_KEY') or '',
        table=app.config.get('REMOTE_SYNC_TABLE'),
        timeout=app.config.get('REMOTE_SYNC_TIMEOUT'),
    )
    sync_service = SyncService(
        app,
        client=sync_client,
        debounce_seconds=app.config.get('SYNC_DEBOUNCE_SECONDS'),
        weight_manager=decision_service.weight_manager,
    )
    app.extensions['decision_service'] = decision_service
    app.extensions['sync_service'] = sync_service

    # Import and register routes
    from routes.api_routes import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    with app.app_context():
        # Import models to ensure metadata is registered
        import models  # noqa: F401

        # Optional dev convenience: auto-create tables
        if app.config.get('AUTO_CREATE_DB', False):
            db.create_all()

    # Debounced pushes only run when the remote store is configured
    if sync_service.enabled and not app.config.get('TESTING', False):
        sync_service.start()
        atexit.register(sync_service.shutdown)

    logger.info("Application initialized successfully")

    return app

__all__ = ["create_app", "db"]
