"""
Flask application factory for Closure Audit.
"""
from flask import Flask
import logging

from config import config

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def create_app(config_name='default'):
    """
    Application factory pattern.

    Args:
        config_name: Configuration name (for future environments)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    # App configuration
    app.config['SECRET_KEY'] = config.web.secret_key
    app.config['MAX_CONTENT_LENGTH'] = config.web.max_content_length
    app.json.sort_keys = False

    # Register blueprints
    from web.views import bp as main_bp
    app.register_blueprint(main_bp)

    app.logger.info(f"[APP] Closure Audit API ready (max upload {config.web.max_upload_mb} MB)")
    return app
