"""Flask application factory."""
import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from qms.database import init_db


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    logging.getLogger('qms').setLevel(level)
    app.logger.setLevel(level)


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    _configure_logging(app)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Prometheus request metrics
    from qms.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Behind a reverse proxy in production
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    init_db(app)

    from qms.middleware import load_current_user

    @app.before_request
    def before_request_handler():
        """Resolve the bearer token (if any) into g.user."""
        load_current_user()

    # Error Handlers
    from qms.exceptions import QmsError

    @app.errorhandler(QmsError)
    def handle_qms_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"QmsError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"QmsError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from qms.blueprints.main import main_bp
    from qms.blueprints.metrics import metrics_bp
    from qms.blueprints.auth import auth_bp
    from qms.blueprints.clients import clients_bp
    from qms.blueprints.quotations import quotations_bp
    from qms.blueprints.price_information import price_information_bp
    from qms.blueprints.settings import settings_bp
    from qms.blueprints.reports import reports_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(price_information_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(reports_bp)

    from qms.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
