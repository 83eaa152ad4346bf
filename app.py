import logging
import os
from datetime import timedelta

from flask import Flask, jsonify, request, send_from_directory
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

import config
from auth import auth_bp, login_manager
from client_routes import client_bp
from errors import LedgerError
from models import db
from vendor_routes import vendor_bp

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------------
# 1. Flask app
# --------------------------------------------------------------------------------
def create_app(test_config=None):
    app = Flask(__name__)
    # behind a proxy (Render, nginx, Replit) remote_addr and url_root come from X-Forwarded-*
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    app.secret_key = config.SESSION_SECRET
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=config.SESSION_LIFETIME_DAYS)
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SECURE'] = os.getenv("FLASK_ENV", "").strip() == "production"
    app.config['SQLALCHEMY_DATABASE_URI'] = config.DATABASE_URL
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['UPLOAD_FOLDER'] = os.path.abspath(config.UPLOAD_FOLDER)
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_UPLOAD_MB * 1024 * 1024
    app.config['ANALYTICS_CONCURRENT_COUNTS'] = config.ANALYTICS_CONCURRENT_COUNTS
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # 2. DB + login
    db.init_app(app)
    login_manager.init_app(app)

    # 3. Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(client_bp)
    app.register_blueprint(vendor_bp)

    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    register_error_handlers(app)

    with app.app_context():
        db.create_all()
    return app


# --------------------------------------------------------------------------------
# 4. Errors -> JSON
# --------------------------------------------------------------------------------
def register_error_handlers(app):

    @app.errorhandler(LedgerError)
    def handle_ledger_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        db.session.rollback()
        logger.exception("Unhandled database error on %s", request.path)
        return jsonify({"message": "Database error"}), 500

    @app.errorhandler(413)
    def handle_too_large(e):
        return jsonify({"message": "File too large (max %d MB)" % config.MAX_UPLOAD_MB}), 413

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if not request.path.startswith('/api/'):
            return e
        return jsonify({"message": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("Unhandled error on %s", request.path)
        return jsonify({"message": "Internal server error"}), 500


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG", "") == "1")
