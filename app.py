import os

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, NotFound

from eduforce.domain.errors import BaseAppException
from eduforce.infrastructure.config import settings
from eduforce.infrastructure.database import init_app as init_db, get_db
from eduforce.services.ai_client import AIClient
from ef_utils.logger_utils import logger, set_log_level

# Import Blueprints
from eduforce.api.routes_auth import auth_bp, login_manager
from eduforce.api.routes_quiz import quiz_bp
from eduforce.api.routes_student import student_bp


def create_app(db=None, ai_client=None):
    """
    Application factory for Flask.

    `db` and `ai_client` may be injected (tests); otherwise a Mongo database
    is opened from MONGO_URI and an AI client is built from settings.
    """
    app = Flask(__name__)
    set_log_level(settings.LOG_LEVEL)

    # --- Core Configuration ---
    app.config.from_object(settings)
    app.config['SECRET_KEY'] = settings.SECRET_KEY
    app.config['MONGO_URI'] = settings.MONGO_URI
    app.config['MAX_CONTENT_LENGTH'] = settings.MAX_PDF_BYTES * 2
    app.config['JSON_AS_ASCII'] = False

    # --- Security Configuration ---
    app.config['SESSION_COOKIE_SECURE'] = settings.FLASK_ENV == 'production'
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(',')] if settings.CORS_ORIGINS != '*' else '*'
    CORS(app, resources={r"/api/*": {"origins": origins}}, supports_credentials=True)

    # --- Initialize Extensions ---
    init_db(app, db, create_indexes=settings.MONGO_ENSURE_INDEXES)
    app.extensions['ai_client'] = ai_client or AIClient.from_settings(settings)
    login_manager.init_app(app)

    # --- Blueprints Registration ---
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(quiz_bp, url_prefix='/api/quizzes')
    app.register_blueprint(student_bp, url_prefix='/api/student-quizzes')

    # --- Request Hooks ---
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['Referrer-Policy'] = 'no-referrer'
        return response

    # --- Health Checks ---
    @app.route('/health')
    def health_check():
        return jsonify({"status": "healthy"}), 200

    @app.route('/health/detailed')
    def detailed_health_check():
        health_status = {"status": "healthy", "components": {}}
        try:
            get_db().command('ping')
            health_status["components"]["mongodb"] = {"status": "healthy"}
        except Exception as e:
            health_status["components"]["mongodb"] = {"status": "unhealthy", "error": str(e)}
            health_status["status"] = "unhealthy"
        health_status["components"]["ai"] = {"provider": settings.EF_DEFAULT_PROVIDER}
        return jsonify(health_status), 503 if health_status["status"] == "unhealthy" else 200

    # --- Error Handling ---
    @app.errorhandler(BaseAppException)
    def handle_app_exception(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__} for path {request.path}: {error.message}", exc_info=error)
        else:
            logger.warning(f"{type(error).__name__} for path {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(NotFound)
    def handle_not_found(error):
        logger.warning(f"Not Found error for path: {request.path}")
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        logger.error(f"Unhandled exception for path {request.path}: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error"}), 500

    logger.info(f"Flask App created successfully in {settings.FLASK_ENV} mode.")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=int(os.environ.get("PORT", 5000)), debug=settings.DEBUG)
