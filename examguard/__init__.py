"""
ExamGuard Core Service Application Factory
"""
import logging
from flask import Flask
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """Create and configure the Flask application"""
    from examguard.config import settings
    from examguard.errors import register_error_handlers
    from examguard.utils.logging_config import setup_logging

    app = Flask(__name__)

    # Configuration
    app.config.from_mapping(settings.model_dump())
    app.config['SECRET_KEY'] = settings.JWT_SECRET
    app.config['SQLALCHEMY_DATABASE_URI'] = settings.DATABASE_URL
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    if test_config:
        app.config.update(test_config)
        if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
            app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {}

    if not app.config.get('TESTING'):
        setup_logging(
            service_name="examguard",
            level=app.config['LOG_LEVEL'],
            log_to_file=app.config['LOG_TO_FILE'],
            log_dir=app.config.get('LOG_DIR')
        )

    uri = app.config['SQLALCHEMY_DATABASE_URI']
    logger.info(f"[Database] Using {uri.split('@')[1] if '@' in uri else uri}")

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    CORS(app, resources={r"/api/*": {"origins": "*"}})
    register_error_handlers(app)

    # Register blueprints
    from examguard.routes.exams import exams_bp
    from examguard.routes.attempts import attempts_bp
    from examguard.routes.questions import questions_bp

    app.register_blueprint(attempts_bp)
    app.register_blueprint(exams_bp)
    app.register_blueprint(questions_bp)

    from examguard.services.attempt_lifecycle import AttemptLifecycleManager
    app.extensions["attempt_lifecycle"] = AttemptLifecycleManager.from_config(app.config)

    # Import models for table creation
    from examguard.models.exam import Exam, Question, ExamQuestion, ExamAssignment
    from examguard.models.exam_attempt import ExamAttempt, ProctoringLog
    from examguard.models.notification import Notification

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy', 'service': 'examguard-core'}

    # Create tables
    with app.app_context():
        db.create_all()

    return app
