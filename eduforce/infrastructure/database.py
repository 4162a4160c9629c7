from flask import current_app, g
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from werkzeug.local import LocalProxy

from ef_utils.logger_utils import logger


def get_db() -> Database:
    """
    Returns the MongoDB database for the current app.
    Uses Flask's application context to manage the connection.
    """
    if 'db' not in g:
        injected = current_app.extensions.get('mongo_db')
        if injected is not None:
            g.db = injected
        else:
            if 'mongo_client' not in current_app.extensions:
                current_app.extensions['mongo_client'] = MongoClient(current_app.config['MONGO_URI'])

            # The database name is expected to be part of the MONGO_URI
            # e.g., mongodb://host:port/dbname
            g.db = current_app.extensions['mongo_client'].get_database()

    return g.db


def ensure_indexes(db: Database) -> None:
    """
    Create the indexes the data model relies on.

    The compound unique index on quiz_attempts is what enforces one attempt
    per (student, quiz); the application-level pre-check only gives a nicer
    early error.
    """
    db.users.create_index([("email", ASCENDING)], unique=True, name="uniq_email")
    db.quizzes.create_index([("quiz_code", ASCENDING)], unique=True, name="uniq_quiz_code")
    db.quizzes.create_index([("teacher_id", ASCENDING), ("created_at", ASCENDING)], name="teacher_quizzes")
    db.quiz_attempts.create_index(
        [("student_id", ASCENDING), ("quiz_id", ASCENDING)],
        unique=True,
        name="uniq_student_quiz",
    )
    db.quiz_attempts.create_index([("quiz_id", ASCENDING)], name="quiz_attempts_by_quiz")
    logger.info("MongoDB indexes ensured")


def init_app(app, db: Database = None, create_indexes: bool = True):
    """Initialize the database with the Flask app."""
    if db is not None:
        app.extensions['mongo_db'] = db

    if create_indexes:
        with app.app_context():
            ensure_indexes(get_db())

    # Close the database connection when the app context tears down
    @app.teardown_appcontext
    def close_db(exception):
        g.pop('db', None)
        # Note: We don't close the client here as it's shared via extensions


# Resolved lazily so tests can patch get_db.
db = LocalProxy(lambda: get_db())
