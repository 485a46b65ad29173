import logging
from logging.handlers import RotatingFileHandler
import os
from flask import Flask
from sqlalchemy import event
from .config import Config
from .models import db
from .store import SampleStore
from .lifecycle import LifecycleController
from .reviews import ReviewUpsertEngine


def configure_sqlite(engine):
    """Make SQLAlchemy, not pysqlite, emit BEGIN on SQLite connections.

    pysqlite defers BEGIN until the first write, which leaves no way to take
    the write lock up front. With our own BEGIN a connection checked out with
    the ``sqlite_begin`` execution option opens ``BEGIN IMMEDIATE``.
    Foreign keys are switched on for every connection as well.
    """
    @event.listens_for(engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _on_begin(conn):
        mode = conn.get_execution_options().get('sqlite_begin', 'DEFERRED')
        conn.exec_driver_sql(f'BEGIN {mode}')


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)

    from .routes import api_bp
    app.register_blueprint(api_bp)

    if not app.debug and not app.testing: # Don't use file logging for debug/test
        instance_path = app.config.get('INSTANCE_FOLDER_PATH', os.path.join(os.path.dirname(__file__), '..', 'instance'))
        if not os.path.exists(instance_path):
            try:
                os.makedirs(instance_path)
            except OSError:
                app.logger.error(f"Could not create instance folder at {instance_path} for logging.")

        if os.path.exists(instance_path):
            log_file = os.path.join(instance_path, 'app.log')

            file_handler = RotatingFileHandler(log_file, maxBytes=10240, backupCount=10)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
            ))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)

            app.logger.setLevel(logging.INFO)
            app.logger.info('Sample review service startup')

    with app.app_context():
        engine = db.engine
        if engine.dialect.name == 'sqlite':
            configure_sqlite(engine)
        db.create_all()

        # Services share the app's engine and pool; lifecycle work runs on the
        # request-scoped session, each review upsert on a session of its own.
        app.extensions['sample_review'] = {
            'lifecycle': LifecycleController(SampleStore(db.session)),
            'reviews': ReviewUpsertEngine(engine),
        }

    return app
