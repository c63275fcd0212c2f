from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
socketio = SocketIO(async_mode=None)

STORE_KEY = 'recording_store'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from vaultgate.main import main
    flask_app.register_blueprint(main)

    from vaultgate.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from vaultgate.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    if flask_app.config.get('RECORDING_ENABLED'):
        from vaultgate.services.recording import RecordingStore
        with flask_app.app_context():
            store = RecordingStore(db.engine)
            # SchemaInitError propagates: a recorder without tables must not boot
            store.init_schema()
        flask_app.extensions[STORE_KEY] = store
        flask_app.logger.info('[startup] session recording enabled')
    else:
        flask_app.logger.warning('[startup] DATABASE_URL not set, session recording disabled')

    @click.command('init-db')
    def init_db_command():
        """Creates the recording tables and indexes if they are missing."""
        from vaultgate.services.recording import RecordingStore
        with flask_app.app_context():
            RecordingStore(db.engine).init_schema()
        click.echo('Recording schema is ready.')

    flask_app.cli.add_command(init_db_command)

    return flask_app


def get_store():
    """Return the app's RecordingStore, or None when recording is disabled."""
    return current_app.extensions.get(STORE_KEY)


def dispose_store(flask_app) -> None:
    store = flask_app.extensions.pop(STORE_KEY, None)
    if store is not None:
        store.dispose()
