from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def allowed_origins(config):
    origins = [config.get('FRONTEND_URL') or 'http://localhost:3000']
    origins += [o for o in config.get('CORS_ORIGINS') or [] if o not in origins]
    return origins


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    origins = allowed_origins(flask_app.config)
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Import and register blueprints here
    from lessonsync.main import main
    flask_app.register_blueprint(main)

    from lessonsync.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/session')

    # Real-time core, shared by socket handlers and HTTP routes
    from lessonsync.realtime import SessionCoordinator
    from lessonsync.realtime.speech import GoogleSpeechRecognizer, GoogleTranslator
    from lessonsync.socketio_events import SocketIOTransport, register_socketio_handlers

    coordinator = SessionCoordinator(
        transport=SocketIOTransport(socketio),
        recognizer=GoogleSpeechRecognizer(spawn=socketio.start_background_task, logger=flask_app.logger),
        translator=GoogleTranslator(flask_app.config.get('GOOGLE_CLOUD_PROJECT_ID')),
        spawn=socketio.start_background_task,
        sleep=socketio.sleep,
        tick_interval=flask_app.config.get('TIMER_TICK_SEC', 1.0),
        idle_ttl=flask_app.config.get('SESSION_IDLE_TTL_SEC', 6 * 60 * 60),
        objective_max_length=flask_app.config.get('OBJECTIVE_MAX_LENGTH', 0),
        default_language=flask_app.config.get('SPEECH_DEFAULT_LANGUAGE', 'en-US'),
        encoding=flask_app.config.get('SPEECH_AUDIO_ENCODING', 'LINEAR16'),
        sample_rate_hz=flask_app.config.get('SPEECH_SAMPLE_RATE_HZ', 16000),
        logger=flask_app.logger,
    )
    flask_app.extensions['lessonsync'] = coordinator

    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    sweep_interval = int(flask_app.config.get('SESSION_SWEEP_INTERVAL_SEC', 0))
    if sweep_interval > 0 and not flask_app.config.get('TESTING'):
        socketio.start_background_task(coordinator.sweep_forever, sweep_interval)
        flask_app.logger.info(f"[session-sweep] interval={sweep_interval}s")

    @flask_app.errorhandler(404)
    def not_found(_exc):
        return jsonify({'error': 'Not found'}), 404

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        import lessonsync.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
