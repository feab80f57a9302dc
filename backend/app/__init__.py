from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
import time
from config import Config

__version__ = '1.0.0'

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)
started_at = time.time()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper())

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import and register blueprints here
    from app.main import main
    flask_app.register_blueprint(main)

    from app.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from app.api.games import games, stats
    flask_app.register_blueprint(games, url_prefix='/api/games')
    flask_app.register_blueprint(stats, url_prefix='/api')

    from app.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from app.errors import GameError, StateConflict, StorageUnavailable

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        # Conflicts are an expected outcome of racing clients, not faults
        if isinstance(exc, StorageUnavailable):
            flask_app.logger.error(f"[error] {exc.code}: {exc.message}")
        elif not isinstance(exc, StateConflict):
            flask_app.logger.info(f"[error] {exc.code}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    # Flask-Login user loader
    from app.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required', 'code': 'unauthorized'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
