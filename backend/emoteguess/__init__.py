from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config, **collaborators):
    """Application factory.

    ``collaborators`` override the controller's emote source, resolver,
    chat adapter, ledger or rng (tests pass fakes here).
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from emoteguess.main import main
    flask_app.register_blueprint(main)

    from emoteguess.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    from emoteguess.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    from emoteguess.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from emoteguess.services.game.controller import init_controller
    init_controller(flask_app, **collaborators)

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        import emoteguess.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('leaderboard-clear')
    @click.option('--scope', default='global', show_default=True, help="Channel login or 'global'.")
    def leaderboard_clear_command(scope):
        """Deletes every leaderboard entry in one scope."""
        from emoteguess.errors import PersistenceError
        from emoteguess.services.game.ledger import Ledger
        with flask_app.app_context():
            try:
                deleted = Ledger(flask_app.logger).clear(scope)
            except PersistenceError as exc:
                raise click.ClickException(str(exc))
            print(f'Cleared {deleted} entries from {scope}.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(leaderboard_clear_command)

    return flask_app
