from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or Config.CORS_ORIGINS

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from livequiz.main import main
    flask_app.register_blueprint(main)

    from livequiz.api.rooms import rooms
    from livequiz.api.activations import activations
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')
    flask_app.register_blueprint(activations, url_prefix='/api')

    from livequiz.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo room."""
        from livequiz.models import Room, Activation
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            room = Room(name='Demo room')
            db.session.add(room)
            db.session.flush()
            db.session.add(Activation(
                room_id=room.id,
                type='multiple_choice',
                question='What is the capital of France?',
                options=[{'id': 'a', 'text': 'Paris'}, {'id': 'b', 'text': 'Lyon'}],
                correct_answer='Paris',
                time_limit=30,
            ))
            db.session.add(Activation(
                room_id=room.id,
                type='poll',
                question='Pick a snack',
                options=[{'id': 'p1', 'text': 'Popcorn'}, {'id': 'p2', 'text': 'Pretzels'}],
            ))
            db.session.commit()
            print(f'Database has been reset and seeded! Room code: {room.room_code}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
