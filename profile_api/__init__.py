from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
limiter = Limiter(key_func=get_remote_address, storage_uri='memory://')


def create_app(config_name='development', overrides=None):
    app = Flask(__name__)

    # Config
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv(
        'DATABASE_URL',
        'sqlite:///profiles.db'
    )
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', 86400))
    app.config['APP_NAME'] = os.getenv('APP_NAME', 'Profiles')

    # Verification challenges
    app.config['CHALLENGE_HASH_KEY'] = os.getenv('CHALLENGE_HASH_KEY', app.config['JWT_SECRET_KEY'])
    app.config['CHALLENGE_CODE_TTL_MINUTES'] = int(os.getenv('CHALLENGE_CODE_TTL_MINUTES', 10))
    app.config['TWO_FACTOR_LOGIN_TTL_MINUTES'] = int(os.getenv('TWO_FACTOR_LOGIN_TTL_MINUTES', 5))

    # Delivery: console | communications | direct
    app.config['DELIVERY_BACKEND'] = os.getenv('DELIVERY_BACKEND', 'console')
    app.config['COMMUNICATIONS_MS_URL'] = os.getenv('COMMUNICATIONS_MS_URL', 'http://localhost:8080')
    app.config['DELIVERY_TIMEOUT'] = float(os.getenv('DELIVERY_TIMEOUT', 10))

    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
        app.config['RATELIMIT_ENABLED'] = False

    if overrides:
        app.config.update(overrides)

    # Initialize extensions
    db.init_app(app)
    limiter.init_app(app)
    CORS(app)

    from profile_api.services.delivery import build_delivery_channel
    app.extensions['delivery_channel'] = build_delivery_channel(app.config)

    # Create tables with error handling
    with app.app_context():
        from profile_api import models  # noqa: F401
        try:
            db.create_all()
        except Exception as e:
            app.logger.warning(f"Could not create database tables: {e}")

    # Register routes
    from profile_api.routes import register_routes
    register_routes(app)

    # Health check
    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200

    return app
