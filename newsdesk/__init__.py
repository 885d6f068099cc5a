from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from config import config_dict
import os
import time
from logging.config import dictConfig
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration


db = SQLAlchemy()


def try_connect_db(app, retries=3):
    for attempt in range(retries):
        try:
            with app.app_context():
                with db.engine.connect():
                    return True
        except Exception as e:
            app.logger.error(f"Database connection attempt {attempt + 1} failed: {e}")
            time.sleep(1)
    return False


def create_app(config_name=None):
    env = config_name or os.getenv('FLASK_ENV', 'development')
    config_class = config_dict.get(env, config_dict['default'])

    dictConfig(config_class.LOGGING_CONFIG)

    # Sentry in production only
    if env == 'production' and config_class.SENTRY_DSN:
        sentry_sdk.init(
            dsn=config_class.SENTRY_DSN,
            integrations=[FlaskIntegration()],
            traces_sample_rate=1.0,
        )

    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)

    if app.config['STORE_BACKEND'] == 'sqlalchemy':
        # The key-value table is the only schema the newsdesk needs
        from newsdesk import models  # noqa: F401
        with app.app_context():
            db.create_all()
        if not app.config.get('TESTING') and not try_connect_db(app):
            raise RuntimeError("Could not establish database connection")

    from newsdesk.services import init_services
    init_services(app)

    from newsdesk.commands import init_commands
    init_commands(app)

    app.logger.info(f"Newsdesk started (env={env}, store={app.config['STORE_BACKEND']})")
    return app
