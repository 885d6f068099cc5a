from dotenv import load_dotenv
import os

load_dotenv()


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///newsdesk.db')

    if SQLALCHEMY_DATABASE_URI.startswith('postgres://'):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    LOGGING_CONFIG = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': 'INFO',
                'formatter': 'default',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': 'INFO',
        }
    }

    # Durable store: 'sqlalchemy', 'redis' or 'memory'
    STORE_BACKEND = os.getenv('STORE_BACKEND', 'sqlalchemy').lower()
    STORE_KEY_PREFIX = os.getenv('STORE_KEY_PREFIX', 'newsdesk:')
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

    DB_RETRY_ATTEMPTS = int(os.getenv('DB_RETRY_ATTEMPTS', '3'))
    DB_RETRY_DELAY = float(os.getenv('DB_RETRY_DELAY', '1'))  # seconds

    # Moderation: 'auto' uses the LLM when a key is configured, else rules
    MODERATION_STRATEGY = os.getenv('MODERATION_STRATEGY', 'auto').lower()
    # Per attempt, shared by OpenAI and the Anthropic fallback
    MODERATION_TIMEOUT_SECONDS = float(os.getenv('MODERATION_TIMEOUT_SECONDS', '10'))
    MODERATION_MAX_ATTEMPTS = int(os.getenv('MODERATION_MAX_ATTEMPTS', '1'))
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    ANTHROPIC_API_KEY = os.getenv('ANTHROPIC_API_KEY')
    OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
    ANTHROPIC_MODEL = os.getenv('ANTHROPIC_MODEL', 'claude-3-haiku-20240307')

    # Bookmark owner for signed-out readers; generated once and stored when unset
    DEVICE_ID = os.getenv('DEVICE_ID')

    SENTRY_DSN = os.getenv('SENTRY_DSN')


class DevelopmentConfig(Config):
    FLASK_ENV = 'development'
    DEBUG = True


class ProductionConfig(Config):
    FLASK_ENV = 'production'
    DEBUG = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_size': 5,
        'max_overflow': 10,
        'pool_timeout': 30,
    }


class TestingConfig(Config):
    FLASK_ENV = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}
    STORE_BACKEND = 'sqlalchemy'
    MODERATION_STRATEGY = 'rules'
    DB_RETRY_DELAY = 0


# Dictionary to easily access configurations
config_dict = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
