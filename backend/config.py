import os


def _database_url():
    url = os.environ.get('DATABASE_URL')
    # Hosted Postgres hands out postgres:// which SQLAlchemy no longer accepts
    if url and url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]
    return url


def _engine_options(url):
    options = {'pool_pre_ping': True}
    if url and os.environ.get('APP_ENV') == 'production':
        options['connect_args'] = {'sslmode': 'require'}
    return options


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    DATABASE_URL = _database_url()
    # Session recording only runs when a database is configured
    RECORDING_ENABLED = bool(DATABASE_URL)
    SQLALCHEMY_DATABASE_URI = DATABASE_URL or 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(DATABASE_URL)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Shared secret for the read-only data dump. Unset disables it.
    DATA_PASSWORD = os.environ.get('DATA_PASSWORD')
    LEADERBOARD_LIMIT = int(os.environ.get('LEADERBOARD_LIMIT', '100'))
    SESSIONS_LIMIT = int(os.environ.get('SESSIONS_LIMIT', '1000'))
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173',
    ).split(',') if o.strip()]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    PORT = int(os.environ.get('PORT', '3000'))
