import os
import secrets
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

PACKAGE_DIR = os.path.dirname(__file__)


class Config:
    """Base configuration."""
    # Flask
    SECRET_KEY = os.environ.get('FLASK_SECRET_KEY') or secrets.token_hex(32)

    # Public host used in verification links
    HOSTNAME = os.environ.get('DAILYHI_HOSTNAME', 'dailyhi.com')

    # Database
    DATA_DIR = os.environ.get('DAILYHI_DATA_DIR') or os.path.abspath(os.path.join(PACKAGE_DIR, '..', 'data'))

    # Get DATABASE_URL from environment (Render provides this)
    DATABASE_URL = os.environ.get('DATABASE_URL')

    if DATABASE_URL:
        # Render uses postgres:// but SQLAlchemy needs postgresql://
        if DATABASE_URL.startswith('postgres://'):
            DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)
        SQLALCHEMY_DATABASE_URI = DATABASE_URL
    else:
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{os.path.join(DATA_DIR, 'dailyhi.db')}"

    # SQLAlchemy settings
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Mail
    MAIL_FROM = os.environ.get('MAIL_FROM', 'The Daily Hi <hi@dailyhi.com>')
    MAIL_TRANSPORT = os.environ.get('MAIL_TRANSPORT', 'smtp')
    SMTP_HOST = os.environ.get('SMTP_HOST', 'localhost')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', 25))
    SMTP_USER = os.environ.get('SMTP_USER')
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD')
    SMTP_USE_TLS = os.environ.get('SMTP_USE_TLS', 'false').lower() == 'true'

    # Timeouts (seconds)
    SEND_TIMEOUT_SECONDS = float(os.environ.get('SEND_TIMEOUT_SECONDS', 30))
    CONTENT_TIMEOUT_SECONDS = float(os.environ.get('CONTENT_TIMEOUT_SECONDS', 20))
    DNS_TIMEOUT_SECONDS = float(os.environ.get('DNS_TIMEOUT_SECONDS', 5))

    # Delivery
    DELIVERY_HOUR = 6  # 6 AM local time
    DEFAULT_TIMEZONE_OFFSET = -8  # Pacific
    WEEKLY_FACT_WEEKDAY = 6  # Sunday, datetime.weekday() numbering
    DISPATCH_WORKERS = int(os.environ.get('DISPATCH_WORKERS', 4))
    DELIVERY_BATCH_SIZE = int(os.environ.get('DELIVERY_BATCH_SIZE', 100))

    # Content
    # Media RSS feed whose entries carry a Creative Commons license and a publish date
    PHOTO_FEED_URL = os.environ.get('PHOTO_FEED_URL', '')
    PHOTO_LICENSES = tuple(
        os.environ.get(
            'PHOTO_LICENSES',
            'creativecommons.org/licenses/by/,'
            'creativecommons.org/licenses/by-sa/,'
            'creativecommons.org/licenses/by-nd/'
        ).split(',')
    )
    PHOTO_MAX_AGE_HOURS = int(os.environ.get('PHOTO_MAX_AGE_HOURS', 24))
    FACTS_FILE = os.environ.get('FACTS_FILE', os.path.join(PACKAGE_DIR, 'data', 'facts.txt'))
    WEEKLY_FACTS_FILE = os.environ.get('WEEKLY_FACTS_FILE',
                                       os.path.join(PACKAGE_DIR, 'data', 'weekly_facts.txt'))

    @classmethod
    def init_app(cls, app):
        """Initialize application configuration."""
        os.makedirs(cls.DATA_DIR, exist_ok=True)
        app.config.from_object(cls)

        if app.config['MAIL_TRANSPORT'] == 'smtp' and not cls.SMTP_HOST:
            app.logger.warning("SMTP host not set!")

        if not cls.PHOTO_FEED_URL:
            app.logger.info("PHOTO_FEED_URL not set, digests go out without a photo")


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    HOSTNAME = os.environ.get('DAILYHI_HOSTNAME', 'localhost:3000')
    MAIL_TRANSPORT = os.environ.get('MAIL_TRANSPORT', 'console')

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
    }


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    HOSTNAME = 'localhost:3000'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    MAIL_TRANSPORT = 'console'
    DISPATCH_WORKERS = 2
    DELIVERY_BATCH_SIZE = 2


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_size': 10,
        'max_overflow': 20,
    }

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        if not os.environ.get('FLASK_SECRET_KEY'):
            app.logger.error("SECRET_KEY not set!")

        if not cls.DATABASE_URL:
            app.logger.warning("DATABASE_URL not set, falling back to local sqlite")

        # Log database connection info (sanitized)
        if cls.DATABASE_URL:
            from urllib.parse import urlparse
            try:
                parsed = urlparse(cls.SQLALCHEMY_DATABASE_URI)
                safe_uri = f"{parsed.scheme}://{parsed.hostname}:{parsed.port}{parsed.path}"
                app.logger.info(f"Production database: {safe_uri}")
            except ValueError as e:
                app.logger.warning(f"Could not parse database URI: {e}")


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
