# config.py

""" Configuration settings for the clinic admin backend """
import os
from dotenv import load_dotenv

load_dotenv()


def _database_url():
    """Build the SQLAlchemy URL from DATABASE_URL or the POSTGRES_* variables"""
    url = os.environ.get('DATABASE_URL')
    if url:
        # Some providers still hand out the deprecated scheme
        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql+psycopg2://', 1)
        return url

    host = os.environ.get('POSTGRES_HOST')
    user = os.environ.get('POSTGRES_USER')
    database = os.environ.get('POSTGRES_DB')
    if not host or not user or not database:
        return None

    port = os.environ.get('POSTGRES_PORT', '5432')
    password = os.environ.get('POSTGRES_PASSWORD', '')
    credentials = f'{user}:{password}' if password else user
    return f'postgresql+psycopg2://{credentials}@{host}:{port}/{database}'


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'
    JSON_SORT_KEYS = False
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')
        if origin.strip()
    ]

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Google Calendar - token JSON may be inlined or stored on disk
    GOOGLE_CALENDAR_TOKEN_JSON = os.environ.get('GOOGLE_CALENDAR_TOKEN_JSON')
    GOOGLE_CALENDAR_TOKEN_PATH = os.environ.get('GOOGLE_CALENDAR_TOKEN_PATH', 'credentials/token.json')
    TIMEZONE = os.environ.get('TIMEZONE', 'America/Sao_Paulo')

    # WhatsApp (Evolution API)
    BASE_URL_EVO = os.environ.get('BASE_URL_EVO', '')
    API_KEY_EVO = os.environ.get('API_KEY_EVO', '')
    INSTANCE_NAME = os.environ.get('INSTANCE_NAME', '')

    # Reminder scheduler
    BASE_URL_SCHEDULER = os.environ.get('BASE_URL_SCHEDULER', '')
    API_TOKEN_SCHEDULER = os.environ.get('API_TOKEN_SCHEDULER', '')
    WEBHOOK_URL_SCHEDULER = os.environ.get('WEBHOOK_URL_SCHEDULER', '')
    REMINDER_LEAD_HOURS = int(os.environ.get('REMINDER_LEAD_HOURS', 1))
    EXTERNAL_TIMEOUT_SECONDS = int(os.environ.get('EXTERNAL_TIMEOUT_SECONDS', 10))

    # Embeddings
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    EMBEDDING_MODEL = os.environ.get('EMBEDDING_MODEL', 'text-embedding-3-small')
    EMBEDDING_DIMENSIONS = int(os.environ.get('EMBEDDING_DIMENSIONS', 1536))
    DEFAULT_CHUNK_SIZE = 800
    MIN_CHUNK_SIZE = 400
    MAX_CHUNK_SIZE = 1500

    # Media files
    FILES_BASE_DIR = os.environ.get('FILES_BASE_DIR', './public/files')
    FILES_BASE_URL = os.environ.get('FILES_BASE_URL', '')
    MAX_FILE_SIZE = 16 * 1024 * 1024  # 16MB

    # Costs
    EXCHANGE_RATE_URL = os.environ.get('EXCHANGE_RATE_URL', 'https://economia.awesomeapi.com.br/last/USD-BRL')
    EXCHANGE_RATE_TTL_SECONDS = int(os.environ.get('EXCHANGE_RATE_TTL_SECONDS', 3600))
    EXCHANGE_RATE_FALLBACK = float(os.environ.get('EXCHANGE_RATE_FALLBACK', 5.0))
    EXCHANGE_RATE_TIMEOUT_SECONDS = 5

    # System Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Booking defaults
    DEFAULT_APPOINTMENT_NOTE = 'Agendado pelo painel admin'
    REMINDER_MESSAGE = (
        'Olá! Passando para lembrar da sua consulta.\n'
        'Se houver qualquer imprevisto, entre em contato com o consultório.\n'
        'Tenha um ótimo dia! 😊'
    )

    @classmethod
    def validate_config(cls):
        """Validate required configuration"""
        required_vars = [
            'SQLALCHEMY_DATABASE_URI',
        ]

        missing_vars = [var for var in required_vars if not getattr(cls, var)]

        if missing_vars:
            from clinic_admin.utils.exceptions import ConfigurationError
            raise ConfigurationError(
                f"Missing required environment variables: {missing_vars}. "
                "Set DATABASE_URL or POSTGRES_HOST, POSTGRES_USER, POSTGRES_DB"
            )

    @classmethod
    def integration_status(cls):
        """Report which external integrations are configured"""
        return {
            'google_calendar': 'configured' if (
                cls.GOOGLE_CALENDAR_TOKEN_JSON or os.path.exists(cls.GOOGLE_CALENDAR_TOKEN_PATH)
            ) else 'not_configured',
            'whatsapp': 'configured' if (
                cls.BASE_URL_EVO and cls.API_KEY_EVO and cls.INSTANCE_NAME
            ) else 'not_configured',
            'reminder_scheduler': 'configured' if (
                cls.BASE_URL_SCHEDULER and cls.API_TOKEN_SCHEDULER and cls.WEBHOOK_URL_SCHEDULER
            ) else 'not_configured',
            'embeddings': 'configured' if cls.OPENAI_API_KEY else 'not_configured',
            'file_storage': 'configured' if cls.FILES_BASE_URL else 'not_configured',
        }

class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'

class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    LOG_LEVEL = 'INFO'

    # Override with production values
    SECRET_KEY = os.environ.get('SECRET_KEY')  # Must be set in production

    @classmethod
    def validate_config(cls):
        """Additional validation for production"""
        super().validate_config()

        if not cls.SECRET_KEY or cls.SECRET_KEY == 'dev-key-change-in-production':
            from clinic_admin.utils.exceptions import ConfigurationError
            raise ConfigurationError("SECRET_KEY must be set to a secure value in production")

class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    LOG_LEVEL = 'DEBUG'

    # Use test-specific values
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    FILES_BASE_URL = 'https://files.test'
    BASE_URL_EVO = 'https://evo.test'
    API_KEY_EVO = 'test-key'
    INSTANCE_NAME = 'clinic'
    BASE_URL_SCHEDULER = 'https://scheduler.test'
    API_TOKEN_SCHEDULER = 'test-token'
    WEBHOOK_URL_SCHEDULER = 'https://admin.test/api/scheduler/webhook'

# Configuration factory
def get_config():
    """Get configuration based on environment"""
    env = os.environ.get('FLASK_ENV', 'development').lower()

    if env == 'production':
        return ProductionConfig
    elif env == 'testing':
        return TestingConfig
    else:
        return DevelopmentConfig
