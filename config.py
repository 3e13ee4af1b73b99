"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False
    JSON_SORT_KEYS = False

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Authentication (bearer tokens)
    JWT_SECRET = os.getenv('JWT_SECRET', 'changeme')
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_DAYS = int(os.getenv('JWT_EXPIRES_DAYS', '7'))

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'qms')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'qms')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'qms')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', '0') == '1'

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '20'))
    MAX_PAGE_SIZE = int(os.getenv('MAX_PAGE_SIZE', '100'))

    # Quotation defaults (used when settings table has no value)
    QUOTE_VALID_DAYS = int(os.getenv('QUOTE_VALID_DAYS', '30'))
    DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'USD')
    DEFAULT_TAX_RATE = os.getenv('DEFAULT_TAX_RATE', '0.00')

    # Business Information (for quotations/invoices)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'QMS Inc.')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')

    # Seed admin (flask seed)
    SEED_ADMIN_EMAIL = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    SEED_ADMIN_PASSWORD = os.getenv('SEED_ADMIN_PASSWORD', 'admin123')


class TestingConfig(Config):
    """Configuration used by the test suite (in-memory SQLite)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    JWT_SECRET = 'test-secret'
    LOG_LEVEL = 'WARNING'
