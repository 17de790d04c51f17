"""
Configuration management for Puzzle Craft.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: str = '') -> list:
    return [item.strip() for item in os.getenv(name, default).split(',') if item.strip()]


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shopify app credentials
    SHOPIFY_API_KEY = os.getenv('SHOPIFY_API_KEY', '')
    SHOPIFY_API_SECRET = os.getenv('SHOPIFY_API_SECRET', '')
    SHOPIFY_API_VERSION = os.getenv('SHOPIFY_API_VERSION', '2025-01')
    SHOPIFY_AUTH_DEV_MODE = os.getenv('SHOPIFY_AUTH_DEV_MODE') == 'true'

    # Metafields read by the storefront widget and theme extension
    METAFIELD_NAMESPACE = 'puzzle_craft'
    DISCOUNT_CODES_NAMESPACE = 'codes'
    DISCOUNT_CODES_KEY = 'puzzle_craft_discount_codes'

    # Discount code registry
    # Fewer than this share of cached codes still live in Shopify => rewrite cache
    DISCOUNT_CACHE_REFRESH_THRESHOLD = float(os.getenv('DISCOUNT_CACHE_REFRESH_THRESHOLD', '0.5'))
    DISCOUNT_CODE_VALIDITY_DAYS = int(os.getenv('DISCOUNT_CODE_VALIDITY_DAYS', '365'))

    # Campaign activation retries on a concurrent activation race
    CAMPAIGN_ACTIVATE_RETRIES = int(os.getenv('CAMPAIGN_ACTIVATE_RETRIES', '3'))

    # Storefront widget API
    STOREFRONT_ALLOWED_ORIGINS = _env_list(
        'STOREFRONT_ALLOWED_ORIGINS',
        'https://jigsaw-craft.myshopify.com,http://localhost:3000,http://127.0.0.1:3000'
    )
    STOREFRONT_CACHE_TIMEOUT = int(os.getenv('STOREFRONT_CACHE_TIMEOUT', '60'))

    # Admin frontend origins
    ADMIN_ALLOWED_ORIGINS = _env_list(
        'ADMIN_ALLOWED_ORIGINS',
        'https://admin.shopify.com,http://localhost:5173,http://127.0.0.1:5173'
    )

    # Campaign image uploads (S3)
    AWS_S3_BUCKET_NAME = os.getenv('AWS_S3_BUCKET_NAME', '')
    AWS_REGION = os.getenv('AWS_REGION', 'us-east-1')
    AWS_ACCESS_KEY_ID = os.getenv('AWS_ACCESS_KEY_ID', '')
    AWS_SECRET_ACCESS_KEY = os.getenv('AWS_SECRET_ACCESS_KEY', '')
    S3_UPLOAD_PREFIX = 'puzzle_craft/uploads'
    MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SHOPIFY_AUTH_DEV_MODE = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///puzzlecraft_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, too short or an obvious placeholder
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        lower_key = cls._secret_key.lower()
        for pattern in ('dev', 'change', 'default', 'secret'):
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError("CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!")

        return cls._secret_key

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SHOPIFY_API_KEY = 'test-api-key'
    SHOPIFY_API_SECRET = 'test-api-secret'
    SHOPIFY_AUTH_DEV_MODE = True
    CACHE_TYPE = 'NullCache'
    AWS_S3_BUCKET_NAME = 'puzzle-test-bucket'
    AWS_REGION = 'us-east-1'


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
