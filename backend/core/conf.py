from functools import lru_cache
from typing import Any, Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from backend.core.path_conf import BASE_PATH


class Settings(BaseSettings):
    """Global settings"""

    model_config = SettingsConfigDict(
        env_file=f'{BASE_PATH}/.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True,
    )

    # .env current environment
    ENVIRONMENT: Literal['dev', 'prod'] = 'dev'

    # FastAPI
    FASTAPI_API_V1_PATH: str = '/api/v1'
    FASTAPI_TITLE: str = 'BillingBackend'
    FASTAPI_DESCRIPTION: str = 'Subscription billing backend (Billplz)'
    FASTAPI_DOCS_URL: str | None = '/docs'
    FASTAPI_REDOC_URL: str | None = '/redoc'
    FASTAPI_OPENAPI_URL: str | None = '/openapi'

    # .env database
    DATABASE_HOST: str = '127.0.0.1'
    DATABASE_PORT: int = 5432
    DATABASE_USER: str = 'postgres'
    DATABASE_PASSWORD: str = ''
    DATABASE_SCHEMA: str = 'postgres'

    # Database
    DATABASE_ECHO: bool | Literal['debug'] = False
    DATABASE_POOL_ECHO: bool | Literal['debug'] = False
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # .env auth (tokens are issued by the auth provider; we only verify them)
    AUTH_JWT_SECRET: str = ''
    AUTH_JWT_ALGORITHM: str = 'HS256'
    AUTH_JWT_AUDIENCE: str = 'authenticated'

    # CORS
    CORS_ALLOWED_ORIGINS: list[str] = [  # no trailing slash
        'http://127.0.0.1:8000',
        'http://localhost:5173',
    ]
    CORS_EXPOSE_HEADERS: list[str] = [
        'X-Request-ID',
    ]
    MIDDLEWARE_CORS: bool = True

    # Log
    LOG_FORMAT: str = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'

    # Log (console)
    LOG_STD_LEVEL: str = 'INFO'

    # Log (file)
    LOG_FILE_ACCESS_LEVEL: str = 'INFO'
    LOG_FILE_ERROR_LEVEL: str = 'ERROR'
    LOG_ACCESS_FILENAME: str = 'billing_backend_access.log'
    LOG_ERROR_FILENAME: str = 'billing_backend_error.log'
    LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10 MB
    LOG_FILE_BACKUP_COUNT: int = 7

    # --------------------------------------------------------------------------
    # [Billing & Billplz Configuration]
    # Trial subscriptions, plan checkout and Billplz bills
    # --------------------------------------------------------------------------

    # Public URL of the web app (used for Billplz callback/redirect URLs)
    APP_URL: str = 'http://localhost:5173'

    # Billplz API credentials
    BILLPLZ_API_KEY: str = ''  # Secret API key (basic auth username)
    BILLPLZ_COLLECTION_ID: str = ''  # Collection that bills are created in
    BILLPLZ_X_SIGNATURE_KEY: str = ''  # Used to verify callback/redirect signatures

    # Billplz endpoints
    BILLPLZ_API_BASE_URL: str = 'https://www.billplz.com/api/v3'  # sandbox: https://www.billplz-sandbox.com/api/v3
    BILLPLZ_CALLBACK_PATH: str = '/api/billplz-webhook'  # server-to-server notification
    BILLPLZ_REDIRECT_PATH: str = '/thank-you'  # browser return trip
    BILLPLZ_TIMEOUT_SECONDS: float = 30.0

    # Remote payment adapter endpoint (leave empty to use the in-process adapter)
    PAYMENT_ADAPTER_URL: str = ''

    # Shared token for the scheduled reconciliation sweep (empty disables the route)
    BILLING_RECONCILE_TOKEN: str = ''

    @model_validator(mode='before')
    @classmethod
    def check_env(cls, values: Any) -> Any:
        """Apply environment specific overrides"""
        if values.get('ENVIRONMENT') == 'prod':
            # FastAPI
            values['FASTAPI_OPENAPI_URL'] = None
            values['FASTAPI_DOCS_URL'] = None
            values['FASTAPI_REDOC_URL'] = None

            # Billplz callbacks must be signed in production
            if not values.get('BILLPLZ_X_SIGNATURE_KEY'):
                raise ValueError('BILLPLZ_X_SIGNATURE_KEY is required when ENVIRONMENT=prod')

        return values

    @property
    def billplz_callback_url(self) -> str:
        return f'{self.APP_URL.rstrip("/")}{self.BILLPLZ_CALLBACK_PATH}'

    @property
    def billplz_redirect_url(self) -> str:
        return f'{self.APP_URL.rstrip("/")}{self.BILLPLZ_REDIRECT_PATH}'


@lru_cache
def get_settings() -> Settings:
    """Return the global settings singleton"""
    return Settings()


# Global settings instance
settings = get_settings()
