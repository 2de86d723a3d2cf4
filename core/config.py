from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env")

    ENV: str = "development"

    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"

    # Tokens
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ACCESS_TOKEN_CACHE_SECONDS: int = 300
    TOKEN_CODE_LENGTH: int = 20

    # Identifiers
    IDENTIFIER_MAX_ATTEMPTS: int = 100
    MEMBER_ID_LENGTH: int = 7
    WALLET_IDENTIFIER_LENGTH: int = 8
    MAX_WALLETS_PER_USER: int = 3

    # Login lockout
    MAX_LOGIN_ATTEMPTS: int = 3
    MAX_LOGIN_ATTEMPTS_EXPIRATION: int = 900  # seconds

    # One-time codes (expirations in minutes)
    EMAIL_CONFIRM_CODE_LENGTH: int = 6
    CONFIRM_EMAIL_EXPIRATION: int = 60
    RESTORE_PASSWORD_CODE_LENGTH: int = 6
    RESTORE_PASSWORD_COMPLETE_CODE_LENGTH: int = 8
    RESTORE_PASSWORD_INITIATE_CODE_EXPIRATION: int = 10
    RESTORE_PASSWORD_COMPLETE_CODE_EXPIRATION: int = 10
    MAX_RESET_PASSWORD_ATTEMPTS: int = 3
    MAX_RESET_PASSWORD_ATTEMPTS_EXPIRATION: int = 60

    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = "no-reply@example.com"
    MAIL_SERVER: str = "localhost"
    MAIL_PORT: int = 587
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]


settings = Settings()
