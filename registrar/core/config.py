from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    default_page_size: int = Field(20, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(100, alias="MAX_PAGE_SIZE")

    # Bulk import write phase: isolation level, max wait to open the transaction, execution timeout.
    import_isolation_level: str = Field("SERIALIZABLE", alias="IMPORT_ISOLATION_LEVEL")
    import_max_wait_ms: int = Field(5000, alias="IMPORT_MAX_WAIT_MS")
    import_timeout_ms: int = Field(30000, alias="IMPORT_TIMEOUT_MS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
