# royaltymeds/core/config.py
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore")

    APP_NAME: str = "RoyaltyMeds API"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    JWT_SECRET: str = Field(...)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # DATABASE_URL wins over the DB_* parts when set (e.g. sqlite+aiosqlite for tests)
    DATABASE_URL: str | None = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "royaltymeds"
    DB_PASSWORD: str = ""
    DB_NAME: str = "royaltymeds"

    CLOUDINARY_CLOUD_NAME: str
    CLOUDINARY_API_KEY: str
    CLOUDINARY_API_SECRET: str

    MAX_UPLOAD_MB: int = 5
    MEDIA_FOLDER_PRESCRIPTIONS: str = "royaltymeds/prescriptions"
    MEDIA_FOLDER_FILL_PROOFS: str = "royaltymeds/fill-proofs"
    MEDIA_FOLDER_RECEIPTS: str = "royaltymeds/receipts"

    # used when no payment_config row exists yet
    DEFAULT_SHIPPING_COST: Decimal = Decimal("0")

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4")

settings = Settings()  # type: ignore[call-arg]
