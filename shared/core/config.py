import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(__file__))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    DB_USER: str | None = os.getenv("DB_USER")
    DB_PASS: str | None = os.getenv("DB_PASS")
    DB_HOST: str | None = os.getenv("DB_HOST")
    DB_PORT: str | None = os.getenv("DB_PORT")
    LEASING_DB_NAME: str | None = os.getenv("LEASING_DB_NAME")
    # full URL wins over the DB_* parts (sqlite for local runs and tests)
    LEASING_DATABASE_URL: str | None = os.getenv("LEASING_DATABASE_URL")

    # Billing
    BILLING_GRACE_PERIOD_DAYS: int = int(
        os.getenv("BILLING_GRACE_PERIOD_DAYS", 0))
    BILLING_MAX_WORKERS: int = int(os.getenv("BILLING_MAX_WORKERS", 4))
    BILLING_RUN_CRON: str = os.getenv("BILLING_RUN_CRON", "0 * * * *")
    BILLING_TIMEZONE: str = os.getenv("BILLING_TIMEZONE", "UTC")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

LEASING_DATABASE_URL = settings.LEASING_DATABASE_URL or (
    f"postgresql+psycopg2://{settings.DB_USER}:{settings.DB_PASS}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.LEASING_DB_NAME}?sslmode=require"
)
