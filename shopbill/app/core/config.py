from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./shopbill.db"
    SECRET_KEY: str = "dev-insecure-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS origins for the dashboard frontend
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    # Billing defaults
    CURRENCY_SYMBOL: str = "₹"
    DEFAULT_PAYMENT_METHOD: str = "cash"
    WALK_IN_CUSTOMER_NAME: str = "Walking Customer"


settings = Settings()
