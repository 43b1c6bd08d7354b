from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Seller block printed on every bill
    SELLER_BUSINESS_NAME: str = "Kamdon Fashion"
    SELLER_GSTIN: str = "27AAAAA0000A1Z5"
    SELLER_STORE_ADDRESS: str = "Store Address Line 1, Pune, Maharashtra"
    SELLER_STATE_CODE: str = "27"
    SELLER_PHONE: str = "+91-0000000000"
    SELLER_EMAIL: str = "contact@kamdonfashion.com"

    DEFAULT_LOCALE: str = "en-IN"
    STORE_TIMEZONE: str = "Asia/Kolkata"

    # Store policy cap on the order-level employee discount
    MAX_EMPLOYEE_DISCOUNT_PERCENT: Decimal = Decimal("10")

    LOW_STOCK_LIMIT: int = 10
    FORECAST_DAYS: int = 14

    CORS_ORIGINS: list[str] = ["http://localhost:5173"]


settings = Settings()
