from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    # App
    APP_NAME: str = "RAYAN DENTAL API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./rayan.db"

    # JWT (admin dashboard)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    SUBMISSION_RATE_LIMIT: str = "10/minute"
    LOGIN_RATE_LIMIT: str = "5/minute"

    # Clinic
    CLINIC_NAME: str = "عيادة نيو ريان للأسنان"
    CLINIC_WHATSAPP_NUMBER: str = "+96566774402"
    DEFAULT_COUNTRY_CODE: str = "965"

    # Relay
    RELAY_TIMEOUT_SECONDS: float = 10.0
    RELAY_SUBMISSIONS: bool = True

    # Meta Conversions API
    META_PIXEL_ID: str = ""
    META_ACCESS_TOKEN: str = ""
    META_API_VERSION: str = "v18.0"
    META_TEST_EVENT_CODE: str = ""   # set only in development

    # Google Ads (conversion upload)
    GOOGLE_ADS_CONVERSION_URL: str = ""
    GOOGLE_ADS_CONVERSION_ACTION: str = ""
    GOOGLE_ADS_DEVELOPER_TOKEN: str = ""
    GOOGLE_ADS_ACCESS_TOKEN: str = ""

    # CRM webhook
    CRM_WEBHOOK_URL: str = ""

    # Resend
    RESEND_API_KEY: str = ""
    NOTIFY_EMAIL_FROM: str = "Rayan Dental <noreply@newrayan.com>"
    NOTIFY_EMAIL_TO: str = ""

    # CORS
    FRONTEND_URL: str = "https://newrayan.com"
    CORS_ORIGINS: List[str] = [
        "https://newrayan.com",
        "https://www.newrayan.com",
        "http://localhost:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

@lru_cache()
def get_settings():
    return Settings()

settings = get_settings()
