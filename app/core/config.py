from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TEMPERATURE: float = 0.2
    OPENAI_TRANSCRIBE_MODEL: str = "whisper-1"

    AGENT_MODE: str = "stepwise"  # "stepwise" | "single_shot"
    AGENT_MAX_TOOL_ROUNDS: int = 6

    WHATSAPP_VERIFY_TOKEN: str = ""
    WHATSAPP_APP_SECRET: str | None = None
    WHATSAPP_ACCESS_TOKEN: str | None = None
    WHATSAPP_PHONE_NUMBER_ID: str | None = None
    WHATSAPP_API_VERSION: str = "v17.0"
    WHATSAPP_GRAPH_BASE_URL: str = "https://graph.facebook.com"

    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None

    BOOKING_PRICE: int = 50
    BOOKING_CURRENCY: str = "usd"
    PAYMENT_LINK_EXPIRY_MINUTES: int = 30

    BASE_URL: str = "http://localhost:8000"
    DATA_DIR: str = "./data"
    STORE_PROVIDER: str = "json"  # "json" | "memory"

    BUSINESS_NAME: str = "Your Business"
    BUSINESS_TIMEZONE: str = "America/Los_Angeles"
    SLOT_DAYS_AHEAD: int = 14
    SLOT_START_HOUR: int = 9
    SLOT_END_HOUR: int = 17

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    AUTO_REPLY_ENABLED: bool = True


settings = Settings()
