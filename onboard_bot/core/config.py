from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from container + optionally from files
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.docker"),
        extra="ignore",
        case_sensitive=False,
    )

    # App
    ENVIRONMENT: str = Field(default="docker", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    APP_NAME: str = Field(default="onboard_bot", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))
    DEFAULT_LANGUAGE: str = Field(default="en", validation_alias=AliasChoices("DEFAULT_LANGUAGE", "default_language"))
    AGENT_NAME: str = Field(default="Sofia", validation_alias=AliasChoices("AGENT_NAME", "agent_name"))

    # Infrastructure
    DATABASE_URL: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/onboarding_db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    DATABASE_SSL: bool = Field(default=False, validation_alias=AliasChoices("DATABASE_SSL", "database_ssl"))
    REDIS_URL: str = Field(
        default="redis://redis:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )
    USE_REDIS_LOCKS: bool = Field(default=False, validation_alias=AliasChoices("USE_REDIS_LOCKS", "use_redis_locks"))
    SUBJECT_LOCK_TIMEOUT_SECONDS: int = Field(
        default=180,
        validation_alias=AliasChoices("SUBJECT_LOCK_TIMEOUT_SECONDS", "subject_lock_timeout_seconds"),
    )

    # WhatsApp Meta
    WHATSAPP_VERIFY_TOKEN: str = Field(default="", validation_alias=AliasChoices("WHATSAPP_VERIFY_TOKEN", "whatsapp_verify_token"))
    WHATSAPP_ACCESS_TOKEN: str = Field(default="", validation_alias=AliasChoices("WHATSAPP_ACCESS_TOKEN", "whatsapp_access_token"))
    WHATSAPP_PHONE_NUMBER_ID: str = Field(default="", validation_alias=AliasChoices("WHATSAPP_PHONE_NUMBER_ID", "whatsapp_phone_number_id"))

    # Telegram
    TELEGRAM_BOT_TOKEN: str = Field(default="", validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "telegram_bot_token"))
    TELEGRAM_WEBHOOK_SECRET: str = Field(default="", validation_alias=AliasChoices("TELEGRAM_WEBHOOK_SECRET", "telegram_webhook_secret"))

    # Outbound delivery + operator notifications
    OUTBOUND_VIA_QUEUE: bool = Field(default=False, validation_alias=AliasChoices("OUTBOUND_VIA_QUEUE", "outbound_via_queue"))
    OPERATOR_WHATSAPP_NUMBER: str = Field(default="", validation_alias=AliasChoices("OPERATOR_WHATSAPP_NUMBER", "operator_whatsapp_number"))
    OPERATOR_TELEGRAM_CHAT_ID: str = Field(default="", validation_alias=AliasChoices("OPERATOR_TELEGRAM_CHAT_ID", "operator_telegram_chat_id"))

    # OpenAI (extraction gateway)
    OPENAI_API_KEY: str = Field(default="", validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"))
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", validation_alias=AliasChoices("OPENAI_MODEL", "openai_model"))
    OPENAI_TIMEOUT: float = Field(default=30.0, validation_alias=AliasChoices("OPENAI_TIMEOUT", "openai_timeout"))
    OPENAI_MAX_RETRIES: int = Field(default=2, validation_alias=AliasChoices("OPENAI_MAX_RETRIES", "openai_max_retries"))
    EXTRACTION_TIMEOUT_SECONDS: float = Field(
        default=45.0,
        validation_alias=AliasChoices("EXTRACTION_TIMEOUT_SECONDS", "extraction_timeout_seconds"),
    )
    HISTORY_LIMIT: int = Field(default=40, validation_alias=AliasChoices("HISTORY_LIMIT", "history_limit"))
    TRANSCRIPT_LIMIT: int = Field(default=100, validation_alias=AliasChoices("TRANSCRIPT_LIMIT", "transcript_limit"))

    # Provisioning collaborators
    GOOGLE_SERVICE_ACCOUNT_FILE: str = Field(
        default="",
        validation_alias=AliasChoices("GOOGLE_SERVICE_ACCOUNT_FILE", "google_service_account_file"),
    )
    GOOGLE_DRIVE_ROOT_FOLDER_ID: str = Field(
        default="",
        validation_alias=AliasChoices("GOOGLE_DRIVE_ROOT_FOLDER_ID", "google_drive_root_folder_id"),
    )
    LEADSIE_API_KEY: str = Field(default="", validation_alias=AliasChoices("LEADSIE_API_KEY", "leadsie_api_key"))
    LEADSIE_BASE_URL: str = Field(default="https://api.leadsie.com/v1", validation_alias=AliasChoices("LEADSIE_BASE_URL", "leadsie_base_url"))
    PROVISIONING_STEP_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        validation_alias=AliasChoices("PROVISIONING_STEP_TIMEOUT_SECONDS", "provisioning_step_timeout_seconds"),
    )
    PROVISIONING_PARALLEL_INVITE: bool = Field(
        default=True,
        validation_alias=AliasChoices("PROVISIONING_PARALLEL_INVITE", "provisioning_parallel_invite"),
    )

    # Operator surface
    ADMIN_API_TOKEN: str = Field(default="", validation_alias=AliasChoices("ADMIN_API_TOKEN", "admin_api_token"))
    STALE_SESSION_HOURS: int = Field(default=72, validation_alias=AliasChoices("STALE_SESSION_HOURS", "stale_session_hours"))


settings = Settings()
