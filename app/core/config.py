import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

class MailSettings(BaseModel):
    host: Optional[str] = Field(default=os.getenv("SMTP_HOST"))
    port: int = Field(default=int(os.getenv("SMTP_PORT", "587")))
    username: Optional[str] = Field(default=os.getenv("SMTP_USER"))
    password: Optional[str] = Field(default=os.getenv("SMTP_PASSWORD"))
    sender: str = Field(default=os.getenv("MAIL_FROM", "no-reply@leave-engine.local"))
    use_tls: bool = Field(default=os.getenv("SMTP_USE_TLS", "true").lower() == "true")

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password)

class NotificationSettings(BaseModel):
    in_app_enabled: bool = Field(default=os.getenv("NOTIFY_IN_APP", "true").lower() == "true")
    email_enabled: bool = Field(default=os.getenv("NOTIFY_EMAIL", "false").lower() == "true")
    retry_attempts: int = Field(default=int(os.getenv("NOTIFY_RETRY_ATTEMPTS", "3")))

class Config(BaseModel):
    app_name: str = "Leave Lifecycle Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = os.getenv("API_PREFIX", "/api")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    request_id_header: str = "X-Request-ID"

    # Notifications
    mail: MailSettings = MailSettings()
    notifications: NotificationSettings = NotificationSettings()

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")

    # CORS - comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment == "production":
    if settings.database_url.startswith("sqlite"):
        raise RuntimeError(
            "FATAL: DATABASE_URL points at SQLite in production. "
            "Set DATABASE_URL to a PostgreSQL connection string."
        )
    if settings.notifications.email_enabled and not settings.mail.configured:
        _logger.warning("NOTIFY_EMAIL is enabled but SMTP is not configured; emails will only be logged.")
