from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import EmailStr, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Deployment configuration for the intake API.

    Values come from the environment (and a ``.env`` file loaded by
    :func:`get_settings`). Construction fails if anything required is missing,
    so a misconfigured deployment never gets as far as serving requests.
    """

    # Record store
    mongodb_uri: str
    mongodb_database: str = "vrise"

    # Email Configuration - Outgoing (SMTP)
    email_enabled: bool = True
    email_user: Optional[str] = None
    email_password: Optional[str] = None
    email_from: Optional[str] = None
    notify_email: Optional[EmailStr] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_timeout: float = 10.0

    # HTTP server
    client_origin: str = "http://localhost:5173"
    host: str = "0.0.0.0"
    port: int = 4000
    max_body_bytes: int = 15 * 1024 * 1024

    log_level: str = "INFO"

    @model_validator(mode="after")
    def validate_email_config(self):
        """Require the SMTP credentials whenever email is switched on."""
        if not self.email_enabled:
            return self
        required = {
            "EMAIL_USER": self.email_user,
            "EMAIL_PASSWORD": self.email_password,
            "EMAIL_FROM": self.email_from,
            "NOTIFY_EMAIL": self.notify_email,
        }
        missing_vars = [name for name, value in required.items() if not value]
        if missing_vars:
            raise ValueError(f"Missing email configuration: {', '.join(missing_vars)}")
        return self

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.client_origin.split(",") if origin.strip()]


def get_settings(env_file: Optional[Path] = None) -> Settings:
    """Load ``.env`` (if present) and build the settings once at process start."""
    load_dotenv(dotenv_path=env_file)
    return Settings()
