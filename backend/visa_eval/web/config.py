"""
Web Configuration - Centralized settings management
"""
import os
from pathlib import Path

from pydantic import BaseModel
from dotenv import load_dotenv

from ..services.mail import SmtpSettings

# Load backend/.env when present
_backend_env = Path(__file__).parent.parent.parent / ".env"
if _backend_env.exists():
    load_dotenv(_backend_env)


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class AppConfig(BaseModel):
    """Application configuration with environment variable support"""

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Paths
    project_root: Path = Path(__file__).parent.parent.parent.parent
    data_dir: Path = project_root / "data"
    db_path: Path = data_dir / "evaluations.db"

    # Job lifecycle
    job_retention_s: float = 30.0  # eviction delay after `finished`
    job_max_lifetime_s: float = 0.0  # watchdog; 0 disables
    stage_timeout_s: float = 0.0  # per-stage timeout; 0 disables
    sse_heartbeat_s: float = 15.0
    max_upload_files: int = 6

    # Public URL used in emails
    public_base_url: str = "http://localhost:8000"

    # Email (empty host disables sending)
    email_host: str = ""
    email_port: int = 587
    email_secure: bool = False
    email_user: str = ""
    email_password: str = ""
    email_from: str = ""

    # AI Configuration
    ai_provider: str = "none"  # "none", "mock" or "openai_compatible"
    ai_base_url: str = "https://api.openai.com/v1"
    ai_api_key: str = ""
    ai_model: str = "gpt-4o-mini"
    ai_temperature: float = 0.7
    ai_max_tokens: int = 800
    ai_timeout: float = 60.0

    # Rate limiting (per client address)
    rate_limit_enabled: bool = True

    # Partner API
    partner_rate_limit: int = 1000

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables"""
        defaults = cls()
        data_dir = Path(os.getenv("VISA_DATA_DIR", str(defaults.data_dir)))
        return cls(
            host=os.getenv("VISA_HOST", defaults.host),
            port=int(os.getenv("VISA_PORT", str(defaults.port))),
            debug=_env_bool("VISA_DEBUG"),
            data_dir=data_dir,
            db_path=Path(os.getenv("VISA_DB_PATH", str(data_dir / "evaluations.db"))),
            job_retention_s=float(os.getenv("VISA_JOB_RETENTION_S", "30")),
            job_max_lifetime_s=float(os.getenv("VISA_JOB_MAX_LIFETIME_S", "0")),
            stage_timeout_s=float(os.getenv("VISA_STAGE_TIMEOUT_S", "0")),
            sse_heartbeat_s=float(os.getenv("VISA_SSE_HEARTBEAT_S", "15")),
            max_upload_files=int(os.getenv("VISA_MAX_UPLOAD_FILES", "6")),
            public_base_url=os.getenv("VISA_PUBLIC_BASE_URL", defaults.public_base_url),
            email_host=os.getenv("EMAIL_HOST", ""),
            email_port=int(os.getenv("EMAIL_PORT", "587")),
            email_secure=_env_bool("EMAIL_SECURE"),
            email_user=os.getenv("EMAIL_USER", ""),
            email_password=os.getenv("EMAIL_PASSWORD", ""),
            email_from=os.getenv("EMAIL_FROM", ""),
            ai_provider=os.getenv("AI_PROVIDER", "none"),
            ai_base_url=os.getenv("AI_BASE_URL", defaults.ai_base_url),
            ai_api_key=os.getenv("AI_API_KEY", ""),
            ai_model=os.getenv("AI_MODEL", defaults.ai_model),
            ai_temperature=float(os.getenv("AI_TEMPERATURE", "0.7")),
            ai_max_tokens=int(os.getenv("AI_MAX_TOKENS", "800")),
            ai_timeout=float(os.getenv("AI_TIMEOUT", "60.0")),
            rate_limit_enabled=_env_bool("VISA_RATE_LIMIT", "1"),
            partner_rate_limit=int(os.getenv("PARTNER_RATE_LIMIT", "1000")),
        )

    def smtp_settings(self) -> SmtpSettings:
        return SmtpSettings(
            host=self.email_host,
            port=self.email_port,
            secure=self.email_secure,
            user=self.email_user,
            password=self.email_password,
            sender=self.email_from,
            public_base_url=self.public_base_url,
        )


# Global config instance
config = AppConfig.from_env()
