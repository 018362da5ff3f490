"""
Application Configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional, Tuple
import warnings

INSECURE_SECRET_KEYS = {
    "your-super-secret-key-change-in-production-min-32-chars",
    "dev-secret-key-change-in-production",
    "secret-key",
    "change-me",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "ClientDesk API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database
    DATABASE_URL: str = "sqlite:///./clientdesk.db"

    # Security
    SECRET_KEY: str = "your-super-secret-key-change-in-production-min-32-chars"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Bootstrap admin (seeded on startup when both are set)
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_NAME: str = "Administrator"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Mail transport
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USE_TLS: bool = True
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    APP_BASE_URL: str = "http://localhost:3000"

    # File storage
    UPLOAD_DIR: str = "./uploads"

    # Credentials and tokens
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    PASSWORD_CACHE_TTL_DAYS: int = 30
    PASSWORD_CACHE_BACKEND: str = "memory"  # memory, database
    GENERATED_PASSWORD_LENGTH: int = 12

    # Documents
    CURRENCY_SYMBOL: str = "$"
    PDF_PAGE_SIZE: str = "A4"
    PDF_MARGIN: str = "20mm"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def database_url(self) -> str:
        """Get properly formatted database URL"""
        url = self.DATABASE_URL
        if url.startswith("file:"):
            path = url[5:]  # Remove 'file:' prefix
            return f"sqlite:///{path}"
        return url

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def email_configured(self) -> bool:
        return bool(self.EMAIL_USER and self.EMAIL_PASS)

    def security_problems(self) -> List[Tuple[bool, str]]:
        """(fatal in production, message) for every insecure setting"""
        problems = []
        if self.SECRET_KEY in INSECURE_SECRET_KEYS:
            problems.append((True, "Default SECRET_KEY in use. Set SECRET_KEY to a secure random value."))
        elif len(self.SECRET_KEY) < 32:
            problems.append((True, "SECRET_KEY should be at least 32 characters."))
        if self.DEBUG:
            problems.append((True, "DEBUG mode is enabled."))
        if self.ADMIN_PASSWORD and len(self.ADMIN_PASSWORD) < 8:
            problems.append((True, "ADMIN_PASSWORD should be at least 8 characters."))
        if not self.email_configured:
            problems.append((False, "EMAIL_USER/EMAIL_PASS are not set; invoice, receipt and reset emails will fail."))
        if self.PASSWORD_CACHE_BACKEND.lower() == "memory":
            problems.append((False, "Generated client passwords are cached in memory and lost on restart."))
        return problems

    def validate_security_settings(self):
        """Warn about insecure settings; refuse the fatal ones in production"""
        for fatal, message in self.security_problems():
            if fatal and self.is_production:
                raise ValueError(f"CRITICAL: {message}")
            if fatal or self.is_production:
                warnings.warn(f"WARNING: {message}", UserWarning)
        return True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()

# Production refuses to start with a fatal problem; development only warns
settings.validate_security_settings()
