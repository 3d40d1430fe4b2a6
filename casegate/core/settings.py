from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Upstream case-management API
    UPSTREAM_API_URL: str = "http://localhost:3001/api"
    UPSTREAM_TIMEOUT: float = 10.0

    # Gateway session tokens
    JWT_SECRET: str | None = None
    SESSION_TTL_MINUTES: int = 480

    # Application URLs
    FRONTEND_URL: str | None = None

    # Permission cache
    PERMISSION_REFRESH_SECONDS: float = 30.0
    TOKEN_REFRESH_SECONDS: float = 840.0  # 14 minutes
    ADMIN_ROLE_NAME: str = "Administrator"
    PUBLIC_MODULES: str = "profile,dashboard"
    PERMISSION_STRICT_CATALOG: bool = False
    VALIDATE_CATALOG_ON_LOGIN: bool = False

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def public_modules(self) -> frozenset[str]:
        """Modules visible to every authenticated user, lower-cased."""
        return frozenset(
            module.strip().lower()
            for module in self.PUBLIC_MODULES.split(",")
            if module.strip()
        )


settings = Settings()
